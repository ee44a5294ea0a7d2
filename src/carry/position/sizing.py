"""Order size helpers: step quantization, spot rescaling and signed leg amounts.

Sizes are ints: perp legs in base precision, spot legs in the spot
market's decimals. Rounding is always UP to the step so a quantized order
never leaves part of the intended exposure unhedged.
"""

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.exceptions import RateComputationError
from carry.models import SpotBalanceType, SpotMarket, SpotPosition
from carry.rates.borrow import get_token_amount
from carry.rates.fixed_point import safe_div_ceil


def round_up_to_step(size: int, step: int) -> int:
    """Smallest multiple of step that is >= size.

    Args:
        size: Raw non-negative order size.
        step: Market order step size, must be positive.

    Returns:
        The size rounded up to the nearest step increment.

    Raises:
        RateComputationError: If step is not positive or size is negative.
    """
    if step <= 0:
        raise RateComputationError(f"order step size must be positive, got {step}")
    if size < 0:
        raise RateComputationError(f"order size must be non-negative, got {size}")
    remainder = size % step
    if remainder == 0:
        return size
    return size + step - remainder


def signed_token_amount(
    position: SpotPosition | None,
    market: SpotMarket,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Token amount of a spot position: positive for deposits, negative for borrows."""
    if position is None:
        return 0
    amount = get_token_amount(position.scaled_balance, market, position.balance_type, constants)
    return amount if position.balance_type is SpotBalanceType.DEPOSIT else -amount


def spot_target_size(
    target_size: int,
    market: SpotMarket,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Rescale a base-precision target into the spot market's decimals, rounding up."""
    return safe_div_ceil(target_size * 10**market.decimals, constants.base_precision)
