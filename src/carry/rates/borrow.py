"""Borrow rate calculator for spot lending pools.

Rates follow the venue's two-segment utilization curve. All arithmetic
multiplies before dividing so the curve hits optimal_borrow_rate exactly at
optimal_utilization and max_borrow_rate exactly at full utilization.
"""

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.exceptions import RateComputationError
from carry.models import SpotBalanceType, SpotMarket
from carry.rates.fixed_point import U128, cast, safe_div, safe_div_ceil, safe_sub_unsigned


def get_token_amount(
    balance: int,
    market: SpotMarket,
    balance_type: SpotBalanceType,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Convert a scaled balance into token amount at the market's decimals.

    Deposits round down and borrows round up, so the pool never credits
    more than it holds.
    """
    exponent = (
        constants.spot_balance_precision_exp
        + constants.spot_cumulative_interest_precision_exp
        - market.decimals
    )
    if exponent < 0:
        raise RateComputationError(f"spot market {market.market_index} decimals too large")
    precision_decrease = 10**exponent

    if balance_type is SpotBalanceType.DEPOSIT:
        scaled = balance * market.cumulative_deposit_interest
        return cast(safe_div(cast(scaled, U128), precision_decrease), U128)

    scaled = balance * market.cumulative_borrow_interest
    return cast(safe_div_ceil(cast(scaled, U128), precision_decrease), U128)


def calculate_utilization(
    deposit_token_amount: int,
    borrow_token_amount: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Borrowed share of the pool, borrow / (deposit + borrow), at utilization precision."""
    total = deposit_token_amount + borrow_token_amount
    if total == 0:
        return 0
    scaled = cast(borrow_token_amount * constants.spot_utilization_precision, U128)
    return safe_div(scaled, total)


def calculate_borrow_rate(
    utilization: int,
    optimal_utilization: int,
    optimal_borrow_rate: int,
    max_borrow_rate: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Two-segment borrow curve at spot rate precision.

    Below optimal: utilization * optimal_rate / optimal_utilization.
    At or above: optimal_rate + surplus * (max_rate - optimal_rate) / (1 - optimal_utilization).

    Raises:
        RateComputationError: optimal_utilization at 0 or at/above 100%,
            max rate below optimal rate, or utilization outside [0, 100%].
    """
    full = constants.spot_utilization_precision

    if not 0 <= utilization <= full:
        raise RateComputationError(f"utilization {utilization} outside [0, {full}]")
    if utilization == 0:
        return 0

    if optimal_utilization <= 0 or optimal_utilization >= full:
        raise RateComputationError(
            f"optimal_utilization must be strictly between 0 and {full}, got {optimal_utilization}"
        )

    if utilization >= optimal_utilization:
        surplus_utilization = utilization - optimal_utilization
        rate_range = safe_sub_unsigned(max_borrow_rate, optimal_borrow_rate)
        surplus_rate = safe_div(
            cast(surplus_utilization * rate_range, U128),
            full - optimal_utilization,
        )
        return cast(optimal_borrow_rate + surplus_rate, U128)

    return safe_div(cast(utilization * optimal_borrow_rate, U128), optimal_utilization)


def compute_borrow_rate(
    market: SpotMarket,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Current borrow rate of a spot market at spot rate precision."""
    deposit_tokens = get_token_amount(
        market.deposit_balance, market, SpotBalanceType.DEPOSIT, constants
    )
    borrow_tokens = get_token_amount(
        market.borrow_balance, market, SpotBalanceType.BORROW, constants
    )
    utilization = calculate_utilization(deposit_tokens, borrow_tokens, constants)

    return calculate_borrow_rate(
        utilization,
        market.optimal_utilization,
        market.optimal_borrow_rate,
        market.max_borrow_rate,
        constants,
    )


def borrow_rate_to_apr(
    borrow_rate: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Rescale a borrow rate into the annualized funding rate's units.

    Borrow rates are yearly fractions at spot rate precision; annualized
    funding rates are yearly percentages at funding rate precision.
    """
    return safe_div(
        cast(borrow_rate * 100 * constants.funding_rate_precision, U128),
        constants.spot_rate_precision,
    )
