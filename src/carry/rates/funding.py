"""Funding rate calculator.

Turns the updated mark/oracle TWAPs into a signed per-period funding rate,
splits it into long-side and short-side rates, and annualizes the rate of
the side being paid.

Sign convention (venue): a positive funding rate means longs pay shorts.
Mark TWAP above oracle TWAP -> positive rate -> shorts are paid, so the
carry trade should be SHORT perp; otherwise LONG.

The long/short split is a protocol rule of the venue and is injected as a
FundingSplitter so it can be swapped or checked against the venue's
published values in isolation. calculate_funding_rate_long_short is the
venue's rule and the default.
"""

from collections.abc import Callable

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.exceptions import RateComputationError
from carry.models import AmmState, FundingDecision, OraclePriceData, PerpMarket, PositionDirection
from carry.rates.fixed_point import I64, I128, U128, cast, clamp, safe_div
from carry.rates.twap import (
    execution_premium,
    reserve_price,
    update_mark_twap,
    update_oracle_price_twap,
)

FundingSplitter = Callable[[AmmState, int, ProtocolConstants], tuple[int, int]]

_HOURS_PER_DAY = 24
_HOURS_PER_YEAR = 24 * 365
_PERCENT = 100


def calculate_funding_payment_in_quote(
    funding_rate: int,
    base_asset_amount: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Quote amount paid by holders of base_asset_amount at funding_rate.

    Positive means the holders pay; negative means they receive.
    """
    payment = safe_div(funding_rate * base_asset_amount, constants.funding_payment_divisor)
    return cast(payment, I128)


def calculate_funding_rate_long_short(
    amm: AmmState,
    funding_rate: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> tuple[int, int]:
    """Split a funding rate into (long_rate, short_rate) by open-interest imbalance.

    The AMM is counterparty to the net user position
    (base_asset_amount_with_amm). If the net position pays funding, the AMM
    collects the difference and both sides get the full rate. If the AMM
    would have to pay, it may spend at most 1/funding_fee_pool_denominator
    of its fee surplus above the lower bound; the paying side still pays
    the full rate and the receiving side is dampened to what the payers
    plus that budget can cover.

    Raises:
        RateComputationError: Overflow, zero divisor, or a fee pool that
            would go negative.
    """
    funding_rate = cast(funding_rate, I128)
    amm_funding_pnl = calculate_funding_payment_in_quote(
        funding_rate, amm.base_asset_amount_with_amm, constants
    )
    if amm_funding_pnl >= 0:
        return funding_rate, funding_rate

    fee_lower_bound = safe_div(
        amm.total_exchange_fee * constants.fee_lower_bound_numerator,
        constants.fee_lower_bound_denominator,
    )
    fee_surplus = max(amm.total_fee_minus_distributions - fee_lower_bound, 0)
    budget = safe_div(fee_surplus, constants.funding_fee_pool_denominator)

    if -amm_funding_pnl <= budget:
        return funding_rate, funding_rate

    if amm.total_fee_minus_distributions - budget < 0:
        raise RateComputationError(
            f"funding would drive fee pool negative "
            f"(total_fee_minus_distributions={amm.total_fee_minus_distributions})"
        )

    divisor = constants.funding_payment_divisor
    if funding_rate > 0:
        # longs pay in full, shorts receive what longs + budget cover
        longs_pay = calculate_funding_payment_in_quote(
            funding_rate, amm.base_asset_amount_long, constants
        )
        capped_short = safe_div((longs_pay + budget) * divisor, abs(amm.base_asset_amount_short))
        return funding_rate, cast(capped_short, I128)

    # shorts pay in full, longs receive what shorts + budget cover
    shorts_pay = calculate_funding_payment_in_quote(
        -funding_rate, abs(amm.base_asset_amount_short), constants
    )
    capped_long = -safe_div((shorts_pay + budget) * divisor, amm.base_asset_amount_long)
    return cast(capped_long, I128), funding_rate


def calculate_funding_decision(
    amm: AmmState,
    mark_price_twap: int,
    oracle_price_twap: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
    splitter: FundingSplitter = calculate_funding_rate_long_short,
) -> FundingDecision:
    """Annualized funding rate and paid side from already-updated TWAPs.

    Steps:
    1. period_adjustment = 24h / max(1h, funding_period)
    2. price_spread = mark_twap - oracle_twap
    3. clamp spread to +/- oracle_twap / 33 (~3%)
    4. funding_rate = clamped_spread * FUNDING_RATE_BUFFER / period_adjustment
    5. split into long/short rates (splitter)
    6. mark > oracle: short rate, SHORT favored; else long rate, LONG favored
    7. annualized = |rate| * P / oracle_twap * 100 * 24 * 365

    Raises:
        RateComputationError: Non-positive oracle TWAP, overflow or zero divisor.
    """
    if oracle_price_twap <= 0:
        raise RateComputationError(f"oracle price twap must be positive, got {oracle_price_twap}")

    one_hour = constants.one_hour
    period_adjustment = safe_div(_HOURS_PER_DAY * one_hour, max(one_hour, amm.funding_period))

    price_spread = cast(mark_price_twap - oracle_price_twap, I64)
    max_price_spread = safe_div(oracle_price_twap, constants.max_funding_spread_denominator)
    clamped_price_spread = clamp(price_spread, -max_price_spread, max_price_spread)

    funding_rate = safe_div(
        cast(clamped_price_spread * constants.funding_rate_buffer, I128), period_adjustment
    )
    funding_rate = cast(funding_rate, I64)

    funding_rate_long, funding_rate_short = splitter(amm, funding_rate, constants)

    if mark_price_twap > oracle_price_twap:
        funding_delta, favored = funding_rate_short, PositionDirection.SHORT
    else:
        funding_delta, favored = funding_rate_long, PositionDirection.LONG

    hourly = abs(safe_div(cast(funding_delta * constants.price_precision, I128), oracle_price_twap))
    annualized = cast(hourly * _PERCENT * _HOURS_PER_YEAR, U128)

    return FundingDecision(
        annualized_funding_rate=annualized,
        favored_direction=favored,
        oracle_price_twap=oracle_price_twap,
        mark_price_twap=mark_price_twap,
        funding_rate_long=funding_rate_long,
        funding_rate_short=funding_rate_short,
    )


def compute_funding_rate(
    market: PerpMarket,
    oracle: OraclePriceData,
    now: int,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
    splitter: FundingSplitter = calculate_funding_rate_long_short,
) -> FundingDecision:
    """Advance the market's TWAPs with a fresh oracle read and derive funding.

    Mutates market.amm in place; pass a market holding a scratch AmmState.
    """
    amm = market.amm
    clamp_denominator = market.get_sanitize_clamp_denominator()
    reserve = reserve_price(amm, constants)

    oracle_price_twap = update_oracle_price_twap(amm, now, oracle, reserve, clamp_denominator)

    premium_price, premium_direction = execution_premium(amm, reserve, constants)
    mark_price_twap = update_mark_twap(
        amm, now, premium_price, premium_direction, reserve, clamp_denominator, constants
    )

    return calculate_funding_decision(amm, mark_price_twap, oracle_price_twap, constants, splitter)
