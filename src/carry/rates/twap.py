"""TWAP state updater and AMM pricing helpers.

Two TWAPs feed the funding rate: the oracle price TWAP and the mark price
TWAP (itself the ceiling mid of a bid TWAP and an ask TWAP). Both advance
by the same rule: a time-weighted blend of the previous TWAP and a new
sample, where the sample is first clamped to within
previous_twap / clamp_denominator of the previous value. The clamp bounds
how far one update can move the TWAP and rejects single-sample spikes.

update_oracle_price_twap and update_mark_twap mutate the AmmState they are
given; callers pass a scratch copy.
"""

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.models import AmmState, OraclePriceData, PositionDirection
from carry.rates.fixed_point import I64, U64, cast, safe_div, safe_div_ceil, safe_sub_unsigned

# 2.5 bps of the reserve price bounds how far the oracle is pulled toward it
_RESERVE_PRICE_BAND_DENOMINATOR = 4000


def reserve_price(amm: AmmState, constants: ProtocolConstants = DEFAULT_CONSTANTS) -> int:
    """Mid price implied by the AMM reserves and peg, at price precision."""
    peg_quote = amm.quote_asset_reserve * amm.peg_multiplier * constants.price_to_peg_ratio
    return cast(safe_div(peg_quote, amm.base_asset_reserve), U64)


def bid_price(
    amm: AmmState, reserve: int, constants: ProtocolConstants = DEFAULT_CONSTANTS
) -> int:
    precision = constants.bid_ask_spread_precision
    scaled = reserve * safe_sub_unsigned(precision, amm.short_spread)
    return cast(safe_div(scaled, precision), U64)


def ask_price(
    amm: AmmState, reserve: int, constants: ProtocolConstants = DEFAULT_CONSTANTS
) -> int:
    precision = constants.bid_ask_spread_precision
    scaled = reserve * (precision + amm.long_spread)
    return cast(safe_div(scaled, precision), U64)


def execution_premium(
    amm: AmmState, reserve: int, constants: ProtocolConstants = DEFAULT_CONSTANTS
) -> tuple[int, PositionDirection | None]:
    """Price and direction of the side with the larger spread.

    Long spread wider -> (ask, LONG); short spread wider -> (bid, SHORT);
    equal spreads -> (reserve, None).
    """
    if amm.long_spread > amm.short_spread:
        return ask_price(amm, reserve, constants), PositionDirection.LONG
    if amm.long_spread < amm.short_spread:
        return bid_price(amm, reserve, constants), PositionDirection.SHORT
    return reserve, None


def normalise_oracle_price(amm: AmmState, oracle: OraclePriceData, reserve: int) -> int:
    """Pull the oracle price toward the reserve price within its confidence.

    Reserve above oracle: use oracle + confidence, but no higher than
    reserve - 2.5bps and no lower than the oracle. Reserve at or below the
    oracle: the mirror image. Keeps funding sane while the oracle is noisy.
    """
    band = safe_div(reserve, _RESERVE_PRICE_BAND_DENOMINATOR)
    price = oracle.price
    if reserve > price:
        normalised = min(max(reserve - band, price), price + oracle.confidence)
    else:
        normalised = max(min(reserve + band, price), price - oracle.confidence)
    return cast(normalised, I64)


def sanitize_new_price(new_price: int, last_price_twap: int, clamp_denominator: int | None) -> int:
    """Clamp a TWAP sample into last_price_twap +/- last_price_twap / clamp_denominator.

    An empty TWAP (0) or a missing denominator leaves the sample untouched.
    """
    if last_price_twap == 0 or clamp_denominator is None:
        return new_price

    band = abs(safe_div(last_price_twap, clamp_denominator))
    if abs(new_price - last_price_twap) <= band:
        return new_price
    if new_price > last_price_twap:
        return last_price_twap + band
    return last_price_twap - band


def calculate_weighted_average(data1: int, data2: int, weight1: int, weight2: int) -> int:
    """Weighted average of data1 (newer) and data2 (older), truncated.

    While the older value carries weight > 1 the result is biased one unit
    toward whichever weighted term dominates: +1 when data2 * weight2 is the
    larger, -1 when it is the smaller. A truncated average of 0 is returned
    as 0 without the bias.
    """
    if weight1 == 0:
        return data2
    if weight2 == 0:
        return data1

    newer = data1 * weight1
    older = data2 * weight2
    bias = 0
    if weight2 > 1:
        if older < newer:
            bias = -1
        elif older > newer:
            bias = 1

    twap = cast(safe_div(newer + older, weight1 + weight2), I64)
    if twap == 0:
        return 0
    return cast(twap + bias, I64)


def calculate_new_twap(
    sample: int, now: int, last_twap: int, last_ts: int, period: int
) -> int:
    """Advance a TWAP by one sample.

    The sample's weight is the time since the last update; the previous
    TWAP keeps the remainder of the period. Once a full period has elapsed
    the TWAP resets to the sample.
    """
    since_last = max(1 if period == 0 else 0, now - last_ts)
    from_start = max(0, period - since_last)
    return calculate_weighted_average(sample, last_twap, since_last, from_start)


def interpolated_oracle_twap(amm: AmmState) -> int:
    """Previous oracle TWAP, shrunk toward the mark TWAP if it is stale.

    When the mark TWAP was updated after the oracle TWAP (the oracle was
    unavailable in between), the stale oracle TWAP is blended with the mark
    TWAP, weighting the mark by the gap between the two timestamps.
    """
    if amm.last_mark_price_twap_ts <= amm.last_oracle_price_twap_ts:
        return amm.last_oracle_price_twap

    since_last_valid = amm.last_mark_price_twap_ts - amm.last_oracle_price_twap_ts
    from_start_valid = max(1, amm.funding_period - since_last_valid)
    return calculate_weighted_average(
        cast(amm.last_mark_price_twap, I64),
        amm.last_oracle_price_twap,
        since_last_valid,
        from_start_valid,
    )


def update_oracle_price_twap(
    amm: AmmState,
    now: int,
    oracle: OraclePriceData,
    reserve: int,
    clamp_denominator: int | None,
) -> int:
    """Advance the oracle price TWAP in place and return it.

    Non-positive oracle samples leave the TWAP state unchanged.
    """
    oracle_price = normalise_oracle_price(amm, oracle, reserve)
    capped_price = sanitize_new_price(oracle_price, amm.last_oracle_price_twap, clamp_denominator)

    if capped_price <= 0 or oracle_price <= 0:
        return amm.last_oracle_price_twap

    oracle_price_twap = calculate_new_twap(
        capped_price,
        now,
        interpolated_oracle_twap(amm),
        amm.last_oracle_price_twap_ts,
        amm.funding_period,
    )
    amm.last_oracle_normalised_price = capped_price
    amm.last_oracle_price = oracle.price
    amm.last_oracle_price_twap = oracle_price_twap
    amm.last_oracle_price_twap_ts = now
    return oracle_price_twap


def update_mark_twap(
    amm: AmmState,
    now: int,
    trade_price: int,
    direction: PositionDirection | None,
    reserve: int,
    clamp_denominator: int | None,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> int:
    """Advance the bid/ask TWAPs in place and return the new mark TWAP.

    A LONG premium treats trade_price as the ask and the AMM bid as the bid;
    SHORT is the mirror image; no premium uses trade_price for both sides.
    """
    if direction is PositionDirection.LONG:
        bid, ask = bid_price(amm, reserve, constants), trade_price
    elif direction is PositionDirection.SHORT:
        bid, ask = trade_price, ask_price(amm, reserve, constants)
    else:
        bid = ask = trade_price

    bid = sanitize_new_price(bid, amm.last_bid_price_twap, clamp_denominator)
    ask = sanitize_new_price(ask, amm.last_ask_price_twap, clamp_denominator)

    bid_twap = calculate_new_twap(
        bid, now, amm.last_bid_price_twap, amm.last_mark_price_twap_ts, amm.funding_period
    )
    ask_twap = calculate_new_twap(
        ask, now, amm.last_ask_price_twap, amm.last_mark_price_twap_ts, amm.funding_period
    )
    mark_twap = safe_div_ceil(bid_twap + ask_twap, 2)

    amm.last_bid_price_twap = bid_twap
    amm.last_ask_price_twap = ask_twap
    amm.last_mark_price_twap = mark_twap
    amm.last_mark_price_twap_ts = now
    return mark_twap
