"""Oracle normalizer: raw feed reading -> OraclePriceData at price precision.

Feeds publish (price, confidence, exponent) where the real price is
price * 10**exponent. The venue stores prices at a fixed precision P, so
the reading is rescaled by a single factor applied to both price and
confidence.
"""

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.exceptions import PriceConversionError
from carry.models import OraclePriceData, OracleReading
from carry.rates.fixed_point import I64, I128, U64, U128, cast, safe_div


def normalize_oracle_reading(
    reading: OracleReading,
    constants: ProtocolConstants = DEFAULT_CONSTANTS,
) -> OraclePriceData:
    """Scale a feed reading into the protocol's price precision.

    Steps:
    1. feed_scale = 10 ** |exponent|
    2. feed_scale > P: divide by feed_scale // P, else multiply by P // feed_scale
    3. Range-check price as i128 then i64, confidence as u128 then u64

    Staleness and data-point sufficiency are the caller's concern: delay is
    always 0 and has_sufficient_number_of_data_points always True here.

    Raises:
        PriceConversionError: On negative confidence or any width overflow.
    """
    if reading.confidence < 0:
        raise PriceConversionError(f"negative oracle confidence {reading.confidence}")

    precision = constants.price_precision
    feed_scale = 10 ** abs(reading.exponent)

    scale_mult = 1
    scale_div = 1
    if feed_scale > precision:
        scale_div = safe_div(feed_scale, precision, PriceConversionError)
    else:
        scale_mult = safe_div(precision, feed_scale, PriceConversionError)

    price = cast(reading.price, I128, PriceConversionError) * scale_mult
    price = safe_div(cast(price, I128, PriceConversionError), scale_div, PriceConversionError)

    confidence = cast(reading.confidence, U128, PriceConversionError) * scale_mult
    confidence = safe_div(cast(confidence, U128, PriceConversionError), scale_div, PriceConversionError)

    return OraclePriceData(
        price=cast(price, I64, PriceConversionError),
        confidence=cast(confidence, U64, PriceConversionError),
        delay=0,
        has_sufficient_number_of_data_points=True,
    )
