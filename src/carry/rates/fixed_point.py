"""Checked fixed-point integer arithmetic.

Python ints never overflow, so the venue's fixed-width integer semantics
are reproduced explicitly: results are range-checked against the width the
venue stores them in, and division truncates toward zero the way the
venue's signed division does (Python's // floors instead).

Every helper raises instead of saturating. The error type defaults to
RateComputationError and can be overridden by callers such as the oracle
normalizer that report PriceConversionError.
"""

from carry.exceptions import EngineError, RateComputationError

I64 = (-(2**63), 2**63 - 1)
U64 = (0, 2**64 - 1)
I128 = (-(2**127), 2**127 - 1)
U128 = (0, 2**128 - 1)

_WIDTH_NAMES = {I64: "i64", U64: "u64", I128: "i128", U128: "u128"}


def cast(
    value: int,
    bounds: tuple[int, int],
    error: type[EngineError] = RateComputationError,
) -> int:
    """Return value if it fits the integer width given by bounds."""
    low, high = bounds
    if value < low or value > high:
        raise error(f"{value} does not fit in {_WIDTH_NAMES.get(bounds, bounds)}")
    return value


def safe_div(
    numerator: int,
    denominator: int,
    error: type[EngineError] = RateComputationError,
) -> int:
    """Integer division truncating toward zero; zero divisor raises."""
    if denominator == 0:
        raise error(f"division by zero ({numerator} / 0)")
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def safe_div_ceil(
    numerator: int,
    denominator: int,
    error: type[EngineError] = RateComputationError,
) -> int:
    """Unsigned division rounding up."""
    if denominator == 0:
        raise error(f"division by zero ({numerator} / 0)")
    if numerator < 0 or denominator < 0:
        raise error("safe_div_ceil is only defined for non-negative operands")
    return -(-numerator // denominator)


def safe_sub_unsigned(
    left: int,
    right: int,
    error: type[EngineError] = RateComputationError,
) -> int:
    """Unsigned subtraction; underflow below zero raises."""
    if right > left:
        raise error(f"underflow: {left} - {right}")
    return left - right


def saturating_sub(left: int, right: int) -> int:
    """Unsigned subtraction clamped at zero."""
    return max(left - right, 0)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
