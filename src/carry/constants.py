"""Protocol precision constants.

The engine never reads these from module globals in its math: a
ProtocolConstants value is built once (defaults or ProtocolSettings) and
passed into every calculation, so tests can run with synthetic precisions.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolConstants:
    """Fixed-point scales and venue parameters used by the rate math."""

    price_precision: int = 10**6
    funding_rate_buffer: int = 10**3
    base_precision: int = 10**9
    quote_precision: int = 10**6
    peg_precision: int = 10**6
    bid_ask_spread_precision: int = 10**6
    spot_utilization_precision: int = 10**6
    spot_rate_precision: int = 10**6
    spot_balance_precision_exp: int = 9
    spot_cumulative_interest_precision_exp: int = 10
    one_hour: int = 3600
    max_funding_spread_denominator: int = 33  # ~3%
    fee_lower_bound_numerator: int = 1
    fee_lower_bound_denominator: int = 2
    funding_fee_pool_denominator: int = 3

    @property
    def funding_rate_precision(self) -> int:
        """Precision of per-period funding rates (price precision * buffer)."""
        return self.price_precision * self.funding_rate_buffer

    @property
    def price_to_peg_ratio(self) -> int:
        return self.price_precision // self.peg_precision

    @property
    def funding_payment_divisor(self) -> int:
        """Divisor turning base amount * funding rate into quote precision."""
        return self.base_precision * self.funding_rate_buffer * self.price_precision // self.quote_precision


DEFAULT_CONSTANTS = ProtocolConstants()
