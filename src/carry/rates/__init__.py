"""Rate computation -- oracle scaling, TWAPs, funding and borrow rates.

Everything here is integer fixed-point arithmetic matching the venue's
on-chain math.
"""

from carry.rates.borrow import borrow_rate_to_apr, compute_borrow_rate
from carry.rates.funding import (
    FundingSplitter,
    calculate_funding_rate_long_short,
    compute_funding_rate,
)
from carry.rates.oracle import normalize_oracle_reading

__all__ = [
    "FundingSplitter",
    "borrow_rate_to_apr",
    "calculate_funding_rate_long_short",
    "compute_borrow_rate",
    "compute_funding_rate",
    "normalize_oracle_reading",
]
