"""Rate engine: one evaluation cycle from fetched state to a RebalancePlan.

evaluate_cycle is the single entry point. Given the cycle's market cache,
user snapshot, raw oracle reading and timestamp it:
  1. Normalizes the oracle reading
  2. Advances a scratch copy of the perp AMM's TWAPs and derives funding
  3. Computes the spot market's borrow rate and rescales it to APR units
  4. Hands both rates and the account's legs to the PositionPlanner

The cycle performs no I/O and never mutates its inputs, so evaluating the
same inputs twice yields equal plans and a failed cycle can simply be
retried. Any failure aborts the cycle with an EngineError subclass; no
partial plan is produced.
"""

from copy import copy
from dataclasses import dataclass, replace

from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.exceptions import InsufficientDataError
from carry.logging import get_logger
from carry.models import OracleReading, RebalancePlan, UserSnapshot
from carry.position.planner import PositionPlanner
from carry.position.sizing import signed_token_amount
from carry.rates.borrow import borrow_rate_to_apr, compute_borrow_rate
from carry.rates.funding import (
    FundingSplitter,
    calculate_funding_rate_long_short,
    compute_funding_rate,
)
from carry.rates.oracle import normalize_oracle_reading
from carry.venue.cache import MarketCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountState:
    """Everything fetched for one cycle besides the oracle reading."""

    markets: MarketCache
    user: UserSnapshot
    spot_market_index: int


class RateEngine:
    """Stateless evaluator of the carry trade.

    Args:
        planner: Turns rates and positions into orders.
        constants: Venue precisions used by every rate computation.
        funding_splitter: Long/short funding split rule of the venue.
    """

    def __init__(
        self,
        planner: PositionPlanner,
        constants: ProtocolConstants = DEFAULT_CONSTANTS,
        funding_splitter: FundingSplitter = calculate_funding_rate_long_short,
    ) -> None:
        self._planner = planner
        self._constants = constants
        self._funding_splitter = funding_splitter

    @property
    def constants(self) -> ProtocolConstants:
        return self._constants

    def evaluate_cycle(
        self,
        market_id: int,
        account_state: AccountState,
        oracle_reading: OracleReading,
        now: int,
    ) -> RebalancePlan:
        """Evaluate funding against borrow cost and plan the hedge.

        Args:
            market_id: Perp market index of the hedge.
            account_state: Market cache, user snapshot and spot market index.
            oracle_reading: Raw reading of the perp market's oracle.
            now: Unix timestamp the TWAPs are advanced to.

        Returns:
            RebalancePlan for this cycle (possibly empty).

        Raises:
            InsufficientDataError: If the oracle lacks enough data points.
            PriceConversionError: If the reading cannot be scaled.
            RateComputationError: On overflow, zero divisors or bad curve config.
            MarketNotFoundError: If either market is missing from the cache.
            MarketVariantError: If a cached market is the wrong variant.
        """
        perp_market = account_state.markets.perp(market_id)
        spot_market = account_state.markets.spot(account_state.spot_market_index)

        if not oracle_reading.has_sufficient_data:
            raise InsufficientDataError(
                f"oracle {perp_market.oracle} for perp market {market_id} "
                f"has too few data points"
            )
        oracle = normalize_oracle_reading(oracle_reading, self._constants)

        # TWAP updates mutate the AMM; keep the cached snapshot untouched
        scratch = replace(perp_market, amm=copy(perp_market.amm))
        decision = compute_funding_rate(
            scratch, oracle, now, self._constants, self._funding_splitter
        )

        borrow_rate = compute_borrow_rate(spot_market, self._constants)
        borrow_apr = borrow_rate_to_apr(borrow_rate, self._constants)

        logger.info(
            "rates_computed",
            oracle_price=str(oracle.price),
            oracle_price_twap=str(decision.oracle_price_twap),
            mark_price_twap=str(decision.mark_price_twap),
            funding_apr=str(decision.annualized_funding_rate),
            favored_direction=decision.favored_direction.value,
            borrow_rate=str(borrow_rate),
            borrow_apr=str(borrow_apr),
        )

        user = account_state.user
        spot_position = user.get_spot_position(spot_market.market_index)
        return self._planner.plan(
            decision=decision,
            borrow_rate=borrow_apr,
            perp_market=perp_market,
            spot_market=spot_market,
            perp_position=user.get_perp_position(perp_market.market_index),
            spot_token_amount=signed_token_amount(spot_position, spot_market, self._constants),
            margin_trading_enabled=user.margin_trading_enabled,
        )
