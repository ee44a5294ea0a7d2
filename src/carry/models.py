"""Shared data models for the funding carry engine.

CRITICAL: All prices, rates, balances and sizes are fixed-point ints at the
venue's precisions (see carry.constants). Never use float in rate or sizing
math; the engine has to agree with the on-chain computation bit-for-bit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from carry.exceptions import MarketVariantError


class PositionDirection(str, Enum):
    """Order / position direction."""

    LONG = "long"
    SHORT = "short"

    def opposite(self) -> PositionDirection:
        return PositionDirection.SHORT if self is PositionDirection.LONG else PositionDirection.LONG


class MarketKind(str, Enum):
    """Market variant."""

    PERP = "perp"
    SPOT = "spot"


class SpotBalanceType(str, Enum):
    """Whether a spot balance is lent to the pool or borrowed from it."""

    DEPOSIT = "deposit"
    BORROW = "borrow"


class OrderKind(str, Enum):
    """Order type. The planner only emits market orders."""

    MARKET = "market"


class ContractTier(str, Enum):
    """Perp market risk tier; selects how hard TWAP samples are clamped."""

    A = "a"
    B = "b"
    C = "c"
    SPECULATIVE = "speculative"
    HIGHLY_SPECULATIVE = "highly_speculative"
    ISOLATED = "isolated"


_SANITIZE_CLAMP_DENOMINATORS: dict[ContractTier, int | None] = {
    ContractTier.A: 10,  # 10%
    ContractTier.B: 5,  # 20%
    ContractTier.C: 2,  # 50%
    ContractTier.SPECULATIVE: None,
    ContractTier.HIGHLY_SPECULATIVE: None,
    ContractTier.ISOLATED: None,
}


@dataclass(frozen=True)
class OracleReading:
    """Raw price feed reading in the feed's native decimal scale."""

    price: int
    confidence: int
    exponent: int
    has_sufficient_data: bool = True


@dataclass(frozen=True)
class OraclePriceData:
    """Oracle reading normalized to the protocol's price precision."""

    price: int
    confidence: int
    delay: int = 0
    has_sufficient_number_of_data_points: bool = True


@dataclass
class AmmState:
    """Perp market AMM state.

    Mutable scratch space: the TWAP updater advances it in place during one
    evaluation. The engine always works on a copy, so the fetched snapshot
    (and the venue's authoritative copy) is never touched.
    """

    oracle: str = ""
    base_asset_reserve: int = 0
    quote_asset_reserve: int = 0
    peg_multiplier: int = 0
    long_spread: int = 0
    short_spread: int = 0
    funding_period: int = 3600
    order_step_size: int = 1

    # open interest
    base_asset_amount_long: int = 0
    base_asset_amount_short: int = 0
    base_asset_amount_with_amm: int = 0

    # fee pool backing funding payouts
    total_exchange_fee: int = 0
    total_fee_minus_distributions: int = 0

    # twap state
    last_oracle_price: int = 0
    last_oracle_normalised_price: int = 0
    last_oracle_price_twap: int = 0
    last_oracle_price_twap_ts: int = 0
    last_bid_price_twap: int = 0
    last_ask_price_twap: int = 0
    last_mark_price_twap: int = 0
    last_mark_price_twap_ts: int = 0


@dataclass(frozen=True)
class Market(ABC):
    """Read-only market snapshot, either PerpMarket or SpotMarket."""

    market_index: int

    @property
    @abstractmethod
    def kind(self) -> MarketKind:
        """Which variant this market is."""

    def as_perp(self) -> PerpMarket:
        """Return this market as a PerpMarket or raise MarketVariantError."""
        if not isinstance(self, PerpMarket):
            raise MarketVariantError(
                f"market {self.market_index} is {self.kind.value}, expected perp"
            )
        return self

    def as_spot(self) -> SpotMarket:
        """Return this market as a SpotMarket or raise MarketVariantError."""
        if not isinstance(self, SpotMarket):
            raise MarketVariantError(
                f"market {self.market_index} is {self.kind.value}, expected spot"
            )
        return self


@dataclass(frozen=True)
class PerpMarket(Market):
    """Perpetual futures market snapshot."""

    amm: AmmState = field(default_factory=AmmState)
    contract_tier: ContractTier = ContractTier.SPECULATIVE

    @property
    def kind(self) -> MarketKind:
        return MarketKind.PERP

    @property
    def oracle(self) -> str:
        return self.amm.oracle

    @property
    def order_step_size(self) -> int:
        return self.amm.order_step_size

    def get_sanitize_clamp_denominator(self) -> int | None:
        """Denominator bounding one TWAP sample's move, or None for no clamp."""
        return _SANITIZE_CLAMP_DENOMINATORS[self.contract_tier]


@dataclass(frozen=True)
class SpotMarket(Market):
    """Spot lending market snapshot with its utilization curve parameters."""

    decimals: int = 6
    oracle: str = ""
    deposit_balance: int = 0
    borrow_balance: int = 0
    cumulative_deposit_interest: int = 10**10
    cumulative_borrow_interest: int = 10**10
    optimal_utilization: int = 0
    optimal_borrow_rate: int = 0
    max_borrow_rate: int = 0
    order_step_size: int = 1

    @property
    def kind(self) -> MarketKind:
        return MarketKind.SPOT


@dataclass(frozen=True)
class PerpPosition:
    """Open perp position; a zero base amount means flat."""

    market_index: int
    base_asset_amount: int

    @property
    def direction(self) -> PositionDirection:
        return PositionDirection.LONG if self.base_asset_amount > 0 else PositionDirection.SHORT

    @property
    def is_flat(self) -> bool:
        return self.base_asset_amount == 0


@dataclass(frozen=True)
class SpotPosition:
    """Spot balance in scaled units; token amount depends on market interest."""

    market_index: int
    scaled_balance: int
    balance_type: SpotBalanceType = SpotBalanceType.DEPOSIT


@dataclass(frozen=True)
class UserSnapshot:
    """Account state as fetched at the start of a cycle."""

    perp_positions: tuple[PerpPosition, ...] = ()
    spot_positions: tuple[SpotPosition, ...] = ()
    margin_trading_enabled: bool = False

    def get_perp_position(self, market_index: int) -> PerpPosition | None:
        """Return the non-flat perp position for a market, if any."""
        for position in self.perp_positions:
            if position.market_index == market_index and not position.is_flat:
                return position
        return None

    def get_spot_position(self, market_index: int) -> SpotPosition | None:
        """Return the non-empty spot position for a market, if any."""
        for position in self.spot_positions:
            if position.market_index == market_index and position.scaled_balance != 0:
                return position
        return None


@dataclass(frozen=True)
class FundingDecision:
    """Annualized funding rate and the side being paid funding.

    annualized_funding_rate is a percentage at funding-rate precision
    (1e9 == 1%/yr with default constants).
    """

    annualized_funding_rate: int
    favored_direction: PositionDirection
    oracle_price_twap: int = 0
    mark_price_twap: int = 0
    funding_rate_long: int = 0
    funding_rate_short: int = 0


@dataclass(frozen=True)
class OrderIntent:
    """Abstract order handed to the dispatcher."""

    market_index: int
    market_kind: MarketKind
    direction: PositionDirection
    size: int
    order_kind: OrderKind = OrderKind.MARKET
    reduce_only: bool = False


@dataclass(frozen=True)
class EnableMarginTradingIntent:
    """Turn on margin trading for the account before a borrow-capable spot order."""

    enabled: bool = True


Intent = OrderIntent | EnableMarginTradingIntent


@dataclass(frozen=True)
class RebalancePlan:
    """Orders moving the account toward the hedge (or out of it).

    Consumed once by the dispatcher. Intents are ordered: perp leg, margin
    enable, spot leg.
    """

    perp_order: OrderIntent | None = None
    spot_order: OrderIntent | None = None
    should_close: bool = False
    enable_margin_trading: bool = False

    def intents(self) -> Iterator[Intent]:
        if self.perp_order is not None:
            yield self.perp_order
        if self.enable_margin_trading:
            yield EnableMarginTradingIntent()
        if self.spot_order is not None:
            yield self.spot_order

    @property
    def is_empty(self) -> bool:
        return self.perp_order is None and self.spot_order is None and not self.enable_margin_trading


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of handing one intent to the dispatcher."""

    intent: Intent
    reference_id: str
    timestamp: float
    is_simulated: bool = True
