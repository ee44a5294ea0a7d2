"""Shared test fixtures for the funding carry engine.

The default market pair is built so every rate is easy to verify by hand:
- Perp AMM reserves and peg put the reserve price at exactly 100.000000
- Bid/ask TWAPs sit at 100.000000, the oracle TWAP at 99.000000
- NOW is one full funding period after the last TWAP update, so each
  TWAP resets to its new sample
- Spot pool: 1000 deposited, 250 borrowed -> 20% utilization -> 2.5% borrow
"""

import pytest

from carry.config import AppSettings, StrategySettings, VenueSettings
from carry.constants import DEFAULT_CONSTANTS, ProtocolConstants
from carry.engine import AccountState, RateEngine
from carry.models import (
    AmmState,
    ContractTier,
    OracleReading,
    PerpMarket,
    SpotMarket,
    UserSnapshot,
)
from carry.position.planner import PositionPlanner
from carry.venue.cache import MarketCache

LAST_UPDATE = 1_700_000_000
NOW = LAST_UPDATE + 3600

PERP_ORACLE = "PerpOracle111111111111111111111111111111111"
SPOT_ORACLE = "SpotOracle111111111111111111111111111111111"

# system program id: any valid base58 pubkey works as a wallet authority
AUTHORITY = "11111111111111111111111111111111"


@pytest.fixture
def constants() -> ProtocolConstants:
    return DEFAULT_CONSTANTS


@pytest.fixture
def now() -> int:
    """One funding period after the last TWAP update."""
    return NOW


@pytest.fixture
def amm() -> AmmState:
    """Balanced AMM with reserve price 100.000000 and no spreads."""
    return AmmState(
        oracle=PERP_ORACLE,
        base_asset_reserve=10**13,
        quote_asset_reserve=10**13,
        peg_multiplier=100 * 10**6,
        funding_period=3600,
        order_step_size=1,
        last_oracle_price=99_000_000,
        last_oracle_price_twap=99_000_000,
        last_oracle_price_twap_ts=LAST_UPDATE,
        last_bid_price_twap=100_000_000,
        last_ask_price_twap=100_000_000,
        last_mark_price_twap=100_000_000,
        last_mark_price_twap_ts=LAST_UPDATE,
        total_fee_minus_distributions=10**9,
    )


@pytest.fixture
def perp_market(amm: AmmState) -> PerpMarket:
    return PerpMarket(market_index=0, amm=amm, contract_tier=ContractTier.A)


@pytest.fixture
def spot_market() -> SpotMarket:
    """Spot pool at 20% utilization on a 80% / 10% / 100% curve."""
    return SpotMarket(
        market_index=1,
        decimals=9,
        oracle=SPOT_ORACLE,
        deposit_balance=1000 * 10**9,
        borrow_balance=250 * 10**9,
        optimal_utilization=800_000,
        optimal_borrow_rate=100_000,
        max_borrow_rate=1_000_000,
        order_step_size=1,
    )


@pytest.fixture
def oracle_reading() -> OracleReading:
    """99.000000 at exponent -6 (already at price precision)."""
    return OracleReading(price=99_000_000, confidence=0, exponent=-6)


@pytest.fixture
def market_cache(perp_market: PerpMarket, spot_market: SpotMarket) -> MarketCache:
    cache = MarketCache()
    cache.add(perp_market)
    cache.add(spot_market)
    return cache


@pytest.fixture
def flat_user() -> UserSnapshot:
    return UserSnapshot()


@pytest.fixture
def account_state(market_cache: MarketCache, flat_user: UserSnapshot) -> AccountState:
    return AccountState(markets=market_cache, user=flat_user, spot_market_index=1)


@pytest.fixture
def strategy_settings() -> StrategySettings:
    return StrategySettings(
        mode="paper",
        perp_market_index=0,
        spot_market_index=1,
        target_position_size=100,
        scan_interval=0,
        error_backoff=0.0,
    )


@pytest.fixture
def planner(strategy_settings: StrategySettings, constants: ProtocolConstants) -> PositionPlanner:
    return PositionPlanner(strategy_settings, constants=constants)


@pytest.fixture
def engine(planner: PositionPlanner, constants: ProtocolConstants) -> RateEngine:
    return RateEngine(planner, constants=constants)


@pytest.fixture
def mock_settings(strategy_settings: StrategySettings) -> AppSettings:
    """AppSettings with test defaults (paper mode, system program as authority)."""
    return AppSettings(
        log_level="DEBUG",
        venue=VenueSettings(authority=AUTHORITY, subaccount_id=0),
        strategy=strategy_settings,
    )
