"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from carry.constants import ProtocolConstants

DEFAULT_PROGRAM_ID = "dRiftyHA39MWEi3m9aunc5MzRF1JYuBsbn6VPcn33UH"


class VenueSettings(BaseSettings):
    """Venue program and account identifiers."""

    model_config = SettingsConfigDict(env_prefix="VENUE_")

    program_id: str = DEFAULT_PROGRAM_ID
    authority: str = ""  # base58 wallet pubkey owning the sub-account
    subaccount_id: int = 0
    snapshot_path: str = "data/snapshot.json"  # paper mode replays this file


class StrategySettings(BaseSettings):
    """Hedge pair and sizing parameters."""

    model_config = SettingsConfigDict(env_prefix="STRATEGY_")

    mode: Literal["paper"] = "paper"
    perp_market_index: int = 0
    spot_market_index: int = 1
    target_position_size: int = 100_000_000  # base precision 1e9 -> 0.1 units
    scan_interval: int = 60  # seconds between evaluation cycles
    error_backoff: float = 10.0  # seconds to wait after a failed cycle


class ProtocolSettings(BaseSettings):
    """Venue precisions. Override only to mirror a venue upgrade or in tests."""

    model_config = SettingsConfigDict(env_prefix="PROTOCOL_")

    price_precision: int = 10**6
    funding_rate_buffer: int = 10**3
    base_precision: int = 10**9
    quote_precision: int = 10**6
    peg_precision: int = 10**6
    bid_ask_spread_precision: int = 10**6
    spot_utilization_precision: int = 10**6
    spot_rate_precision: int = 10**6
    max_funding_spread_denominator: int = 33

    def to_constants(self) -> ProtocolConstants:
        """Freeze these settings into the value passed to the engine."""
        return ProtocolConstants(
            price_precision=self.price_precision,
            funding_rate_buffer=self.funding_rate_buffer,
            base_precision=self.base_precision,
            quote_precision=self.quote_precision,
            peg_precision=self.peg_precision,
            bid_ask_spread_precision=self.bid_ask_spread_precision,
            spot_utilization_precision=self.spot_utilization_precision,
            spot_rate_precision=self.spot_rate_precision,
            max_funding_spread_denominator=self.max_funding_spread_denominator,
        )


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    venue: VenueSettings = VenueSettings()
    strategy: StrategySettings = StrategySettings()
    protocol: ProtocolSettings = ProtocolSettings()
