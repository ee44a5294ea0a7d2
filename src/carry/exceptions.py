"""Custom exceptions for the funding carry engine.

Every failure an evaluation cycle can hit derives from EngineError so the
orchestrator can treat a failed cycle uniformly: log it, skip dispatch,
and retry on the next interval.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""


class PriceConversionError(EngineError):
    """Raised when an oracle reading cannot be scaled into price precision."""


class RateComputationError(EngineError):
    """Raised on overflow, zero divisor or invalid market configuration in rate math."""


class InsufficientDataError(EngineError):
    """Raised when the oracle reports too few data points to be trusted."""


class MarketVariantError(EngineError):
    """Raised when a perp market is requested as spot or vice versa."""


class MarketNotFoundError(EngineError):
    """Raised when a market snapshot is missing from the cache."""


class VenueError(EngineError):
    """Raised when a venue collaborator (fetch, decode, clock) fails."""
