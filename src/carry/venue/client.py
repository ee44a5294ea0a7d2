"""Abstract venue client interface.

Defines the contract for everything the engine reads from the venue.
Strategy and orchestration code depends only on this interface, keeping
RPC transport and account decoding in concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from solders.pubkey import Pubkey

from carry.config import DEFAULT_PROGRAM_ID
from carry.models import Market, MarketKind, OracleReading, UserSnapshot
from carry.venue.cache import MarketCache


class VenueClient(ABC):
    """Abstract base class for venue data sources.

    Each call is a single round trip; timeouts belong to the implementation.
    Failures should surface as VenueError.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection (or load the data source)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connection resources."""
        ...

    @abstractmethod
    async def get_oracle_reading(self, oracle: str) -> OracleReading:
        """Latest raw reading (price, confidence, exponent) of a price feed."""
        ...

    @abstractmethod
    async def get_market_snapshot(self, kind: MarketKind, market_index: int) -> Market:
        """Decoded perp or spot market account."""
        ...

    @abstractmethod
    async def get_user_snapshot(self, account: str) -> UserSnapshot:
        """Decoded user account: positions and margin trading flag."""
        ...

    @abstractmethod
    async def get_slot(self) -> int:
        """Current confirmed slot."""
        ...

    @abstractmethod
    async def current_slot_time(self, slot: int) -> int:
        """Unix timestamp of a slot; TWAP elapsed time is measured against it."""
        ...

    @abstractmethod
    async def current_time(self) -> int:
        """Wall-clock unix timestamp as seen by the venue."""
        ...

    async def load_markets(
        self,
        perp_indices: Iterable[int],
        spot_indices: Iterable[int],
        program_id: Pubkey | str = DEFAULT_PROGRAM_ID,
    ) -> MarketCache:
        """Fetch the given markets into a fresh MarketCache.

        Returns:
            MarketCache holding one snapshot per requested index.
        """
        cache = MarketCache(program_id)
        for index in perp_indices:
            cache.add(await self.get_market_snapshot(MarketKind.PERP, index))
        for index in spot_indices:
            cache.add(await self.get_market_snapshot(MarketKind.SPOT, index))
        return cache
