"""Venue client serving a recorded snapshot of venue state.

Paper mode replays a JSON file containing oracle readings, decoded market
and user accounts, and the slot/block time they were captured at. The file
is validated into the engine's own dataclasses with a pydantic TypeAdapter,
so a malformed snapshot fails at load time rather than mid-cycle.

Snapshot layout:
    {
      "slot": 250000000,
      "block_time": 1700000000,
      "oracles": {"<pubkey>": {"price": 2051234567, "confidence": 1234567, "exponent": -8}},
      "perp_markets": [{"market_index": 0, "contract_tier": "a", "amm": {...}}],
      "spot_markets": [{"market_index": 1, "decimals": 9, ...}],
      "users": {"<user account pubkey>": {"perp_positions": [...], ...}}
    }
"""

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from carry.exceptions import VenueError
from carry.logging import get_logger
from carry.models import (
    Market,
    MarketKind,
    OracleReading,
    PerpMarket,
    SpotMarket,
    UserSnapshot,
)
from carry.venue.client import VenueClient

logger = get_logger(__name__)


@dataclass
class VenueSnapshot:
    """Recorded venue state."""

    slot: int = 0
    block_time: int = 0
    oracles: dict[str, OracleReading] = field(default_factory=dict)
    perp_markets: list[PerpMarket] = field(default_factory=list)
    spot_markets: list[SpotMarket] = field(default_factory=list)
    users: dict[str, UserSnapshot] = field(default_factory=dict)


_SNAPSHOT_ADAPTER = TypeAdapter(VenueSnapshot)


def parse_snapshot(raw: str | bytes) -> VenueSnapshot:
    """Validate snapshot JSON into a VenueSnapshot.

    Raises:
        VenueError: If the document does not match the snapshot schema.
    """
    try:
        return _SNAPSHOT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise VenueError(f"invalid venue snapshot: {exc}") from exc


def load_snapshot(path: str | Path) -> VenueSnapshot:
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise VenueError(f"cannot read venue snapshot {path}: {exc}") from exc
    return parse_snapshot(raw)


class SnapshotVenueClient(VenueClient):
    """VenueClient over a VenueSnapshot (in memory or loaded from a file).

    Args:
        snapshot: Pre-built snapshot. Mutually exclusive with path.
        path: JSON snapshot file, loaded on connect().
    """

    def __init__(
        self,
        snapshot: VenueSnapshot | None = None,
        path: str | Path | None = None,
    ) -> None:
        if snapshot is None and path is None:
            raise ValueError("either snapshot or path is required")
        self._snapshot = snapshot
        self._path = path

    @property
    def snapshot(self) -> VenueSnapshot:
        if self._snapshot is None:
            raise VenueError("snapshot not loaded; call connect() first")
        return self._snapshot

    async def connect(self) -> None:
        if self._snapshot is None and self._path is not None:
            self._snapshot = load_snapshot(self._path)
        snapshot = self.snapshot
        logger.info(
            "venue_snapshot_loaded",
            slot=snapshot.slot,
            perp_markets=len(snapshot.perp_markets),
            spot_markets=len(snapshot.spot_markets),
            users=len(snapshot.users),
        )

    async def close(self) -> None:
        logger.info("venue_snapshot_closed")

    async def get_oracle_reading(self, oracle: str) -> OracleReading:
        reading = self.snapshot.oracles.get(oracle)
        if reading is None:
            raise VenueError(f"no oracle reading for {oracle}")
        return reading

    async def get_market_snapshot(self, kind: MarketKind, market_index: int) -> Market:
        markets: list[PerpMarket] | list[SpotMarket] = (
            self.snapshot.perp_markets if kind is MarketKind.PERP else self.snapshot.spot_markets
        )
        for market in markets:
            if market.market_index == market_index:
                return market
        raise VenueError(f"no {kind.value} market {market_index} in snapshot")

    async def get_user_snapshot(self, account: str) -> UserSnapshot:
        user = self.snapshot.users.get(account)
        if user is None:
            raise VenueError(f"no user account {account} in snapshot")
        return user

    async def get_slot(self) -> int:
        return self.snapshot.slot

    async def current_slot_time(self, slot: int) -> int:
        if slot != self.snapshot.slot:
            raise VenueError(f"no block time recorded for slot {slot}")
        return self.snapshot.block_time

    async def current_time(self) -> int:
        return self.snapshot.block_time
