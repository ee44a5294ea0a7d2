"""Venue layer -- account addresses, market cache, and venue data clients."""

from carry.venue.cache import MarketCache
from carry.venue.client import VenueClient
from carry.venue.snapshot import SnapshotVenueClient, VenueSnapshot, load_snapshot

__all__ = [
    "MarketCache",
    "SnapshotVenueClient",
    "VenueClient",
    "VenueSnapshot",
    "load_snapshot",
]
