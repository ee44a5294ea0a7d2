"""Per-cycle cache of market snapshots keyed by derived address.

Markets are fetched once per cycle and looked up either by address or by
(kind, index). Typed lookups go through Market.as_perp / as_spot, so asking
for the wrong variant is a reportable MarketVariantError.
"""

from solders.pubkey import Pubkey

from carry.config import DEFAULT_PROGRAM_ID
from carry.exceptions import MarketNotFoundError
from carry.models import Market, MarketKind, PerpMarket, SpotMarket
from carry.venue.addresses import get_market_public_key


class MarketCache:
    """Market snapshots for one evaluation cycle.

    Args:
        program_id: Venue program the market addresses are derived from.
    """

    def __init__(self, program_id: Pubkey | str = DEFAULT_PROGRAM_ID) -> None:
        self._program_id = (
            Pubkey.from_string(program_id) if isinstance(program_id, str) else program_id
        )
        self._markets: dict[Pubkey, Market] = {}

    def add(self, market: Market) -> Pubkey:
        """Store a snapshot and return the address it is cached under."""
        address = get_market_public_key(market.kind, market.market_index, self._program_id)
        self._markets[address] = market
        return address

    def get(self, address: Pubkey) -> Market:
        market = self._markets.get(address)
        if market is None:
            raise MarketNotFoundError(f"no market cached at {address}")
        return market

    def perp(self, market_index: int) -> PerpMarket:
        address = get_market_public_key(MarketKind.PERP, market_index, self._program_id)
        return self.get(address).as_perp()

    def spot(self, market_index: int) -> SpotMarket:
        address = get_market_public_key(MarketKind.SPOT, market_index, self._program_id)
        return self.get(address).as_spot()

    def __len__(self) -> int:
        return len(self._markets)

    def __contains__(self, address: object) -> bool:
        return address in self._markets
