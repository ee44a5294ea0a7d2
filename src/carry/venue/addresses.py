"""Deterministic account addresses for venue markets and users.

Every venue account lives at a program-derived address computed from fixed
seeds, so addresses are derived locally instead of being looked up. Market
and sub-account indices are encoded as little-endian u16.
"""

from solders.pubkey import Pubkey

from carry.models import MarketKind


def _u16(value: int) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{value} does not fit in u16")
    return value.to_bytes(2, "little")


def _derive(seeds: list[bytes], program_id: Pubkey) -> Pubkey:
    address, _bump = Pubkey.find_program_address(seeds, program_id)
    return address


def get_perp_market_public_key(market_index: int, program_id: Pubkey) -> Pubkey:
    return _derive([b"perp_market", _u16(market_index)], program_id)


def get_spot_market_public_key(market_index: int, program_id: Pubkey) -> Pubkey:
    return _derive([b"spot_market", _u16(market_index)], program_id)


def get_market_public_key(kind: MarketKind, market_index: int, program_id: Pubkey) -> Pubkey:
    if kind is MarketKind.PERP:
        return get_perp_market_public_key(market_index, program_id)
    return get_spot_market_public_key(market_index, program_id)


def get_user_public_key(authority: Pubkey, subaccount_id: int, program_id: Pubkey) -> Pubkey:
    return _derive([b"user", bytes(authority), _u16(subaccount_id)], program_id)
