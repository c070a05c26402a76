"""
Pool registry snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / persistence hand-off.
- Round-trippable into a `StateStore`.
- Explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.pools import PoolState, make_market
from ..state.positions import LiquidityPosition
from ..state.store import StateStore


AMM_SNAPSHOT_VERSION = 1


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(value: Any, *, name: str, max_len: int) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    if len(value) > max_len:
        raise ValueError(f"too many {name} entries: {len(value)} > {max_len}")
    return value


@dataclass(frozen=True)
class AmmSnapshot:
    """
    Deterministic, versioned snapshot of a `StateStore`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        return hashlib.sha256(self._payload()).digest()

    def commitment_hex(self) -> str:
        return sha256_hex(self._payload())

    def _payload(self) -> bytes:
        return domain_sep_bytes("amm_snapshot", version=self.version) + self.canonical_bytes()


def snapshot_from_store(store: StateStore, *, version: int = AMM_SNAPSHOT_VERSION) -> AmmSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    with store.lock:
        pools_entries = []
        positions_entries = []
        for market, pool in store.pools():
            pools_entries.append(
                {
                    "base": market[0],
                    "quote": market[1],
                    "base_reserve": int(pool.base_reserve),
                    "quote_reserve": int(pool.quote_reserve),
                    "collected_base_fees": int(pool.collected_base_fees),
                    "collected_quote_fees": int(pool.collected_quote_fees),
                }
            )
            for provider, position in store.iter_positions(market):
                positions_entries.append(
                    {
                        "base": market[0],
                        "quote": market[1],
                        "provider": provider,
                        "base_contributed": int(position.base_contributed),
                        "quote_contributed": int(position.quote_contributed),
                    }
                )

    data: Dict[str, Any] = {
        "version": int(version),
        "pools": pools_entries,
        "positions": positions_entries,
    }
    return AmmSnapshot(version=version, data=data)


def store_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    max_snapshot_bytes: int = 4_000_000,
    max_pools: int = 50_000,
    max_positions: int = 200_000,
    max_str_len: int = 512,
) -> StateStore:
    """
    Rebuild a store from snapshot `data`.

    Every entry is validated; unknown versions, duplicate keys and positions
    of markets without a pool are rejected.
    """
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")
    for name, v in (
        ("max_snapshot_bytes", max_snapshot_bytes),
        ("max_pools", max_pools),
        ("max_positions", max_positions),
        ("max_str_len", max_str_len),
    ):
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            raise ValueError(f"{name} must be a positive int")

    version = snapshot.get("version", AMM_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != AMM_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    pools_entries = _require_list(snapshot.get("pools"), name="pools", max_len=max_pools)
    positions_entries = _require_list(snapshot.get("positions"), name="positions", max_len=max_positions)
    if len(canonical_json_bytes(dict(snapshot))) > max_snapshot_bytes:
        raise ValueError("snapshot too large")

    store = StateStore()
    for entry in pools_entries:
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.pools entries must be objects")
        market = make_market(entry.get("base"), entry.get("quote"))
        if store.has_pool(market):
            raise ValueError(f"duplicate pool entry: {market}")
        store.insert_pool(
            market,
            PoolState(
                base_reserve=_require_int(entry.get("base_reserve"), name="pool.base_reserve"),
                quote_reserve=_require_int(entry.get("quote_reserve"), name="pool.quote_reserve"),
                collected_base_fees=_require_int(entry.get("collected_base_fees", 0), name="pool.collected_base_fees"),
                collected_quote_fees=_require_int(
                    entry.get("collected_quote_fees", 0), name="pool.collected_quote_fees"
                ),
            ),
        )

    for entry in positions_entries:
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.positions entries must be objects")
        market = make_market(entry.get("base"), entry.get("quote"))
        if not store.has_pool(market):
            raise ValueError(f"position for unknown market: {market}")
        provider = entry.get("provider")
        if not isinstance(provider, str) or not provider:
            raise TypeError("position.provider must be a non-empty string")
        if len(provider) > max_str_len:
            raise ValueError("position.provider too large")
        if store.has_position(market, provider):
            raise ValueError(f"duplicate position entry: {market} {provider}")
        store.put_position(
            market,
            provider,
            LiquidityPosition(
                _require_int(entry.get("base_contributed"), name="position.base_contributed"),
                _require_int(entry.get("quote_contributed"), name="position.quote_contributed"),
            ),
        )

    # Loading is not an undoable edit.
    store.commit(0)
    return store
