# [TESTER] v1

from __future__ import annotations

import pytest

from cpamm.integration.amm_snapshot import snapshot_from_store, store_from_snapshot
from cpamm.integration.ledger import InMemoryLedger
from cpamm.integration.market_engine import MarketEngine
from cpamm.state.pools import PoolState
from cpamm.state.positions import LiquidityPosition
from cpamm.state.store import StateStore


def _traded_engine() -> MarketEngine:
    ledger = InMemoryLedger()
    for account in ("alice", "bob"):
        for asset in (0, 1, 2):
            ledger.mint(asset, account, 1_000_000)
    engine = MarketEngine(ledger)
    engine.create_market_pool("alice", 0, 1, 100_000, 100_000)
    engine.create_market_pool("bob", 2, 0, 5_000, 9_000)
    engine.deposit_liquidity("bob", (0, 1), 1_000, 1_000)
    engine.buy("bob", (0, 1), 10_000)
    return engine


def test_snapshot_roundtrip_is_deterministic() -> None:
    engine = _traded_engine()

    snap1 = snapshot_from_store(engine.store)
    store2 = store_from_snapshot(snap1.data)
    snap2 = snapshot_from_store(store2)

    assert snap1.canonical_bytes() == snap2.canonical_bytes()
    assert snap1.commitment_hex() == snap2.commitment_hex()
    assert snap1.commitment_hex() == "0x" + snap1.commitment_bytes().hex()
    assert store2.get_pool((0, 1)) == engine.pool((0, 1))
    assert store2.get_position((0, 1), "bob") == LiquidityPosition(1_000, 1_000)
    # A loaded store has nothing to roll back.
    assert store2.checkpoint() == 0


def test_snapshot_ignores_insertion_order() -> None:
    a = StateStore()
    b = StateStore()
    pools = [((1, 0), PoolState(3, 4)), ((0, 1), PoolState(1, 2, collected_base_fees=7))]
    for market, pool in pools:
        a.insert_pool(market, pool)
    for market, pool in reversed(pools):
        b.insert_pool(market, pool)
    for provider in ("zed", "amy"):
        a.put_position((0, 1), provider, LiquidityPosition(1, 1))
    for provider in ("amy", "zed"):
        b.put_position((0, 1), provider, LiquidityPosition(1, 1))

    assert snapshot_from_store(a).commitment_bytes() == snapshot_from_store(b).commitment_bytes()


def test_state_change_changes_commitment() -> None:
    engine = _traded_engine()
    before = snapshot_from_store(engine.store).commitment_hex()
    engine.sell("bob", (0, 1), 100)
    assert snapshot_from_store(engine.store).commitment_hex() != before


def test_store_from_snapshot_rejects_bad_input() -> None:
    good = snapshot_from_store(_traded_engine().store).data

    with pytest.raises(ValueError, match="unsupported snapshot version"):
        store_from_snapshot({**good, "version": 2})

    with pytest.raises(ValueError, match="duplicate pool"):
        store_from_snapshot({**good, "pools": good["pools"] + good["pools"][:1]})

    orphan = {"base": 1, "quote": 2, "provider": "x", "base_contributed": 1, "quote_contributed": 1}
    with pytest.raises(ValueError, match="unknown market"):
        store_from_snapshot({**good, "positions": [orphan]})

    negative = dict(good["pools"][0], base_reserve=-1)
    with pytest.raises(ValueError):
        store_from_snapshot({**good, "pools": [negative]})

    with pytest.raises(ValueError, match="too many pools"):
        store_from_snapshot(good, max_pools=1)

    with pytest.raises(ValueError, match="too large"):
        store_from_snapshot(good, max_snapshot_bytes=64)

    with pytest.raises(TypeError):
        store_from_snapshot([good])  # type: ignore[arg-type]
