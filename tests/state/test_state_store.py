# [TESTER] v1

from __future__ import annotations

import pytest

from cpamm.state.balances import BalanceTable, require_asset_id
from cpamm.state.pools import PoolState, make_market
from cpamm.state.positions import EMPTY_POSITION, LiquidityPosition
from cpamm.state.store import StateStore


class _Journal:
    """Minimal journaled participant recording the calls it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []
        self._n = 0

    def checkpoint(self) -> int:
        self._n += 1
        self.calls.append(("checkpoint", self._n))
        return self._n

    def rollback(self, mark: int) -> None:
        self.calls.append(("rollback", mark))

    def commit(self, mark: int) -> None:
        self.calls.append(("commit", mark))


def _store_with_pool() -> StateStore:
    store = StateStore()
    store.insert_pool((0, 1), PoolState(base_reserve=100, quote_reserve=200))
    return store


def test_make_market_validation() -> None:
    assert make_market(0, 1) == (0, 1)
    assert make_market(1, 0) != make_market(0, 1)
    with pytest.raises(ValueError):
        make_market(2, 2)
    with pytest.raises(ValueError):
        make_market(0, 256)
    with pytest.raises(TypeError):
        make_market("0", 1)
    with pytest.raises(TypeError):
        require_asset_id(True)


def test_pool_and_position_validation() -> None:
    with pytest.raises(ValueError):
        PoolState(base_reserve=-1, quote_reserve=1)
    with pytest.raises(TypeError):
        PoolState(base_reserve=1, quote_reserve=1.0)  # type: ignore[arg-type]
    assert PoolState(1, 1, collected_quote_fees=3).has_collected_fees()
    assert not PoolState(1, 1).has_collected_fees()
    assert PoolState(3, 4).get_constant_product() == 12
    assert LiquidityPosition().is_empty()
    with pytest.raises(ValueError):
        LiquidityPosition(-1, 0)


def test_insert_and_put_pool() -> None:
    store = _store_with_pool()
    with pytest.raises(KeyError):
        store.insert_pool((0, 1), PoolState(base_reserve=1, quote_reserve=1))
    with pytest.raises(KeyError):
        store.put_pool((1, 0), PoolState(base_reserve=1, quote_reserve=1))

    store.put_pool((0, 1), PoolState(base_reserve=5, quote_reserve=6))
    assert store.get_pool((0, 1)) == PoolState(base_reserve=5, quote_reserve=6)
    assert store.get_pool((1, 0)) is None


def test_markets_are_sorted_and_paged_by_cursor() -> None:
    store = StateStore()
    for market in [(2, 0), (0, 2), (1, 0), (0, 1)]:
        store.insert_pool(market, PoolState(base_reserve=1, quote_reserve=1))

    assert store.markets() == [(0, 1), (0, 2), (1, 0), (2, 0)]
    assert store.markets(start_after=(0, 2)) == [(1, 0), (2, 0)]
    assert store.markets(start_after=(2, 0)) == []


def test_pools_pair_each_market_with_its_state() -> None:
    store = StateStore()
    assert store.pools() == []
    store.insert_pool((1, 0), PoolState(base_reserve=5, quote_reserve=6))
    store.insert_pool((0, 1), PoolState(base_reserve=7, quote_reserve=8, collected_quote_fees=1))

    assert store.pools() == [
        ((0, 1), PoolState(base_reserve=7, quote_reserve=8, collected_quote_fees=1)),
        ((1, 0), PoolState(base_reserve=5, quote_reserve=6)),
    ]


def test_positions_default_to_empty_and_page_in_provider_order() -> None:
    store = _store_with_pool()
    market = (0, 1)
    assert store.get_position(market, "nobody") == EMPTY_POSITION
    assert not store.has_position(market, "nobody")

    for provider in ["carol", "alice", "erin", "bob", "dave"]:
        store.put_position(market, provider, LiquidityPosition(1, 1))

    first = store.positions_page(market, limit=2)
    assert [p for p, _ in first] == ["alice", "bob"]
    second = store.positions_page(market, start_after="bob", limit=2)
    assert [p for p, _ in second] == ["carol", "dave"]
    assert [p for p, _ in store.iter_positions(market, page_size=2)] == ["alice", "bob", "carol", "dave", "erin"]
    assert store.position_count(market) == 5
    assert list(store.iter_positions((1, 0))) == []

    with pytest.raises(ValueError):
        store.positions_page(market, limit=0)


def test_atomic_rolls_back_store_and_participants() -> None:
    store = _store_with_pool()
    market = (0, 1)
    journal = _Journal()

    with pytest.raises(RuntimeError):
        with store.atomic(journal):
            store.put_pool(market, PoolState(base_reserve=1, quote_reserve=1))
            store.put_position(market, "alice", LiquidityPosition(5, 5))
            store.insert_pool((1, 0), PoolState(base_reserve=1, quote_reserve=1))
            raise RuntimeError("boom")

    assert store.get_pool(market) == PoolState(base_reserve=100, quote_reserve=200)
    assert store.get_pool((1, 0)) is None
    assert not store.has_position(market, "alice")
    assert store.position_count(market) == 0
    assert journal.calls == [("checkpoint", 1), ("rollback", 1)]


def test_atomic_commits_only_at_outermost_level() -> None:
    store = _store_with_pool()
    market = (0, 1)
    journal = _Journal()
    mark = store.checkpoint()

    with store.atomic(journal):
        store.put_position(market, "alice", LiquidityPosition(1, 2))
        with pytest.raises(ValueError):
            with store.atomic(journal):
                store.put_position(market, "bob", LiquidityPosition(3, 4))
                raise ValueError("inner")
        with store.atomic(journal):
            store.put_position(market, "carol", LiquidityPosition(5, 6))

    assert store.get_position(market, "alice") == LiquidityPosition(1, 2)
    assert not store.has_position(market, "bob")
    assert store.get_position(market, "carol") == LiquidityPosition(5, 6)
    assert [c for c, _ in journal.calls if c == "commit"] == ["commit"]
    # Nothing left to undo once committed.
    assert store.checkpoint() == mark


def test_balance_table_basics() -> None:
    table = BalanceTable(max_value=100)
    table.add("alice", 0, 60)
    table.subtract("alice", 0, 10)
    assert table.get("alice", 0) == 50
    assert table.get("alice", 1) == 0

    with pytest.raises(ValueError):
        table.subtract("alice", 0, 51)
    with pytest.raises(ValueError):
        table.add("alice", 0, 51)

    table.subtract("alice", 0, 50)
    assert table.get_all_balances() == {}
