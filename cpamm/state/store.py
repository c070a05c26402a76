"""
Journaled pool registry + liquidity ledger.

`StateStore` holds the two persisted maps of the engine:

    pools:     (base, quote)             -> PoolState
    positions: ((base, quote), provider) -> LiquidityPosition

Writes are recorded in an undo journal so that a multi-step operation can be
rolled back as a unit (`atomic()`); other journaled participants (the asset
ledger) are checkpointed and rolled back alongside the store. The store owns
the single-writer lock: every atomic unit runs under it.
"""

from __future__ import annotations

import bisect
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Tuple, Union

from .balances import AccountId
from .pools import Market, PoolState
from .positions import EMPTY_POSITION, LiquidityPosition


class Journaled(Protocol):
    """Anything that can take part in an atomic unit."""

    def checkpoint(self) -> int: ...

    def rollback(self, mark: int) -> None: ...

    def commit(self, mark: int) -> None: ...


_Undo = Tuple[str, object, Optional[Union[PoolState, LiquidityPosition]]]


class StateStore:
    """In-memory transactional store for pools and liquidity positions."""

    def __init__(self) -> None:
        self._pools: Dict[Market, PoolState] = {}
        self._positions: Dict[Tuple[Market, AccountId], LiquidityPosition] = {}
        # Per-market provider ids, kept sorted for stable pagination.
        self._providers: Dict[Market, List[AccountId]] = {}
        self._journal: List[_Undo] = []
        self._lock = threading.RLock()
        self._depth = 0

    # -- pools ---------------------------------------------------------------

    def get_pool(self, market: Market) -> Optional[PoolState]:
        return self._pools.get(market)

    def has_pool(self, market: Market) -> bool:
        return market in self._pools

    def insert_pool(self, market: Market, pool: PoolState) -> None:
        """Insert a new pool. Raises KeyError if the market already has one."""
        if market in self._pools:
            raise KeyError(f"pool already exists: {market}")
        self._journal.append(("pool", market, None))
        self._pools[market] = pool

    def put_pool(self, market: Market, pool: PoolState) -> None:
        """Replace an existing pool. Raises KeyError if there is none."""
        prev = self._pools.get(market)
        if prev is None:
            raise KeyError(f"no pool for market: {market}")
        self._journal.append(("pool", market, prev))
        self._pools[market] = pool

    def markets(self, *, start_after: Optional[Market] = None) -> List[Market]:
        """All markets with a pool, sorted; optionally only those after a cursor."""
        out = sorted(self._pools)
        if start_after is not None:
            out = out[bisect.bisect_right(out, start_after):]
        return out

    def pools(self) -> List[Tuple[Market, PoolState]]:
        return sorted(self._pools.items())

    # -- positions -----------------------------------------------------------

    def get_position(self, market: Market, provider: AccountId) -> LiquidityPosition:
        """Position of *provider* in *market*; an empty position if none was recorded."""
        return self._positions.get((market, provider), EMPTY_POSITION)

    def has_position(self, market: Market, provider: AccountId) -> bool:
        return (market, provider) in self._positions

    def put_position(self, market: Market, provider: AccountId, position: LiquidityPosition) -> None:
        key = (market, provider)
        prev = self._positions.get(key)
        self._journal.append(("position", key, prev))
        self._positions[key] = position
        if prev is None:
            bisect.insort(self._providers.setdefault(market, []), provider)

    def positions_page(
        self,
        market: Market,
        *,
        start_after: Optional[AccountId] = None,
        limit: int = 256,
    ) -> List[Tuple[AccountId, LiquidityPosition]]:
        """One page of (provider, position) pairs in provider order."""
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            raise ValueError(f"limit must be a positive int: {limit!r}")
        providers = self._providers.get(market, [])
        start = 0 if start_after is None else bisect.bisect_right(providers, start_after)
        return [(p, self._positions[(market, p)]) for p in providers[start:start + limit]]

    def iter_positions(
        self, market: Market, *, page_size: int = 256
    ) -> Iterator[Tuple[AccountId, LiquidityPosition]]:
        """Iterate every position of *market*, fetching one page at a time."""
        cursor: Optional[AccountId] = None
        while True:
            page = self.positions_page(market, start_after=cursor, limit=page_size)
            if not page:
                return
            yield from page
            cursor = page[-1][0]

    def position_count(self, market: Market) -> int:
        return len(self._providers.get(market, []))

    # -- transactions --------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def checkpoint(self) -> int:
        return len(self._journal)

    def rollback(self, mark: int) -> None:
        """Undo every write recorded after *mark*, newest first."""
        while len(self._journal) > mark:
            kind, key, prev = self._journal.pop()
            if kind == "pool":
                if prev is None:
                    del self._pools[key]  # type: ignore[arg-type]
                else:
                    self._pools[key] = prev  # type: ignore[index,assignment]
            else:
                market, provider = key  # type: ignore[misc]
                if prev is None:
                    del self._positions[(market, provider)]
                    providers = self._providers[market]
                    providers.pop(bisect.bisect_left(providers, provider))
                    if not providers:
                        del self._providers[market]
                else:
                    self._positions[(market, provider)] = prev  # type: ignore[assignment]

    def commit(self, mark: int) -> None:
        """Make writes after *mark* permanent (drop their undo entries)."""
        del self._journal[mark:]

    @contextmanager
    def atomic(self, *participants: Journaled) -> Iterator[None]:
        """
        Run a block as one all-or-nothing unit under the writer lock.

        On any exception the store and every participant are rolled back to
        their state at entry and the exception propagates. Nested units join
        the outermost one: only the outermost commit is final.
        """
        with self._lock:
            members: Tuple[Journaled, ...] = (self, *participants)
            marks = [(m, m.checkpoint()) for m in members]
            self._depth += 1
            try:
                yield
            except BaseException:
                for member, mark in reversed(marks):
                    member.rollback(mark)
                raise
            else:
                if self._depth == 1:
                    for member, mark in marks:
                        member.commit(mark)
            finally:
                self._depth -= 1

    def __repr__(self) -> str:
        return f"StateStore({len(self._pools)} pools, {len(self._positions)} positions)"
