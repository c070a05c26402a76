"""
Events emitted after successful mutations.

Events are buffered for the duration of an atomic unit and only published to
the sink once the unit commits, so a rolled-back operation never emits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, List, Optional, Protocol

from ..state.balances import AccountId
from ..state.pools import Market


@unique
class EventKind(Enum):
    POOL_CREATED = "PoolCreated"
    LIQUIDITY_ADDED = "LiquidityAdded"
    LIQUIDITY_WITHDRAWN = "LiquidityWithdrawn"
    BOUGHT = "Bought"
    SOLD = "Sold"
    LIQUIDITY_PROVIDER_REWARDED = "LiquidityProviderRewarded"


@dataclass(frozen=True)
class AmmEvent:
    """
    One observable state change.

    `amounts` keys per kind:
    - POOL_CREATED / LIQUIDITY_ADDED / LIQUIDITY_WITHDRAWN: base_amount, quote_amount
    - BOUGHT: quote_spent, fee, base_received
    - SOLD: base_spent, fee, quote_received
    - LIQUIDITY_PROVIDER_REWARDED: base_amount, quote_amount
    """

    kind: EventKind
    account: AccountId
    market: Market
    amounts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "account": self.account,
            "market": [self.market[0], self.market[1]],
            "amounts": dict(self.amounts),
        }


class EventSink(Protocol):
    def publish(self, event: AmmEvent) -> None: ...


class EventLog:
    """In-memory sink that keeps every published event in order."""

    def __init__(self) -> None:
        self._events: List[AmmEvent] = []

    def publish(self, event: AmmEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> List[AmmEvent]:
        return list(self._events)

    def of_kind(self, kind: EventKind, *, market: Optional[Market] = None) -> List[AmmEvent]:
        return [e for e in self._events if e.kind is kind and (market is None or e.market == market)]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
