"""
Call dispatch for hosts that submit operations as plain objects.

A call is a JSON-like mapping naming the operation and its arguments:

    {"call": "create_market_pool", "base_asset": 0, "quote_asset": 1,
     "base_amount": 1000, "quote_amount": 1000}
    {"call": "deposit_liquidity", "market": [0, 1], "base_amount": 10, "quote_amount": 10}
    {"call": "withdraw_liquidity", "market": [0, 1], "base_amount": 10, "quote_amount": 10}
    {"call": "buy", "market": [0, 1], "quote_amount": 10, "min_receive": 9}
    {"call": "sell", "market": [0, 1], "base_amount": 10}

`apply_call()` returns a `CallResult`; `apply_call_or_raise()` raises the
engine's `AmmError` instead. Errors that are not `AmmError` propagate from
both.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.errors import AmmError, InvalidArgument
from .events import AmmEvent
from .market_engine import MarketEngine


@dataclass(frozen=True)
class CallResult:
    ok: bool
    events: Tuple[AmmEvent, ...] = ()
    error: Optional[str] = None
    code: Optional[str] = None


def _require_int(call: Mapping[str, Any], key: str, *, default: Optional[int] = None) -> int:
    value = call.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidArgument(f"{key} must be an int")
    return int(value)


def _require_market(call: Mapping[str, Any]) -> Tuple[int, int]:
    value = call.get("market")
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidArgument("market must be a [base, quote] pair")
    return (value[0], value[1])


def _create(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Any:
    return engine.create_market_pool(
        caller,
        _require_int(call, "base_asset"),
        _require_int(call, "quote_asset"),
        _require_int(call, "base_amount"),
        _require_int(call, "quote_amount"),
    )


def _deposit(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Any:
    return engine.deposit_liquidity(
        caller, _require_market(call), _require_int(call, "base_amount"), _require_int(call, "quote_amount")
    )


def _withdraw(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Any:
    return engine.withdraw_liquidity(
        caller, _require_market(call), _require_int(call, "base_amount"), _require_int(call, "quote_amount")
    )


def _buy(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Any:
    return engine.buy(
        caller,
        _require_market(call),
        _require_int(call, "quote_amount"),
        min_receive=_require_int(call, "min_receive", default=0),
    )


def _sell(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Any:
    return engine.sell(
        caller,
        _require_market(call),
        _require_int(call, "base_amount"),
        min_receive=_require_int(call, "min_receive", default=0),
    )


_HANDLERS: Dict[str, Callable[[MarketEngine, str, Mapping[str, Any]], Any]] = {
    "create_market_pool": _create,
    "deposit_liquidity": _deposit,
    "withdraw_liquidity": _withdraw,
    "buy": _buy,
    "sell": _sell,
}


def apply_call_or_raise(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> Tuple[AmmEvent, ...]:
    """Apply one call; return the events it emitted."""
    if not isinstance(call, Mapping):
        raise InvalidArgument(f"call must be an object, got {type(call).__name__}")
    name = call.get("call")
    handler = _HANDLERS.get(name) if isinstance(name, str) else None
    if handler is None:
        raise InvalidArgument(f"unknown call: {name!r}")

    # The handler's own unit nests in this one and hands its events up.
    with engine.unit(f"call {name}") as events:
        handler(engine, caller, call)
    return tuple(events)


def apply_call(engine: MarketEngine, caller: str, call: Mapping[str, Any]) -> CallResult:
    try:
        events = apply_call_or_raise(engine, caller, call)
    except AmmError as exc:
        return CallResult(ok=False, error=str(exc), code=exc.code)
    return CallResult(ok=True, events=events)
