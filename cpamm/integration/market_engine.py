"""
Market lifecycle engine (imperative shell around the pure pricing core).

`MarketEngine` owns the pool registry / liquidity ledger (`StateStore`) and
drives the external asset `Ledger`:

- create_market_pool / deposit_liquidity / withdraw_liquidity
- buy / sell (constant-product swap with a taker fee)
- current_price (read-only)

Every mutating call is one atomic unit: the store and the ledger are
checkpointed on entry and rolled back together if any step raises, and the
call's events are published only after the unit commits. The caller id is
assumed to be authenticated by the host.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional, Tuple

from ..core.checked import checked_add, checked_sub
from ..core.cpmm import Side, SwapQuote, current_price, quote_swap
from ..core.errors import (
    InvalidArgument,
    MarketDoesNotExist,
    MarketExists,
    NotEnoughBalance,
    SlippageExceeded,
)
from ..core.fees import fee_from_amount
from ..state.balances import AccountId, Amount, AssetId
from ..state.pools import Market, PoolState, make_market, market_label
from ..state.positions import LiquidityPosition
from ..state.store import StateStore
from .config import AmmConfig
from .events import AmmEvent, EventKind, EventLog, EventSink
from .ledger import Ledger, custody_account, fee_account

logger = logging.getLogger(__name__)


class MarketEngine:
    """Pool lifecycle and trading against a journaled store and ledger."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        store: Optional[StateStore] = None,
        config: Optional[AmmConfig] = None,
        events: Optional[EventSink] = None,
    ) -> None:
        self.ledger = ledger
        self.store = store if store is not None else StateStore()
        self.config = config if config is not None else AmmConfig()
        self.events: EventSink = events if events is not None else EventLog()
        self.pool_account: AccountId = custody_account(self.config.pallet_id)
        self.fee_account: AccountId = fee_account(self.config.pallet_id)
        self._max = self.config.max_balance
        self._open_units: List[List[AmmEvent]] = []

    # -- helpers -------------------------------------------------------------

    @contextmanager
    def unit(self, op: str) -> Iterator[List[AmmEvent]]:
        """
        Atomic unit over the store and the ledger.

        Yields a list the body appends its events to. The outermost unit
        publishes them once it has committed; a nested unit hands its events
        to the enclosing one, so they are dropped if that unit rolls back.
        """
        pending: List[AmmEvent] = []
        with self.store.lock:
            outermost = not self._open_units
            self._open_units.append(pending)
            try:
                with self.store.atomic(self.ledger):
                    yield pending
            except Exception as exc:
                if outermost:
                    logger.warning(f"{op} rolled back: {type(exc).__name__}: {exc}")
                else:
                    logger.debug(f"nested {op} failed: {type(exc).__name__}: {exc}")
                raise
            finally:
                self._open_units.pop()
            if outermost:
                for event in pending:
                    self.events.publish(event)
            else:
                self._open_units[-1].extend(pending)

    def _put_position(self, market: Market, caller: AccountId, position: LiquidityPosition) -> None:
        # An empty position is only stored over an existing one.
        if position.is_empty() and not self.store.has_position(market, caller):
            return
        self.store.put_position(market, caller, position)

    def _market(self, market: object) -> Market:
        if not isinstance(market, (tuple, list)) or len(market) != 2:
            raise InvalidArgument(f"market must be a (base, quote) pair: {market!r}")
        try:
            return make_market(market[0], market[1])
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(str(exc)) from exc

    def _amount(self, value: object, *, name: str) -> Amount:
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidArgument(f"{name} must be an int")
        if not (0 <= value <= self._max):
            raise InvalidArgument(f"{name} must be in [0, {self._max}]: {value}")
        return int(value)

    def _caller(self, caller: object) -> AccountId:
        if not isinstance(caller, str) or not caller:
            raise InvalidArgument("caller must be a non-empty account id")
        if caller in (self.pool_account, self.fee_account):
            raise InvalidArgument("custody accounts cannot act as callers")
        return caller

    def _require_pool(self, market: Market) -> PoolState:
        pool = self.store.get_pool(market)
        if pool is None:
            raise MarketDoesNotExist(f"no pool for market {market_label(market)}")
        return pool

    def _require_balance(self, asset: AssetId, account: AccountId, amount: Amount) -> None:
        available = self.ledger.balance(asset, account)
        if available < amount:
            raise NotEnoughBalance(
                f"account {account} holds {available} of asset {asset}, needs {amount}"
            )

    # -- read-only -----------------------------------------------------------

    def pool(self, market: object) -> PoolState:
        return self._require_pool(self._market(market))

    def position(self, market: object, provider: AccountId) -> LiquidityPosition:
        return self.store.get_position(self._market(market), provider)

    def markets(self) -> List[Market]:
        return self.store.markets()

    def current_price(self, market: object) -> Tuple[Amount, Amount]:
        """Price of one base unit in quote units as ``(numerator, denominator)``."""
        return current_price(self._require_pool(self._market(market)))

    def fee_from_amount(self, amount: Amount) -> Amount:
        return fee_from_amount(amount, self.config.fee_rate, max_value=self._max)

    # -- pool lifecycle ------------------------------------------------------

    def create_market_pool(
        self,
        caller: AccountId,
        base_asset: AssetId,
        quote_asset: AssetId,
        base_amount: Amount,
        quote_amount: Amount,
    ) -> PoolState:
        """
        Bootstrap the pool of ``(base_asset, quote_asset)`` with the caller's assets.

        The caller becomes the first liquidity provider with a position equal
        to the initial reserves.

        Raises:
            MarketExists: If the market already has a pool
            NotEnoughBalance: If the caller cannot cover either amount
            InvalidArgument: On identical assets or a zero initial amount
        """
        caller = self._caller(caller)
        market = self._market((base_asset, quote_asset))
        base_amount = self._amount(base_amount, name="base_amount")
        quote_amount = self._amount(quote_amount, name="quote_amount")
        if base_amount == 0 or quote_amount == 0:
            raise InvalidArgument(f"initial amounts must be positive: ({base_amount}, {quote_amount})")

        with self.unit("create_market_pool") as pending:
            if self.store.has_pool(market):
                raise MarketExists(f"market {market_label(market)} already has a pool")
            self._require_balance(market[0], caller, base_amount)
            self._require_balance(market[1], caller, quote_amount)

            self.ledger.transfer(market[0], caller, self.pool_account, base_amount)
            self.ledger.transfer(market[1], caller, self.pool_account, quote_amount)

            pool = PoolState(base_reserve=base_amount, quote_reserve=quote_amount)
            self.store.insert_pool(market, pool)
            self.store.put_position(market, caller, LiquidityPosition(base_amount, quote_amount))
            pending.append(
                AmmEvent(
                    EventKind.POOL_CREATED,
                    caller,
                    market,
                    {"base_amount": base_amount, "quote_amount": quote_amount},
                )
            )

        logger.info(f"Pool {market_label(market)} created by {caller} with ({base_amount}, {quote_amount})")
        return pool

    def deposit_liquidity(
        self,
        caller: AccountId,
        market: Market,
        base_amount: Amount,
        quote_amount: Amount,
    ) -> LiquidityPosition:
        """
        Add both assets to the pool and to the caller's position.

        Returns the caller's updated position.
        """
        caller = self._caller(caller)
        market = self._market(market)
        base_amount = self._amount(base_amount, name="base_amount")
        quote_amount = self._amount(quote_amount, name="quote_amount")

        with self.unit("deposit_liquidity") as pending:
            pool = self._require_pool(market)
            self._require_balance(market[0], caller, base_amount)
            self._require_balance(market[1], caller, quote_amount)

            new_pool = replace(
                pool,
                base_reserve=checked_add(pool.base_reserve, base_amount, max_value=self._max),
                quote_reserve=checked_add(pool.quote_reserve, quote_amount, max_value=self._max),
            )
            prev = self.store.get_position(market, caller)
            position = LiquidityPosition(
                checked_add(prev.base_contributed, base_amount, max_value=self._max),
                checked_add(prev.quote_contributed, quote_amount, max_value=self._max),
            )

            self.ledger.transfer(market[0], caller, self.pool_account, base_amount)
            self.ledger.transfer(market[1], caller, self.pool_account, quote_amount)
            self.store.put_pool(market, new_pool)
            self._put_position(market, caller, position)
            pending.append(
                AmmEvent(
                    EventKind.LIQUIDITY_ADDED,
                    caller,
                    market,
                    {"base_amount": base_amount, "quote_amount": quote_amount},
                )
            )

        logger.info(f"Liquidity ({base_amount}, {quote_amount}) added to {market_label(market)} by {caller}")
        return position

    def withdraw_liquidity(
        self,
        caller: AccountId,
        market: Market,
        base_amount: Amount,
        quote_amount: Amount,
    ) -> LiquidityPosition:
        """
        Return assets from the pool to the caller, bounded by their position.

        Reserves shrink by the same amounts as the position, keeping recorded
        positions backed by actual reserves. If trading has moved a side's
        reserve below the requested amount the call fails with
        ``AmmArithmeticError``.

        Raises:
            MarketDoesNotExist: If the market has no pool
            NotEnoughBalance: If the position holds less than requested
        """
        caller = self._caller(caller)
        market = self._market(market)
        base_amount = self._amount(base_amount, name="base_amount")
        quote_amount = self._amount(quote_amount, name="quote_amount")

        with self.unit("withdraw_liquidity") as pending:
            pool = self._require_pool(market)
            prev = self.store.get_position(market, caller)
            if prev.base_contributed < base_amount or prev.quote_contributed < quote_amount:
                raise NotEnoughBalance(
                    f"position {prev.as_tuple()} of {caller} in {market_label(market)} "
                    f"cannot cover ({base_amount}, {quote_amount})"
                )

            position = LiquidityPosition(
                checked_sub(prev.base_contributed, base_amount, max_value=self._max),
                checked_sub(prev.quote_contributed, quote_amount, max_value=self._max),
            )
            new_pool = replace(
                pool,
                base_reserve=checked_sub(pool.base_reserve, base_amount, max_value=self._max),
                quote_reserve=checked_sub(pool.quote_reserve, quote_amount, max_value=self._max),
            )

            self.ledger.transfer(market[0], self.pool_account, caller, base_amount)
            self.ledger.transfer(market[1], self.pool_account, caller, quote_amount)
            self.store.put_pool(market, new_pool)
            self._put_position(market, caller, position)
            pending.append(
                AmmEvent(
                    EventKind.LIQUIDITY_WITHDRAWN,
                    caller,
                    market,
                    {"base_amount": base_amount, "quote_amount": quote_amount},
                )
            )

        logger.info(f"Liquidity ({base_amount}, {quote_amount}) withdrawn from {market_label(market)} by {caller}")
        return position

    # -- trading -------------------------------------------------------------

    def buy(self, caller: AccountId, market: Market, quote_amount: Amount, *, min_receive: Amount = 0) -> SwapQuote:
        """Spend *quote_amount* of the quote asset for base."""
        return self._swap(caller, market, Side.BUY, quote_amount, min_receive, amount_name="quote_amount")

    def sell(self, caller: AccountId, market: Market, base_amount: Amount, *, min_receive: Amount = 0) -> SwapQuote:
        """Spend *base_amount* of the base asset for quote."""
        return self._swap(caller, market, Side.SELL, base_amount, min_receive, amount_name="base_amount")

    def _swap(
        self,
        caller: AccountId,
        market: Market,
        side: Side,
        amount: Amount,
        min_receive: Amount,
        *,
        amount_name: str,
    ) -> SwapQuote:
        caller = self._caller(caller)
        market = self._market(market)
        amount = self._amount(amount, name=amount_name)
        min_receive = self._amount(min_receive, name="min_receive")
        base_asset, quote_asset = market
        if side is Side.BUY:
            spent_asset, received_asset = quote_asset, base_asset
        else:
            spent_asset, received_asset = base_asset, quote_asset

        with self.unit(side.value) as pending:
            pool = self._require_pool(market)
            self._require_balance(spent_asset, caller, amount)

            q = quote_swap(pool, side, amount, self.config.fee_rate, max_value=self._max)
            logger.debug(f"{side.value} quote on {market_label(market)}: {q}")
            if q.receive_amount < min_receive:
                raise SlippageExceeded(q.receive_amount, min_receive)

            if side is Side.BUY:
                new_pool = replace(
                    pool,
                    base_reserve=q.new_base_reserve,
                    quote_reserve=q.new_quote_reserve,
                    collected_quote_fees=checked_add(pool.collected_quote_fees, q.fee, max_value=self._max),
                )
                amounts = {"quote_spent": amount, "fee": q.fee, "base_received": q.receive_amount}
                kind = EventKind.BOUGHT
            else:
                new_pool = replace(
                    pool,
                    base_reserve=q.new_base_reserve,
                    quote_reserve=q.new_quote_reserve,
                    collected_base_fees=checked_add(pool.collected_base_fees, q.fee, max_value=self._max),
                )
                amounts = {"base_spent": amount, "fee": q.fee, "quote_received": q.receive_amount}
                kind = EventKind.SOLD

            self.ledger.transfer(spent_asset, caller, self.pool_account, q.net_amount)
            self.ledger.transfer(spent_asset, caller, self.fee_account, q.fee)
            self.ledger.transfer(received_asset, self.pool_account, caller, q.receive_amount)
            self.store.put_pool(market, new_pool)
            pending.append(AmmEvent(kind, caller, market, amounts))

        logger.info(
            f"{caller} {side.value} on {market_label(market)}: spent {amount} (fee {q.fee}), "
            f"received {q.receive_amount}"
        )
        return q
