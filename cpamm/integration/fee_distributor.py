"""
Periodic fee payout to liquidity providers.

A payout run walks every market with nonzero collected fees (sorted, so runs
are deterministic) and pays each provider its share of the fees of each side:

    payout = floor(collected * contributed / max(reserve, total_contributed))

Each market settles as its own atomic unit. If any transfer of a market
fails, every payout of that market is rolled back and its fee counters are
left as they were; the run records the failure and moves on. The rounding
remainder stays in the fee custody account and is reported as dust.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from ..core.checked import checked_add, checked_sub, mul_div_floor
from ..core.errors import AmmError, DistributionInProgress, TransferError
from ..state.balances import AccountId, Amount
from ..state.pools import Market, PoolState, market_label
from .events import AmmEvent, EventKind
from .market_engine import MarketEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderPayout:
    market: Market
    provider: AccountId
    base_amount: Amount
    quote_amount: Amount


@dataclass(frozen=True)
class MarketFailure:
    market: Market
    code: str
    message: str


@dataclass(frozen=True)
class DistributionReport:
    """Outcome of one payout run."""

    paid_markets: Tuple[Market, ...] = ()
    payouts: Tuple[ProviderPayout, ...] = ()
    # market -> (base dust, quote dust) left in the fee account
    dust: Dict[Market, Tuple[Amount, Amount]] = field(default_factory=dict)
    failures: Tuple[MarketFailure, ...] = ()
    # Last market processed when the run stopped early; None once the sweep is complete.
    next_cursor: Optional[Market] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    def paid_to(self, provider: AccountId) -> List[ProviderPayout]:
        return [p for p in self.payouts if p.provider == provider]


class FeeDistributor:
    """Pays collected fees of an engine's pools out to their providers."""

    def __init__(self, engine: MarketEngine) -> None:
        self._engine = engine
        self._in_flight: Set[Market] = set()

    def pending_markets(self, *, start_after: Optional[Market] = None) -> List[Market]:
        store = self._engine.store
        out = []
        for market in store.markets(start_after=start_after):
            pool = store.get_pool(market)
            if pool is not None and pool.has_collected_fees():
                out.append(market)
        return out

    def distribute(
        self,
        *,
        start_after: Optional[Market] = None,
        max_markets: Optional[int] = None,
    ) -> DistributionReport:
        """
        Run one payout pass.

        Processes at most *max_markets* markets (default: the configured
        ``max_markets_per_payout``, or all) strictly after *start_after*.

        Raises:
            DistributionInProgress: If a market of this run is already being
                distributed further up the call stack
        """
        engine = self._engine
        if max_markets is None:
            max_markets = engine.config.max_markets_per_payout
        if max_markets is not None and (
            not isinstance(max_markets, int) or isinstance(max_markets, bool) or max_markets <= 0
        ):
            raise ValueError(f"max_markets must be a positive int: {max_markets!r}")

        paid: List[Market] = []
        payouts: List[ProviderPayout] = []
        dust: Dict[Market, Tuple[Amount, Amount]] = {}
        failures: List[MarketFailure] = []

        with engine.store.lock:
            candidates = self.pending_markets(start_after=start_after)
            batch = candidates if max_markets is None else candidates[:max_markets]
            busy = [m for m in batch if m in self._in_flight]
            if busy:
                raise DistributionInProgress(
                    f"payout already running for {', '.join(market_label(m) for m in busy)}"
                )

            for market in batch:
                self._in_flight.add(market)
                try:
                    market_payouts, market_dust = self._settle_market(market)
                except AmmError as exc:
                    logger.warning(f"Payout for {market_label(market)} failed: {exc}")
                    failures.append(MarketFailure(market, exc.code, str(exc)))
                    continue
                finally:
                    self._in_flight.discard(market)
                paid.append(market)
                payouts.extend(market_payouts)
                dust[market] = market_dust

        next_cursor = batch[-1] if batch and len(batch) < len(candidates) else None
        logger.info(
            f"Fee payout: {len(paid)} market(s) paid, {len(payouts)} payout(s), "
            f"{len(failures)} failure(s)"
        )
        return DistributionReport(
            paid_markets=tuple(paid),
            payouts=tuple(payouts),
            dust=dust,
            failures=tuple(failures),
            next_cursor=next_cursor,
        )

    def distribute_or_raise(
        self,
        *,
        start_after: Optional[Market] = None,
        max_markets: Optional[int] = None,
    ) -> DistributionReport:
        """Like `distribute`, but raise TransferError if any market failed to settle."""
        report = self.distribute(start_after=start_after, max_markets=max_markets)
        if report.failures:
            summary = "; ".join(f"{market_label(f.market)}: {f.message}" for f in report.failures)
            raise TransferError(f"fee payout failed for {len(report.failures)} market(s): {summary}")
        return report

    def _settle_market(self, market: Market) -> Tuple[List[ProviderPayout], Tuple[Amount, Amount]]:
        engine = self._engine
        store = engine.store
        max_value = engine.config.max_balance
        page_size = engine.config.payout_page_size
        base_asset, quote_asset = market

        with engine.unit("distribute") as pending:
            pool = engine.pool(market)

            total_base = 0
            total_quote = 0
            for _, position in store.iter_positions(market, page_size=page_size):
                total_base = checked_add(total_base, position.base_contributed, max_value=max_value)
                total_quote = checked_add(total_quote, position.quote_contributed, max_value=max_value)
            base_denom = max(pool.base_reserve, total_base)
            quote_denom = max(pool.quote_reserve, total_quote)

            out: List[ProviderPayout] = []
            paid_base = 0
            paid_quote = 0
            for provider, position in store.iter_positions(market, page_size=page_size):
                base_pay = _share(pool.collected_base_fees, position.base_contributed, base_denom, max_value)
                quote_pay = _share(pool.collected_quote_fees, position.quote_contributed, quote_denom, max_value)
                if base_pay == 0 and quote_pay == 0:
                    continue
                engine.ledger.transfer(base_asset, engine.fee_account, provider, base_pay)
                engine.ledger.transfer(quote_asset, engine.fee_account, provider, quote_pay)
                paid_base = checked_add(paid_base, base_pay, max_value=max_value)
                paid_quote = checked_add(paid_quote, quote_pay, max_value=max_value)
                out.append(ProviderPayout(market, provider, base_pay, quote_pay))
                pending.append(
                    AmmEvent(
                        EventKind.LIQUIDITY_PROVIDER_REWARDED,
                        provider,
                        market,
                        {"base_amount": base_pay, "quote_amount": quote_pay},
                    )
                )

            market_dust = (
                checked_sub(pool.collected_base_fees, paid_base, max_value=max_value),
                checked_sub(pool.collected_quote_fees, paid_quote, max_value=max_value),
            )
            store.put_pool(market, _reset_fees(pool))

        logger.debug(f"Settled {market_label(market)}: {len(out)} payout(s), dust {market_dust}")
        return out, market_dust


def _share(collected: Amount, contributed: Amount, denominator: Amount, max_value: int) -> Amount:
    if collected == 0 or contributed == 0 or denominator == 0:
        return 0
    return mul_div_floor(collected, contributed, denominator, max_value=max_value)


def _reset_fees(pool: PoolState) -> PoolState:
    return replace(pool, collected_base_fees=0, collected_quote_fees=0)
