"""
Constant Product Market Maker (CPMM) pricing for base/quote markets.

This module wraps the side-agnostic kernel in `cpamm/kernels/cpmm_swap.py`
with the market conventions:

- BUY spends the quote asset and receives the base asset.
- SELL spends the base asset and receives the quote asset.
- The taker fee is taken from the spent (gross) amount before pricing and
  is accrued outside the reserves for periodic distribution.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per quote
- Invariant: 0 <= k_before - k_after < new_reserve_in (floor rounding of the
  output reserve is the only source of loss)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Tuple

from ..kernels.cpmm_swap import swap_out_for_in
from ..state.balances import Amount
from ..state.pools import PoolState
from .checked import U128_MAX, checked_sub
from .errors import AmmArithmeticError
from .fees import DEFAULT_FEE_RATE, FeeRate, fee_from_amount


@unique
class Side(Enum):
    BUY = "buy"
    SELL = "sell"


def _orient(base_reserve: Amount, quote_reserve: Amount, side: Side) -> Tuple[Amount, Amount]:
    """(reserve_in, reserve_out) for a trade on *side*."""
    if side is Side.BUY:
        return quote_reserve, base_reserve
    if side is Side.SELL:
        return base_reserve, quote_reserve
    raise TypeError(f"side must be a Side, got {side!r}")


def get_receive_amount(
    base_reserve: Amount,
    quote_reserve: Amount,
    side: Side,
    amount: Amount,
    *,
    max_value: int = U128_MAX,
) -> Amount:
    """
    Amount of the other asset received for spending *amount* on *side*.

    *amount* is the fee-deducted input (what actually enters the reserve).
    Spending nothing receives nothing.

    Raises:
        AmmArithmeticError: On an empty reserve or any checked-math failure
    """
    reserve_in, reserve_out = _orient(base_reserve, quote_reserve, side)
    if reserve_in <= 0 or reserve_out <= 0:
        raise AmmArithmeticError(f"reserves must be positive: ({base_reserve}, {quote_reserve})")
    if amount == 0:
        return 0
    res = swap_out_for_in(
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        net_in=amount,
        max_value=max_value,
    )
    return res.amount_out


@dataclass(frozen=True)
class SwapQuote:
    side: Side
    gross_amount: Amount
    fee: Amount
    net_amount: Amount
    receive_amount: Amount
    new_base_reserve: Amount
    new_quote_reserve: Amount
    k_before: int
    k_after: int


def quote_swap(
    pool: PoolState,
    side: Side,
    gross_amount: Amount,
    fee_rate: FeeRate = DEFAULT_FEE_RATE,
    *,
    max_value: int = U128_MAX,
) -> SwapQuote:
    """
    Price a trade of *gross_amount* against *pool*, fee included.

        fee     = floor(gross * fee_num / fee_den)
        net     = gross - fee
        receive = get_receive_amount(..., net)

    Returns the post-trade reserves alongside the amounts; the pool itself is
    not modified.
    """
    if not isinstance(gross_amount, int) or isinstance(gross_amount, bool):
        raise TypeError("gross_amount must be an int")
    if gross_amount < 0:
        raise AmmArithmeticError(f"gross_amount must be non-negative: {gross_amount}")

    reserve_in, reserve_out = _orient(pool.base_reserve, pool.quote_reserve, side)
    if reserve_in <= 0 or reserve_out <= 0:
        raise AmmArithmeticError(
            f"reserves must be positive: ({pool.base_reserve}, {pool.quote_reserve})"
        )

    if gross_amount == 0:
        fee = 0
    else:
        fee = fee_from_amount(gross_amount, fee_rate, max_value=max_value)
    net = checked_sub(gross_amount, fee, max_value=max_value)
    res = swap_out_for_in(reserve_in=reserve_in, reserve_out=reserve_out, net_in=net, max_value=max_value)

    if side is Side.BUY:
        new_base, new_quote = res.new_reserve_out, res.new_reserve_in
    else:
        new_base, new_quote = res.new_reserve_in, res.new_reserve_out

    return SwapQuote(
        side=side,
        gross_amount=gross_amount,
        fee=fee,
        net_amount=net,
        receive_amount=res.amount_out,
        new_base_reserve=new_base,
        new_quote_reserve=new_quote,
        k_before=res.k_before,
        k_after=res.k_after,
    )


def current_price(pool: PoolState) -> Tuple[Amount, Amount]:
    """
    Price of one base unit in quote units as ``(numerator, denominator)``.

    This is the raw reserve ratio ``quote_reserve / base_reserve``; callers
    that need a float divide themselves.
    """
    return pool.quote_reserve, pool.base_reserve
