"""
Constant-product swap kernel.

Prices a fee-deducted input against a pair of reserves:

    K               = reserve_in * reserve_out          (pre-trade)
    new_reserve_in  = reserve_in + net_in
    new_reserve_out = floor(K / new_reserve_in)
    amount_out      = reserve_out - new_reserve_out

Because ``new_reserve_out`` is floored, the post-trade product lies in
``(K - new_reserve_in, K]``: the pool never gains more than the curve allows
and loses less than one output-reserve unit to rounding. The taker fee is
deducted before this step and accrues outside the reserves.

This kernel is intentionally small, integer-only and side-agnostic; fee
handling and the buy/sell orientation live in `cpamm/core/cpmm.py`.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.checked import U128_MAX, checked_add, checked_div, checked_mul, checked_sub
from ..core.errors import AmmArithmeticError


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class SwapOutResult:
    amount_out: int
    net_in: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def swap_out_for_in(
    *,
    reserve_in: int,
    reserve_out: int,
    net_in: int,
    max_value: int = U128_MAX,
) -> SwapOutResult:
    """
    Exact-in quote + post-state for an already fee-deducted ``net_in``.

    Raises AmmArithmeticError on an empty reserve, on any overflow of the
    balance width and if the computed output reserve would grow.
    """
    for name, v in (("reserve_in", reserve_in), ("reserve_out", reserve_out), ("net_in", net_in)):
        _require_int(name, v)

    if reserve_in <= 0 or reserve_out <= 0:
        raise AmmArithmeticError(f"cannot swap against an empty reserve: ({reserve_in}, {reserve_out})")

    if net_in == 0:
        return SwapOutResult(
            amount_out=0,
            net_in=0,
            new_reserve_in=reserve_in,
            new_reserve_out=reserve_out,
            k_before=reserve_in * reserve_out,
            k_after=reserve_in * reserve_out,
        )

    k_before = checked_mul(reserve_in, reserve_out, max_value=max_value)
    new_reserve_in = checked_add(reserve_in, net_in, max_value=max_value)
    new_reserve_out = checked_div(k_before, new_reserve_in, max_value=max_value)
    if new_reserve_out > reserve_out:
        raise AmmArithmeticError(
            f"output reserve would grow: {new_reserve_out} > {reserve_out}"
        )
    amount_out = checked_sub(reserve_out, new_reserve_out, max_value=max_value)

    # floor(K / x') * x' lies in (K - x', K]: the product may only shrink by
    # less than x' (one output unit priced at the new input reserve).
    k_after = new_reserve_in * new_reserve_out
    if not (k_before - new_reserve_in < k_after <= k_before):
        raise AmmArithmeticError(f"constant product out of bounds: {k_after} vs {k_before}")

    return SwapOutResult(
        amount_out=amount_out,
        net_in=net_in,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=k_after,
    )
