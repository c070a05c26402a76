# [TESTER] v1

from __future__ import annotations

import pytest

from cpamm.core.errors import AmmArithmeticError
from cpamm.kernels.cpmm_swap import swap_out_for_in


def test_swap_out_for_in_small_pool() -> None:
    res = swap_out_for_in(reserve_in=100, reserve_out=100, net_in=10)

    assert res.amount_out == 10
    assert res.new_reserve_in == 110
    assert res.new_reserve_out == 90
    assert res.k_before == 10_000
    assert res.k_after == 9_900


def test_swap_out_for_in_rounds_output_reserve_down() -> None:
    # 10**10 // 109_990 == 90_917, so the trader receives 9_083.
    res = swap_out_for_in(reserve_in=100_000, reserve_out=100_000, net_in=9_990)

    assert res.new_reserve_out == 90_917
    assert res.amount_out == 9_083
    assert res.k_before - res.new_reserve_in < res.k_after <= res.k_before


def test_zero_input_is_a_noop() -> None:
    res = swap_out_for_in(reserve_in=7, reserve_out=11, net_in=0)

    assert res.amount_out == 0
    assert (res.new_reserve_in, res.new_reserve_out) == (7, 11)
    assert res.k_after == res.k_before == 77


@pytest.mark.parametrize("reserve_in,reserve_out", [(0, 10), (10, 0), (0, 0)])
def test_empty_reserve_is_rejected(reserve_in: int, reserve_out: int) -> None:
    with pytest.raises(AmmArithmeticError, match="empty reserve"):
        swap_out_for_in(reserve_in=reserve_in, reserve_out=reserve_out, net_in=1)


def test_constant_product_overflow_is_rejected() -> None:
    with pytest.raises(AmmArithmeticError, match="overflow"):
        swap_out_for_in(reserve_in=20, reserve_out=20, net_in=1, max_value=255)


def test_input_reserve_overflow_is_rejected() -> None:
    with pytest.raises(AmmArithmeticError, match="overflow"):
        swap_out_for_in(reserve_in=10, reserve_out=10, net_in=250, max_value=255)


def test_non_int_operands_are_rejected() -> None:
    with pytest.raises(TypeError):
        swap_out_for_in(reserve_in=10, reserve_out=10, net_in=1.5)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        swap_out_for_in(reserve_in=True, reserve_out=10, net_in=1)
