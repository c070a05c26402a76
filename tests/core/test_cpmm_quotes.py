# [TESTER] v1

from __future__ import annotations

import pytest

from cpamm.core.cpmm import Side, current_price, get_receive_amount, quote_swap
from cpamm.core.errors import AmmArithmeticError
from cpamm.core.fees import FeeRate, fee_from_amount
from cpamm.state.pools import PoolState


@pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
def test_get_receive_amount_small_pool(side: Side) -> None:
    assert get_receive_amount(100, 100, side, 10) == 10
    assert get_receive_amount(100, 100, side, 100) == 50


def test_get_receive_amount_orients_reserves_by_side() -> None:
    # base=1000, quote=10: buying base with 10 quote halves the base reserve.
    assert get_receive_amount(1_000, 10, Side.BUY, 10) == 500
    # Selling 10 base into 1000/10 barely moves the quote reserve.
    assert get_receive_amount(1_000, 10, Side.SELL, 10) == 1


def test_get_receive_amount_zero_and_empty_reserves() -> None:
    assert get_receive_amount(100, 100, Side.BUY, 0) == 0
    with pytest.raises(AmmArithmeticError):
        get_receive_amount(0, 100, Side.BUY, 10)
    with pytest.raises(AmmArithmeticError):
        get_receive_amount(100, 0, Side.SELL, 10)


def test_fee_from_amount_default_rate() -> None:
    assert fee_from_amount(1_000_000) == 1_000
    assert fee_from_amount(999) == 0
    assert fee_from_amount(10_000) == 10


def test_fee_rate_validation() -> None:
    assert FeeRate(3, 1_000).as_bps() == 30
    with pytest.raises(ValueError):
        FeeRate(1, 0)
    with pytest.raises(ValueError):
        FeeRate(1_000, 1_000)
    with pytest.raises(TypeError):
        FeeRate(1.0, 1_000)  # type: ignore[arg-type]


def test_quote_swap_buy_on_balanced_pool() -> None:
    pool = PoolState(base_reserve=100_000, quote_reserve=100_000)

    q = quote_swap(pool, Side.BUY, 10_000)

    assert q.fee == 10
    assert q.net_amount == 9_990
    assert q.receive_amount == 9_083
    assert q.new_quote_reserve == 109_990
    assert q.new_base_reserve == 90_917
    assert q.k_after <= q.k_before


def test_quote_swap_sell_updates_base_side() -> None:
    pool = PoolState(base_reserve=100_000, quote_reserve=100_000)

    q = quote_swap(pool, Side.SELL, 10_000)

    assert q.receive_amount == 9_083
    assert q.new_base_reserve == 109_990
    assert q.new_quote_reserve == 90_917


def test_quote_swap_custom_fee_rate_and_zero_amount() -> None:
    pool = PoolState(base_reserve=1_000, quote_reserve=1_000)

    q = quote_swap(pool, Side.BUY, 100, FeeRate(1, 10))
    assert q.fee == 10
    assert q.net_amount == 90
    # 10**6 // 1090 == 917
    assert q.receive_amount == 83

    zero = quote_swap(pool, Side.BUY, 0)
    assert (zero.fee, zero.receive_amount) == (0, 0)
    assert (zero.new_base_reserve, zero.new_quote_reserve) == (1_000, 1_000)


def test_quote_swap_does_not_mutate_pool() -> None:
    pool = PoolState(base_reserve=500, quote_reserve=700, collected_quote_fees=3)
    quote_swap(pool, Side.BUY, 50)
    assert pool == PoolState(base_reserve=500, quote_reserve=700, collected_quote_fees=3)


def test_current_price_is_reserve_ratio() -> None:
    assert current_price(PoolState(base_reserve=200, quote_reserve=50)) == (50, 200)
