from __future__ import annotations

import pytest

from cpamm.core.checked import (
    U128_MAX,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    max_for_bits,
    mul_div_floor,
)
from cpamm.core.errors import AmmArithmeticError, AmmError


def test_max_for_bits() -> None:
    assert max_for_bits(8) == 255
    assert max_for_bits(128) == U128_MAX
    for bad in (0, -1, True, "128"):
        with pytest.raises(ValueError):
            max_for_bits(bad)  # type: ignore[arg-type]


def test_add_and_mul_reject_overflow() -> None:
    assert checked_add(U128_MAX - 1, 1) == U128_MAX
    with pytest.raises(AmmArithmeticError, match="overflow"):
        checked_add(U128_MAX, 1)
    assert checked_mul(1 << 64, (1 << 64) - 1) == (1 << 128) - (1 << 64)
    with pytest.raises(AmmArithmeticError, match="overflow"):
        checked_mul(1 << 64, 1 << 64)


def test_sub_rejects_underflow() -> None:
    assert checked_sub(5, 5) == 0
    with pytest.raises(AmmArithmeticError, match="underflow"):
        checked_sub(1, 2)


def test_div_floors_and_rejects_zero() -> None:
    assert checked_div(7, 2) == 3
    with pytest.raises(AmmArithmeticError, match="division by zero"):
        checked_div(1, 0)


def test_custom_width() -> None:
    assert checked_add(200, 55, max_value=255) == 255
    with pytest.raises(AmmArithmeticError):
        checked_add(200, 56, max_value=255)


def test_mul_div_floor_allows_wide_intermediate() -> None:
    assert mul_div_floor(U128_MAX, U128_MAX, U128_MAX) == U128_MAX
    assert mul_div_floor(10, 3, 4) == 7
    with pytest.raises(AmmArithmeticError, match="overflow"):
        mul_div_floor(U128_MAX, 2, 1)
    with pytest.raises(AmmArithmeticError, match="division by zero"):
        mul_div_floor(1, 1, 0)


def test_operands_must_be_non_negative_ints() -> None:
    with pytest.raises(AmmArithmeticError):
        checked_add(-1, 1)
    with pytest.raises(TypeError):
        checked_add(1.0, 1)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        checked_mul(False, 1)


def test_arithmetic_error_is_an_engine_error() -> None:
    err = AmmArithmeticError("x")
    assert isinstance(err, AmmError)
    assert isinstance(err, ArithmeticError)
    assert err.code == "arithmetic"
