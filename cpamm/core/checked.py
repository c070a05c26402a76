"""Checked integer arithmetic for balances.

Every function is stateless and operates on plain Python ints. Python ints
never overflow, so width is enforced explicitly: a result outside
``[0, max_value]`` raises ``AmmArithmeticError`` instead of wrapping or
saturating. Division is floor division (``//``).
"""

from __future__ import annotations

from .errors import AmmArithmeticError

# Reference balance width (u128).
BALANCE_BITS: int = 128
U128_MAX: int = (1 << BALANCE_BITS) - 1


def max_for_bits(bits: int) -> int:
    """Largest unsigned value representable in *bits* bits."""
    if not isinstance(bits, int) or isinstance(bits, bool) or bits <= 0:
        raise ValueError(f"bits must be a positive int: {bits!r}")
    return (1 << bits) - 1


def _require_operand(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise AmmArithmeticError(f"{name} must be non-negative: {value}")


def _bounded(op: str, value: int, max_value: int) -> int:
    if value < 0:
        raise AmmArithmeticError(f"{op} underflow: {value} < 0")
    if value > max_value:
        raise AmmArithmeticError(f"{op} overflow: {value} > {max_value}")
    return value


def checked_add(a: int, b: int, *, max_value: int = U128_MAX) -> int:
    _require_operand("a", a)
    _require_operand("b", b)
    return _bounded("add", a + b, max_value)


def checked_sub(a: int, b: int, *, max_value: int = U128_MAX) -> int:
    _require_operand("a", a)
    _require_operand("b", b)
    return _bounded("sub", a - b, max_value)


def checked_mul(a: int, b: int, *, max_value: int = U128_MAX) -> int:
    _require_operand("a", a)
    _require_operand("b", b)
    return _bounded("mul", a * b, max_value)


def checked_div(a: int, b: int, *, max_value: int = U128_MAX) -> int:
    """Floor division; division by zero is an ``AmmArithmeticError``."""
    _require_operand("a", a)
    _require_operand("b", b)
    if b == 0:
        raise AmmArithmeticError("division by zero")
    return _bounded("div", a // b, max_value)


def mul_div_floor(a: int, b: int, denominator: int, *, max_value: int = U128_MAX) -> int:
    """``floor(a * b / denominator)`` with an unbounded intermediate product.

    Only the final result is checked against *max_value*, the same way a
    fixed-width implementation would widen to 256 bits for the product.
    """
    _require_operand("a", a)
    _require_operand("b", b)
    _require_operand("denominator", denominator)
    if denominator == 0:
        raise AmmArithmeticError("division by zero")
    return _bounded("mul_div", (a * b) // denominator, max_value)
