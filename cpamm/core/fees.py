"""
Taker fee computation (deterministic, integer-only).

The fee rate is a static rational ``numerator / denominator`` (the reference
deployment charges 1/1000, i.e. 10 basis points). Fees are rounded down, so a
trade too small to owe a whole unit of fee pays none.
"""

from __future__ import annotations

from dataclasses import dataclass

from .checked import U128_MAX, checked_div, checked_mul


@dataclass(frozen=True)
class FeeRate:
    numerator: int = 1
    denominator: int = 1_000

    def __post_init__(self) -> None:
        for name, v in (("numerator", self.numerator), ("denominator", self.denominator)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if self.denominator <= 0:
            raise ValueError(f"denominator must be positive: {self.denominator}")
        if not (0 <= self.numerator < self.denominator):
            raise ValueError(
                f"numerator must be in [0, denominator): {self.numerator}/{self.denominator}"
            )

    def as_bps(self) -> float:
        """Rate in basis points, for display only."""
        return self.numerator * 10_000 / self.denominator


DEFAULT_FEE_RATE = FeeRate()


def fee_from_amount(amount: int, rate: FeeRate = DEFAULT_FEE_RATE, *, max_value: int = U128_MAX) -> int:
    """
    Compute ``fee = floor(amount * numerator / denominator)``.

    The product is checked against the balance width: a trade whose fee
    product does not fit fails with ``AmmArithmeticError`` rather than being
    priced with a truncated value.
    """
    product = checked_mul(amount, rate.numerator, max_value=max_value)
    return checked_div(product, rate.denominator, max_value=max_value)
