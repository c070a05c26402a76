"""
Liquidity position tracking.

A position is a provider's recorded principal contribution to one market.
It is not a redeemable LP-token balance: it is the weight used when fees are
paid out, and the upper bound on what the provider may withdraw.
"""

from __future__ import annotations

from dataclasses import dataclass

from .balances import Amount


@dataclass(frozen=True)
class LiquidityPosition:
    base_contributed: Amount = 0
    quote_contributed: Amount = 0

    def __post_init__(self) -> None:
        for name in ("base_contributed", "quote_contributed"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    def as_tuple(self) -> tuple[Amount, Amount]:
        return (self.base_contributed, self.quote_contributed)

    def is_empty(self) -> bool:
        return self.base_contributed == 0 and self.quote_contributed == 0


EMPTY_POSITION = LiquidityPosition()
