"""
Pool state for constant-product markets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .balances import Amount, AssetId, require_asset_id


# (base_asset, quote_asset). Order is significant: (A, B) and (B, A) name
# two different pools.
Market = Tuple[AssetId, AssetId]


def make_market(base_asset: object, quote_asset: object) -> Market:
    """
    Validate and build a market key.

    Raises:
        TypeError / ValueError: If either id is not a valid asset id, or both
            ids are the same asset
    """
    base = require_asset_id(base_asset, name="base_asset")
    quote = require_asset_id(quote_asset, name="quote_asset")
    if base == quote:
        raise ValueError(f"base and quote must differ: {base}")
    return (base, quote)


def market_label(market: Market) -> str:
    return f"{market[0]}/{market[1]}"


@dataclass(frozen=True)
class PoolState:
    """
    State of one market's liquidity pool.

    Attributes:
        base_reserve: Pool balance of the base asset available for trading
        quote_reserve: Pool balance of the quote asset available for trading
        collected_base_fees: Taker fees paid in base, awaiting distribution
        collected_quote_fees: Taker fees paid in quote, awaiting distribution
    """
    base_reserve: Amount
    quote_reserve: Amount
    collected_base_fees: Amount = 0
    collected_quote_fees: Amount = 0

    def __post_init__(self) -> None:
        for name in ("base_reserve", "quote_reserve", "collected_base_fees", "collected_quote_fees"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    def get_constant_product(self) -> int:
        """Compute k = base_reserve * quote_reserve."""
        return self.base_reserve * self.quote_reserve

    def has_collected_fees(self) -> bool:
        return self.collected_base_fees > 0 or self.collected_quote_fees > 0

    def __repr__(self) -> str:
        return (
            f"PoolState(reserves=({self.base_reserve}, {self.quote_reserve}), "
            f"fees=({self.collected_base_fees}, {self.collected_quote_fees}))"
        )
