"""
State management for the AMM: balances, pools, positions and the journaled store.
"""

from .balances import AccountId, Amount, AssetId, BalanceTable
from .pools import Market, PoolState, make_market
from .positions import LiquidityPosition
from .store import StateStore

__all__ = [
    "AccountId",
    "Amount",
    "AssetId",
    "BalanceTable",
    "Market",
    "PoolState",
    "make_market",
    "LiquidityPosition",
    "StateStore",
]
