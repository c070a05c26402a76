"""
Constant-product AMM: integer swap pricing, pool lifecycle and fee payout.
"""

from .integration import AmmConfig, FeeDistributor, InMemoryLedger, MarketEngine

__version__ = "0.1.0"

__all__ = ["AmmConfig", "FeeDistributor", "InMemoryLedger", "MarketEngine", "__version__"]
