"""
Integration layer: market engine, fee payout, ledger, events, config and snapshots
"""

from .config import AmmConfig, config_from_env, config_from_mapping, load_config
from .events import AmmEvent, EventKind, EventLog, EventSink
from .ledger import InMemoryLedger, Ledger, custody_account, fee_account
from .market_engine import MarketEngine
from .fee_distributor import DistributionReport, FeeDistributor
from .operations import CallResult, apply_call, apply_call_or_raise
from .amm_snapshot import AmmSnapshot, snapshot_from_store, store_from_snapshot

__all__ = [
    "AmmConfig",
    "config_from_env",
    "config_from_mapping",
    "load_config",
    "AmmEvent",
    "EventKind",
    "EventLog",
    "EventSink",
    "InMemoryLedger",
    "Ledger",
    "custody_account",
    "fee_account",
    "MarketEngine",
    "DistributionReport",
    "FeeDistributor",
    "CallResult",
    "apply_call",
    "apply_call_or_raise",
    "AmmSnapshot",
    "snapshot_from_store",
    "store_from_snapshot",
]
