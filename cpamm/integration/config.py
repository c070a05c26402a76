"""
Engine configuration.

`AmmConfig` is a frozen dataclass validated on construction. It can be built
directly, loaded from a YAML mapping (`load_config`) or from `CPAMM_*`
environment variables (`config_from_env`):

    fee_numerator: 1
    fee_denominator: 1000
    balance_bits: 128
    pallet_id: dexpalle
    payout_page_size: 256
    max_markets_per_payout: null
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.checked import max_for_bits
from ..core.fees import FeeRate

DEFAULT_PALLET_ID = b"dexpalle"
PALLET_ID_LEN = 8

_KNOWN_KEYS = frozenset(
    {
        "fee_numerator",
        "fee_denominator",
        "balance_bits",
        "pallet_id",
        "payout_page_size",
        "max_markets_per_payout",
    }
)


@dataclass(frozen=True)
class AmmConfig:
    """Runtime config for the market engine and the fee distributor."""

    fee_rate: FeeRate = field(default_factory=FeeRate)
    # Width of every stored balance; arithmetic past it fails.
    balance_bits: int = 128
    # Seed of the custody accounts (8 bytes, like a pallet id).
    pallet_id: bytes = DEFAULT_PALLET_ID
    payout_page_size: int = 256
    # None: a payout run sweeps every market with collected fees.
    max_markets_per_payout: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.fee_rate, FeeRate):
            raise TypeError("fee_rate must be a FeeRate")
        max_for_bits(self.balance_bits)
        if not isinstance(self.pallet_id, bytes) or len(self.pallet_id) != PALLET_ID_LEN:
            raise ValueError(f"pallet_id must be exactly {PALLET_ID_LEN} bytes")
        if not isinstance(self.payout_page_size, int) or isinstance(self.payout_page_size, bool):
            raise TypeError("payout_page_size must be an int")
        if self.payout_page_size <= 0:
            raise ValueError(f"payout_page_size must be positive: {self.payout_page_size}")
        if self.max_markets_per_payout is not None:
            if not isinstance(self.max_markets_per_payout, int) or isinstance(self.max_markets_per_payout, bool):
                raise TypeError("max_markets_per_payout must be an int or None")
            if self.max_markets_per_payout <= 0:
                raise ValueError("max_markets_per_payout must be positive")

    @property
    def max_balance(self) -> int:
        return max_for_bits(self.balance_bits)


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    return int(value)


def _pallet_id_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise ValueError("pallet_id must be a string")
    try:
        return value.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("pallet_id must be ASCII") from exc


def config_from_mapping(obj: Mapping[str, Any]) -> AmmConfig:
    """Build a config from a plain mapping; missing keys take defaults."""
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    unknown = sorted(set(obj) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(map(str, unknown))}")

    defaults = AmmConfig()
    fee_rate = FeeRate(
        numerator=_require_int(obj.get("fee_numerator", defaults.fee_rate.numerator), name="fee_numerator"),
        denominator=_require_int(obj.get("fee_denominator", defaults.fee_rate.denominator), name="fee_denominator"),
    )
    max_markets = obj.get("max_markets_per_payout")
    return AmmConfig(
        fee_rate=fee_rate,
        balance_bits=_require_int(obj.get("balance_bits", defaults.balance_bits), name="balance_bits"),
        pallet_id=_pallet_id_bytes(obj.get("pallet_id", defaults.pallet_id)),
        payout_page_size=_require_int(
            obj.get("payout_page_size", defaults.payout_page_size), name="payout_page_size"
        ),
        max_markets_per_payout=None if max_markets is None else _require_int(max_markets, name="max_markets_per_payout"),
    )


def load_config(path: Union[str, Path]) -> AmmConfig:
    """Load a config from a YAML file. An empty file yields the defaults."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return AmmConfig()
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    return config_from_mapping(obj)


def _int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer: {raw!r}") from exc


def config_from_env() -> AmmConfig:
    """Build a config from `CPAMM_*` environment variables over the defaults."""
    obj: dict[str, Any] = {}
    for key, env in (
        ("fee_numerator", "CPAMM_FEE_NUMERATOR"),
        ("fee_denominator", "CPAMM_FEE_DENOMINATOR"),
        ("balance_bits", "CPAMM_BALANCE_BITS"),
        ("payout_page_size", "CPAMM_PAYOUT_PAGE_SIZE"),
        ("max_markets_per_payout", "CPAMM_MAX_MARKETS_PER_PAYOUT"),
    ):
        v = _int_env(env)
        if v is not None:
            obj[key] = v
    pallet_id = os.environ.get("CPAMM_PALLET_ID", "").strip()
    if pallet_id:
        obj["pallet_id"] = pallet_id
    return config_from_mapping(obj)
