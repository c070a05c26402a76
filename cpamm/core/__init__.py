"""
Core AMM algorithms (pure, integer-only)
"""

from .errors import (
    AmmArithmeticError,
    AmmError,
    DistributionInProgress,
    InvalidArgument,
    MarketDoesNotExist,
    MarketExists,
    NotEnoughBalance,
    SlippageExceeded,
    TransferError,
)
from .checked import U128_MAX, checked_add, checked_div, checked_mul, checked_sub, mul_div_floor
from .fees import DEFAULT_FEE_RATE, FeeRate, fee_from_amount
from .cpmm import Side, SwapQuote, current_price, get_receive_amount, quote_swap

__all__ = [
    "AmmArithmeticError",
    "AmmError",
    "DistributionInProgress",
    "InvalidArgument",
    "MarketDoesNotExist",
    "MarketExists",
    "NotEnoughBalance",
    "SlippageExceeded",
    "TransferError",
    "U128_MAX",
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_sub",
    "mul_div_floor",
    "DEFAULT_FEE_RATE",
    "FeeRate",
    "fee_from_amount",
    "Side",
    "SwapQuote",
    "current_price",
    "get_receive_amount",
    "quote_swap",
]
