"""Exception types for the AMM engine.

Every failure of a pool operation or payout batch is one of these. The
engine rolls back the enclosing unit before the exception leaves it, so a
caller that catches an ``AmmError`` observes no partial state change.

``code`` is the stable machine-readable identifier used by
``cpamm.integration.operations.CallResult``.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for all engine errors."""

    code: str = "amm_error"


class MarketExists(AmmError):
    """Raised when creating a pool for a market that already has one."""

    code = "market_exists"


class MarketDoesNotExist(AmmError):
    """Raised when an operation names a market without a pool."""

    code = "market_does_not_exist"


class NotEnoughBalance(AmmError):
    """Raised when a ledger balance or a liquidity position is too small."""

    code = "not_enough_balance"


class AmmArithmeticError(AmmError, ArithmeticError):
    """Raised on overflow, underflow or division by zero in checked math.

    Also an ``ArithmeticError`` so generic numeric handlers see it.
    """

    code = "arithmetic"


class TransferError(AmmError):
    """Raised when the asset ledger rejects a transfer."""

    code = "transfer"


class InvalidArgument(AmmError, ValueError):
    """Raised on malformed input (bad asset id, zero bootstrap amount, ...)."""

    code = "invalid_argument"


class SlippageExceeded(AmmError):
    """Raised when a trade would receive less than the caller's minimum."""

    code = "slippage"

    def __init__(self, receive_amount: int, min_receive: int) -> None:
        self.receive_amount = receive_amount
        self.min_receive = min_receive
        super().__init__(f"receive amount {receive_amount} < min_receive {min_receive}")


class DistributionInProgress(AmmError):
    """Raised when a fee payout re-enters a market that is already being paid out."""

    code = "distribution_in_progress"
