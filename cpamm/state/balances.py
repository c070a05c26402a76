"""
Multi-asset balance tracking with deterministic ordering.

Implements BalanceTable[AccountId, AssetId] -> Amount, the storage behind the
reference in-memory ledger.
"""

from typing import Dict, Optional, Tuple


# Type aliases
AccountId = str  # 32-byte account id as hex string (0x...)
AssetId = int  # 8-bit asset id
Amount = int  # Non-negative integer bounded by the balance width

MAX_ASSET_ID = 255


def require_asset_id(value: object, *, name: str = "asset") -> AssetId:
    """Validate an asset id (int in [0, 255], bools rejected)."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (0 <= value <= MAX_ASSET_ID):
        raise ValueError(f"{name} must be in [0, {MAX_ASSET_ID}]: {value}")
    return int(value)


class BalanceTable:
    """
    Deterministic balance table mapping (account, asset) -> amount.

    Note: this class stores balances in a plain dict. Do not rely on dict
    iteration order; callers sort keys explicitly at serialization / hashing
    boundaries.
    """

    def __init__(self, *, max_value: Optional[int] = None):
        """Initialize empty balance table."""
        self._balances: Dict[Tuple[AccountId, AssetId], Amount] = {}
        self.max_value = max_value

    def get(self, account: AccountId, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: AccountId, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative or exceeds the balance width
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if self.max_value is not None and amount > self.max_value:
            raise ValueError(f"Balance exceeds width: {amount} > {self.max_value}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: AccountId, asset: AssetId, delta: Amount) -> None:
        """
        Add delta to balance. Equivalent to set(account, asset, get(...) + delta).

        Raises:
            ValueError: If resulting balance would be negative or too large
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: AccountId, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative delta from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def get_all_balances(self) -> Dict[Tuple[AccountId, AssetId], Amount]:
        """Return all non-zero balances as a dictionary."""
        return dict(self._balances)

    def total_supply(self, asset: AssetId) -> Amount:
        """Sum of every account's balance of *asset*."""
        return sum(amount for (_acct, a), amount in self._balances.items() if a == asset)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
