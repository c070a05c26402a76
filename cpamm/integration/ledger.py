"""
Asset ledger collaborator + custody accounts.

The engine never stores asset balances itself: it moves assets through a
`Ledger`. A ledger must be journaled (checkpoint/rollback/commit) so that a
transfer made early in an operation is undone when a later step fails.

`InMemoryLedger` is the reference implementation used by tests and by
embedders that have no ledger of their own.
"""

from __future__ import annotations

import hashlib
import logging
from typing import List, Optional, Protocol, Tuple

from ..core.errors import TransferError
from ..state.balances import AccountId, Amount, AssetId, BalanceTable
from ..state.canonical import domain_sep_bytes, hex_to_bytes_fixed

logger = logging.getLogger(__name__)

ACCOUNT_ID_LEN = 32
_MODULE_PREFIX = b"modl"


class Ledger(Protocol):
    def balance(self, asset: AssetId, account: AccountId) -> Amount: ...

    def transfer(self, asset: AssetId, source: AccountId, dest: AccountId, amount: Amount) -> None:
        """Move *amount*; raise TransferError if the ledger refuses."""
        ...

    def checkpoint(self) -> int: ...

    def rollback(self, mark: int) -> None: ...

    def commit(self, mark: int) -> None: ...


def custody_account(pallet_id: bytes) -> AccountId:
    """
    Deterministic pool custody account for *pallet_id*.

    ``b"modl" || pallet_id`` right-padded with zero bytes to 32 bytes, as hex.
    """
    if not isinstance(pallet_id, bytes) or not pallet_id:
        raise ValueError("pallet_id must be non-empty bytes")
    raw = _MODULE_PREFIX + pallet_id
    if len(raw) > ACCOUNT_ID_LEN:
        raise ValueError("pallet_id too long for a 32-byte account")
    return "0x" + raw.ljust(ACCOUNT_ID_LEN, b"\x00").hex()


def fee_account(pallet_id: bytes) -> AccountId:
    """Deterministic sub-account of the custody account holding collected fees."""
    parent = hex_to_bytes_fixed(custody_account(pallet_id), nbytes=ACCOUNT_ID_LEN, name="custody account")
    return "0x" + hashlib.sha256(domain_sep_bytes("fee_account") + parent + b"fees").hexdigest()


class InMemoryLedger:
    """Journaled multi-asset ledger backed by a `BalanceTable`."""

    def __init__(self, *, max_value: Optional[int] = None) -> None:
        self._balances = BalanceTable(max_value=max_value)
        # (asset, source, dest, amount) for every applied transfer since the
        # oldest open checkpoint; undone in reverse on rollback.
        self._journal: List[Tuple[AssetId, AccountId, AccountId, Amount]] = []

    @property
    def balances(self) -> BalanceTable:
        return self._balances

    def mint(self, asset: AssetId, account: AccountId, amount: Amount) -> None:
        """Credit new units (genesis / test funding). Not journaled."""
        self._balances.add(account, asset, amount)

    def balance(self, asset: AssetId, account: AccountId) -> Amount:
        return self._balances.get(account, asset)

    def transfer(self, asset: AssetId, source: AccountId, dest: AccountId, amount: Amount) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise TransferError(f"invalid transfer amount: {amount!r}")
        if amount == 0 or source == dest:
            return
        available = self._balances.get(source, asset)
        if available < amount:
            raise TransferError(
                f"insufficient funds: asset={asset} account={source} has {available} < {amount}"
            )
        try:
            self._balances.add(dest, asset, amount)
        except ValueError as exc:
            raise TransferError(f"credit rejected: {exc}") from exc
        self._balances.subtract(source, asset, amount)
        self._journal.append((asset, source, dest, amount))

    def checkpoint(self) -> int:
        return len(self._journal)

    def rollback(self, mark: int) -> None:
        undone = 0
        while len(self._journal) > mark:
            asset, source, dest, amount = self._journal.pop()
            self._balances.subtract(dest, asset, amount)
            self._balances.add(source, asset, amount)
            undone += 1
        if undone:
            logger.debug(f"Ledger rolled back {undone} transfer(s)")

    def commit(self, mark: int) -> None:
        del self._journal[mark:]

    def __repr__(self) -> str:
        return f"InMemoryLedger({self._balances!r})"
