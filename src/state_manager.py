from decimal import Decimal
from typing import Dict, List, Optional, Set

from models import AccountSnapshot, ClientAccount, DepositRecord


class StateManager:
    """
    Owns every account and the deposits that can still be disputed.
    One instance per run; nothing here is shared or global.

    Deposit records are dropped on chargeback and withdrawals are never kept,
    but every applied transaction id stays in `_used_transaction_ids` so a
    reused id is always rejected. That set grows with the number of applied
    deposits and withdrawals (plain ints), not only with disputable deposits.
    """

    def __init__(self):
        # Insertion order doubles as first-seen order for the snapshot.
        self._accounts: Dict[int, ClientAccount] = {}
        self._deposits: Dict[int, DepositRecord] = {}
        self._used_transaction_ids: Set[int] = set()

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def is_transaction_id_used(self, transaction_id: int) -> bool:
        return transaction_id in self._used_transaction_ids

    def mark_transaction_id_used(self, transaction_id: int) -> None:
        self._used_transaction_ids.add(transaction_id)

    def store_deposit(self, transaction_id: int, client_id: int, amount: Decimal) -> None:
        """Retain a deposit for future dispute lookups."""
        self._deposits[transaction_id] = DepositRecord(client_id=client_id, amount=amount)

    def get_deposit(self, transaction_id: int) -> Optional[DepositRecord]:
        return self._deposits.get(transaction_id)

    def remove_deposit(self, transaction_id: int) -> None:
        """Forget a charged-back deposit; later references look unknown."""
        del self._deposits[transaction_id]

    def snapshot(self) -> List[AccountSnapshot]:
        return [
            AccountSnapshot(
                client_id=client_id,
                available=account.available,
                held=account.held,
                total=account.available + account.held,
                locked=account.locked,
            )
            for client_id, account in self._accounts.items()
        ]

    def retained_deposit_count(self) -> int:
        return len(self._deposits)
