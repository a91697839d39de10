import logging
from decimal import Decimal, Inexact, localcontext
from typing import Tuple, Union

from models import (
    MAX_AMOUNT_DIGITS,
    ClientAccount,
    DepositRecord,
    DisputeState,
    ProcessingResult,
    RejectionReason,
    Transaction,
    TransactionType,
)
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies validated transactions to state, one at a time, in input order.
    Every call either applies fully or leaves state untouched and returns a
    rejected ProcessingResult; nothing is raised for bad transitions.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            SUCCESS: Applied
            SKIPPED: Nothing to do (withdrawal for an unknown client)
            REJECTED: Precondition failed, state unchanged
        """
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                result = self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                result = self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                result = self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                result = self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                result = self._handle_chargeback(transaction)

        if result.reason is not None:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id} for client {transaction.client_id} rejected: {result.message}")
        elif not result.ok:
            logger.debug(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id} skipped: {result.message}")
        return result

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        account = self._state.get_account(transaction.client_id)
        if account is not None and account.locked:
            return self._locked(transaction)

        if self._state.is_transaction_id_used(transaction.transaction_id):
            return ProcessingResult.rejected(
                RejectionReason.DUPLICATE_TRANSACTION,
                f"transaction id {transaction.transaction_id} already used",
            )

        balance = account.total if account is not None else Decimal("0")
        if not _fits_exactly(balance, transaction.amount):
            return ProcessingResult.rejected(
                RejectionReason.AMOUNT_OVERFLOW,
                f"balance {balance} plus {transaction.amount} exceeds {MAX_AMOUNT_DIGITS} digits",
            )

        account = self._state.get_or_create_account(transaction.client_id)
        account.credit(transaction.amount)
        self._state.store_deposit(transaction.transaction_id, transaction.client_id, transaction.amount)
        self._state.mark_transaction_id_used(transaction.transaction_id)
        return ProcessingResult.success()

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        account = self._state.get_account(transaction.client_id)
        if account is None:
            return ProcessingResult.skipped(f"client {transaction.client_id} has no account")

        if account.locked:
            return self._locked(transaction)

        if self._state.is_transaction_id_used(transaction.transaction_id):
            return ProcessingResult.rejected(
                RejectionReason.DUPLICATE_TRANSACTION,
                f"transaction id {transaction.transaction_id} already used",
            )

        if account.available < transaction.amount:
            return ProcessingResult.rejected(
                RejectionReason.INSUFFICIENT_FUNDS,
                f"insufficient funds: requested {transaction.amount}, available {account.available}",
            )

        # Withdrawals can never be disputed, so only the id is remembered.
        account.debit(transaction.amount)
        self._state.mark_transaction_id_used(transaction.transaction_id)
        return ProcessingResult.success()

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        found = self._find_disputable(transaction, DisputeState.NORMAL)
        if isinstance(found, ProcessingResult):
            return found
        account, deposit = found

        # Funds already withdrawn cannot be held; hold only what is left.
        moved = min(deposit.amount, account.available)
        account.hold(moved)
        deposit.held_amount = moved
        deposit.state = DisputeState.DISPUTED
        return ProcessingResult.success()

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        found = self._find_disputable(transaction, DisputeState.DISPUTED)
        if isinstance(found, ProcessingResult):
            return found
        account, deposit = found

        account.release_hold(deposit.held_amount)
        deposit.held_amount = Decimal("0")
        deposit.state = DisputeState.NORMAL
        return ProcessingResult.success()

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        found = self._find_disputable(transaction, DisputeState.DISPUTED)
        if isinstance(found, ProcessingResult):
            return found
        account, deposit = found

        account.remove_held(deposit.held_amount)
        account.locked = True
        self._state.remove_deposit(transaction.transaction_id)
        return ProcessingResult.success()

    def _find_disputable(
        self, transaction: Transaction, expected_state: DisputeState
    ) -> Union[Tuple[ClientAccount, DepositRecord], ProcessingResult]:
        """Look up the account and deposit a dispute-family transaction refers to."""
        account = self._state.get_account(transaction.client_id)
        if account is not None and account.locked:
            return self._locked(transaction)

        deposit = self._state.get_deposit(transaction.transaction_id)
        if deposit is None:
            return ProcessingResult.rejected(
                RejectionReason.TRANSACTION_NOT_FOUND,
                f"no disputable deposit with id {transaction.transaction_id}",
            )

        if deposit.client_id != transaction.client_id or account is None:
            return ProcessingResult.rejected(
                RejectionReason.CLIENT_MISMATCH,
                f"tx {transaction.transaction_id} belongs to client {deposit.client_id}",
            )

        if deposit.state != expected_state:
            return ProcessingResult.rejected(
                RejectionReason.INVALID_STATE,
                f"cannot {transaction.transaction_type.value} a transaction in state {deposit.state.value}",
            )

        return account, deposit

    @staticmethod
    def _locked(transaction: Transaction) -> ProcessingResult:
        return ProcessingResult.rejected(
            RejectionReason.ACCOUNT_LOCKED,
            f"account of client {transaction.client_id} is locked",
        )


def _fits_exactly(balance: Decimal, amount: Decimal) -> bool:
    """True if balance + amount needs no rounding at MAX_AMOUNT_DIGITS."""
    with localcontext() as ctx:
        ctx.prec = MAX_AMOUNT_DIGITS
        ctx.traps[Inexact] = True
        try:
            balance + amount
        except Inexact:
            return False
    return True
