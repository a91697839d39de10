from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

# Significant digits a balance may carry; wider values are rejected, never rounded.
MAX_AMOUNT_DIGITS = 28


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"


class ProcessingStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    REJECTED = "rejected"


class RejectionReason(Enum):
    ACCOUNT_LOCKED = "account_locked"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_STATE = "invalid_state"
    AMOUNT_OVERFLOW = "amount_overflow"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class InvalidRecord:
    """A CSV row that could not be turned into a Transaction."""

    reason: str
    row: Optional[Dict[str, str]] = None


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount


@dataclass
class DepositRecord:
    """
    A deposit kept around so it can be disputed later.
    `amount` is the original deposit and never changes; `held_amount` is what
    the currently open dispute moved into held funds.
    """

    client_id: int
    amount: Decimal
    state: DisputeState = DisputeState.NORMAL
    held_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class ProcessingResult:
    status: ProcessingStatus
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def success(cls) -> "ProcessingResult":
        return cls(ProcessingStatus.SUCCESS)

    @classmethod
    def skipped(cls, message: str) -> "ProcessingResult":
        return cls(ProcessingStatus.SKIPPED, message=message)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "ProcessingResult":
        return cls(ProcessingStatus.REJECTED, reason, message)

    @property
    def ok(self) -> bool:
        return self.status == ProcessingStatus.SUCCESS


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ProcessingStats:
    """Counters for the end-of-run processing report."""

    processed: int = 0
    rejected: int = 0
    skipped: int = 0
    invalid: int = 0
    rejections: Dict[RejectionReason, int] = field(default_factory=dict)

    def record(self, result: ProcessingResult) -> None:
        if result.status == ProcessingStatus.SUCCESS:
            self.processed += 1
        elif result.status == ProcessingStatus.SKIPPED:
            self.skipped += 1
        else:
            self.rejected += 1
            self.rejections[result.reason] = self.rejections.get(result.reason, 0) + 1

    def record_invalid(self) -> None:
        self.invalid += 1

    def __str__(self) -> str:
        return (
            f"Processed: {self.processed}, "
            f"Rejected: {self.rejected}, "
            f"Skipped: {self.skipped}, "
            f"Invalid: {self.invalid}"
        )
