from decimal import Context, Decimal, Inexact, InvalidOperation
from typing import Dict, Optional, Union

from models import MAX_AMOUNT_DIGITS, InvalidRecord, Transaction, TransactionType

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
AMOUNT_QUANTUM = Decimal("0.0001")
AMOUNT_CONTEXT = Context(prec=MAX_AMOUNT_DIGITS, traps=[Inexact, InvalidOperation])

AMOUNT_TYPES = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}


def validate_row(row: Dict[Optional[str], str]) -> Union[Transaction, InvalidRecord]:
    """
    Convert one csv.DictReader row into a Transaction.

    Never raises: anything malformed comes back as an InvalidRecord carrying a
    readable reason. Amounts on dispute/resolve/chargeback rows are ignored.
    """
    if row.get(None):
        return InvalidRecord(f"unexpected extra fields {row[None]}", row)

    normalized = {
        k.strip(): v.strip() if v is not None else ""
        for k, v in row.items()
        if k is not None
    }

    try:
        transaction_type = TransactionType(normalized.get("type", ""))
    except ValueError:
        return InvalidRecord(f"unknown transaction type {normalized.get('type')!r}", row)

    client_id = _parse_id(normalized.get("client", ""), MAX_CLIENT_ID)
    if client_id is None:
        return InvalidRecord(f"invalid client id {normalized.get('client')!r}", row)

    transaction_id = _parse_id(normalized.get("tx", ""), MAX_TRANSACTION_ID)
    if transaction_id is None:
        return InvalidRecord(f"invalid transaction id {normalized.get('tx')!r}", row)

    amount = None
    if transaction_type in AMOUNT_TYPES:
        amount_str = normalized.get("amount", "")
        if not amount_str:
            return InvalidRecord(f"{transaction_type.value} tx {transaction_id} is missing an amount", row)
        amount = _parse_amount(amount_str)
        if amount is None:
            return InvalidRecord(f"{transaction_type.value} tx {transaction_id}: invalid amount {amount_str!r}", row)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, upper_bound: int) -> Optional[int]:
    # Digits only: rejects signs, blanks and decimals like "1.0".
    if not value.isascii() or not value.isdigit():
        return None
    parsed = int(value)
    if parsed > upper_bound:
        return None
    return parsed


def _parse_amount(value: str) -> Optional[Decimal]:
    """Parse a non-negative amount with at most four fractional digits."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None

    if not amount.is_finite() or amount < 0:
        return None

    # Inexact: real digits past the fourth place. InvalidOperation: wider
    # than MAX_AMOUNT_DIGITS once scaled to four places.
    try:
        return amount.quantize(AMOUNT_QUANTUM, context=AMOUNT_CONTEXT)
    except (Inexact, InvalidOperation):
        return None
