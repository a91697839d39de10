import csv
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Union

from models import AccountSnapshot, InvalidRecord, ProcessingResult, ProcessingStats, Transaction
from state_manager import StateManager
from transaction_processor import TransactionProcessor
from validator import validate_row

logger = logging.getLogger(__name__)

# A csv.DictReader row, or a line the csv module already failed to parse.
RawRow = Union[Dict[Optional[str], str], InvalidRecord]


class PaymentsEngine:
    """
    Applies a stream of transactions to an in-memory ledger, strictly in
    input order, and reports the final state of every account.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """Apply one validated transaction. Rejections are returned, not raised."""
        result = self._processor.process_transaction(transaction)
        self._stats.record(result)
        return result

    def snapshot(self) -> List[AccountSnapshot]:
        """Final balances, one entry per account in first-seen order."""
        return self._state.snapshot()

    def process_rows(self, rows: Iterable[RawRow]) -> List[AccountSnapshot]:
        """Validate and apply raw CSV rows, then return the snapshot."""
        for transaction in self._validated(rows):
            self.apply(transaction)
        return self.snapshot()

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """
        Process CSV file and return final account states.

        Raises OSError / UnicodeDecodeError if the file cannot be read; every
        per-row problem is logged and skipped instead.
        """
        logger.info(f"Processing transactions from {filepath}")
        snapshot = self.process_rows(read_rows(filepath))
        logger.info(f"Finished processing {filepath}: {self._stats}")
        for reason, count in self._stats.rejections.items():
            logger.info(f"  {reason.value}: {count}")
        return snapshot

    def _validated(self, rows: Iterable[RawRow]) -> Iterator[Transaction]:
        """Turn raw rows into Transactions, logging and counting the ones that fail."""
        for row_number, row in enumerate(rows, start=1):
            parsed: Union[Transaction, InvalidRecord] = row if isinstance(row, InvalidRecord) else validate_row(row)
            if isinstance(parsed, InvalidRecord):
                self._stats.record_invalid()
                logger.warning(f"Skipping invalid row {row_number}: {parsed.reason}")
                continue
            yield parsed


def read_rows(filepath: str) -> Iterator[RawRow]:
    """
    Lazily yield CSV rows; the file is read once, row by row.
    A line the csv module cannot parse comes back as an InvalidRecord and
    reading carries on with the next line.
    """
    with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f, skipinitialspace=True)
        while True:
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                # DictReader.line_num only advances on success; ask the inner reader.
                yield InvalidRecord(f"unparseable CSV at line {reader.reader.line_num}: {e}")
                continue
            yield row
