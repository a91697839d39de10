import logging
import os
import sys
from decimal import Decimal
from typing import Iterable, TextIO

from models import AccountSnapshot
from payments_engine import PaymentsEngine

DEFAULT_LOG_LEVEL = "WARNING"


def configure_logging() -> None:
    level_name = os.environ.get("PAYMENTS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    normalized = value.normalize()
    return f"{normalized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], out: TextIO) -> None:
    print("client,available,held,total,locked", file=out)
    for account in accounts:
        print(
            f"{account.client_id},"
            f"{format_decimal(account.available)},"
            f"{format_decimal(account.held)},"
            f"{format_decimal(account.total)},"
            f"{str(account.locked).lower()}",
            file=out,
        )
    out.flush()


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: payments-ledger <input.csv>", file=sys.stderr)
        return 1

    configure_logging()

    filepath = argv[0]
    engine = PaymentsEngine()
    try:
        accounts = engine.process_file(filepath)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Failed to read {filepath}: {e}", file=sys.stderr)
        return 1

    print(engine.stats, file=sys.stderr)

    try:
        write_accounts(accounts, sys.stdout)
    except OSError as e:
        print(f"Failed to write output: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
