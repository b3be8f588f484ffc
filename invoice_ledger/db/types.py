"""
Module: invoice_ledger.db.types
Responsibility: Conversion helpers shared by the ORM models and the
    command-line transport.
Architecture position: DB.  MUST NOT import from models/, store/ or services/.

Invariants enforced:
    CRITICAL: No floats for money.  All monetary amounts use Decimal.
    Timestamps leaving the database are timezone-aware UTC, even on backends
    (SQLite) that drop the offset on storage.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation


def money_from_str(value: str) -> Decimal:
    """
    Parse a monetary amount from a string.

    Raises:
        ValueError: If value is not a finite number.
    """
    try:
        result = Decimal(value.strip())
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return result


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from the database, else normalize."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
