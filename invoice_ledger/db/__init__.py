"""Database layer: declarative base, column types, engine and sessions."""

from invoice_ledger.db.base import Base, UUIDString
from invoice_ledger.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
