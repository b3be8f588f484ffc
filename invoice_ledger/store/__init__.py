"""Persistence store contract and implementations."""

from invoice_ledger.store.base import InvoiceStore
from invoice_ledger.store.memory import InMemoryInvoiceStore
from invoice_ledger.store.sql import SessionInvoiceStore, SqlAlchemyInvoiceStore

__all__ = [
    "InvoiceStore",
    "InMemoryInvoiceStore",
    "SessionInvoiceStore",
    "SqlAlchemyInvoiceStore",
]
