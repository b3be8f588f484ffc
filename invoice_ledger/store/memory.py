"""
In-memory invoice store.

Dict-backed and guarded by a re-entrant lock.  ``transaction()`` holds the
lock for the whole block and restores the pre-transaction snapshot if the
block raises, so a failed sweep step leaves no half-written invoice.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator
from uuid import UUID, uuid4

from invoice_ledger.domain.invoice import Invoice
from invoice_ledger.exceptions import InvoiceNotFoundError, OptimisticLockError
from invoice_ledger.logging_config import get_logger
from invoice_ledger.store.base import InvoiceStore, listing_key

logger = get_logger("store.memory")


class InMemoryInvoiceStore(InvoiceStore):
    """Process-local store for tests and embedded use."""

    def __init__(self) -> None:
        self._records: dict[UUID, Invoice] = {}
        self._issued: set[UUID] = set()
        self._lock = threading.RLock()

    def insert(self, invoice: Invoice) -> UUID:
        with self._lock:
            invoice_id = uuid4()
            while invoice_id in self._issued:
                invoice_id = uuid4()
            self._issued.add(invoice_id)
            self._records[invoice_id] = replace(invoice, id=invoice_id, version=1)
            return invoice_id

    def find_by_id(self, invoice_id: UUID) -> Invoice | None:
        with self._lock:
            return self._records.get(invoice_id)

    def find_all(self) -> list[Invoice]:
        with self._lock:
            return sorted(self._records.values(), key=listing_key)

    def update(self, invoice: Invoice) -> Invoice:
        with self._lock:
            current = self._records.get(invoice.id)
            if current is None:
                raise InvoiceNotFoundError(invoice.id)
            if current.version != invoice.version:
                raise OptimisticLockError(invoice.id, invoice.version)
            stored = replace(invoice, version=current.version + 1)
            self._records[invoice.id] = stored
            return stored

    def delete(self, invoice_id: UUID) -> bool:
        with self._lock:
            return self._records.pop(invoice_id, None) is not None

    @contextmanager
    def transaction(self) -> Iterator["InMemoryInvoiceStore"]:
        with self._lock:
            snapshot = dict(self._records)
            try:
                yield self
            except BaseException:
                self._records = snapshot
                logger.debug("transaction_rolled_back")
                raise
