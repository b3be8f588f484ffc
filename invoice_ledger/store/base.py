"""
InvoiceStore -- persistence contract consumed by the ledger.

Contract:
    - ``insert(record) -> id``: the store assigns a fresh, never-reused id and
      sets ``version`` to 1.
    - ``find_by_id(id) -> record | None``
    - ``find_all() -> list[record]`` ordered by (due_date, id).
    - ``update(record) -> record``: keyed by id.  Raises InvoiceNotFoundError
      if absent and OptimisticLockError if ``record.version`` is not the
      stored version.  Returns the stored record with its new version.
    - ``delete(id) -> bool``: True if a record was removed, no-op if absent.
    - ``transaction()``: context manager yielding a store whose calls form
      one atomic unit, committed on normal exit and rolled back on any
      exception.

Failure modes:
    Any persistence failure surfaces as StoreError.  The store does not
    retry.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from uuid import UUID

from invoice_ledger.domain.invoice import Invoice


class InvoiceStore(ABC):
    """Abstract persistence store for invoice records."""

    @abstractmethod
    def insert(self, invoice: Invoice) -> UUID:
        ...

    @abstractmethod
    def find_by_id(self, invoice_id: UUID) -> Invoice | None:
        ...

    @abstractmethod
    def find_all(self) -> list[Invoice]:
        ...

    @abstractmethod
    def update(self, invoice: Invoice) -> Invoice:
        ...

    @abstractmethod
    def delete(self, invoice_id: UUID) -> bool:
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager["InvoiceStore"]:
        ...


def listing_key(invoice: Invoice) -> tuple:
    """Sort key shared by every store so listings agree across backends."""
    return (invoice.due_date, str(invoice.id))
