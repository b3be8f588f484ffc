"""
SQLAlchemy invoice store.

Every call runs inside ``session_scope`` (commit on success, rollback on any
exception).  ``transaction()`` exposes one session to several calls so an
overdue resolution commits or rolls back as a unit.

Concurrency:
    ``update`` re-reads the row with SELECT ... FOR UPDATE (populate_existing
    so a stale identity-map copy is never trusted) and compares versions
    before writing.  The UPDATE itself is also conditioned on the loaded
    version, which covers backends that ignore FOR UPDATE (SQLite).  Either
    mismatch raises OptimisticLockError.

Failure modes:
    SQLAlchemyError from any statement or from commit is wrapped in
    StoreError with the operation and invoice id; the original is chained.
"""

from contextlib import contextmanager
from typing import Iterator
from uuid import UUID, uuid4

from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from invoice_ledger.db.engine import session_scope
from invoice_ledger.domain.invoice import Invoice
from invoice_ledger.exceptions import (
    InvoiceNotFoundError,
    OptimisticLockError,
    StoreError,
)
from invoice_ledger.logging_config import get_logger
from invoice_ledger.models.invoice import InvoiceModel
from invoice_ledger.store.base import InvoiceStore

logger = get_logger("store.sql")


@contextmanager
def _wrap_errors(operation: str, invoice_id: UUID | None = None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(operation, invoice_id, str(exc)) from exc


class SessionInvoiceStore(InvoiceStore):
    """Store bound to one open session; the owner commits or rolls back."""

    def __init__(self, session: Session):
        self._session = session

    def insert(self, invoice: Invoice) -> UUID:
        invoice_id = uuid4()
        with _wrap_errors("insert", invoice_id):
            self._session.add(InvoiceModel.from_dto(invoice, invoice_id))
            self._session.flush()
        return invoice_id

    def find_by_id(self, invoice_id: UUID) -> Invoice | None:
        with _wrap_errors("find_by_id", invoice_id):
            model = self._session.get(InvoiceModel, invoice_id)
            return model.to_dto() if model is not None else None

    def find_all(self) -> list[Invoice]:
        with _wrap_errors("find_all"):
            models = self._session.execute(
                select(InvoiceModel).order_by(InvoiceModel.due_date, InvoiceModel.id)
            ).scalars()
            return [m.to_dto() for m in models]

    def update(self, invoice: Invoice) -> Invoice:
        with _wrap_errors("update", invoice.id):
            model = self._session.get(
                InvoiceModel,
                invoice.id,
                with_for_update=True,
                populate_existing=True,
            )
            if model is None:
                raise InvoiceNotFoundError(invoice.id)
            if model.version != invoice.version:
                raise OptimisticLockError(invoice.id, invoice.version)
            model.apply(invoice)
            try:
                self._session.flush()
            except StaleDataError as exc:
                raise OptimisticLockError(invoice.id, invoice.version) from exc
            return model.to_dto()

    def delete(self, invoice_id: UUID) -> bool:
        # Plain DELETE: removal ignores the row version.
        with _wrap_errors("delete", invoice_id):
            result = self._session.execute(
                sa_delete(InvoiceModel).where(InvoiceModel.id == invoice_id)
            )
            return result.rowcount > 0

    @contextmanager
    def transaction(self) -> Iterator["SessionInvoiceStore"]:
        # Already inside the owner's transaction.
        yield self


class SqlAlchemyInvoiceStore(InvoiceStore):
    """
    Store backed by a SQLAlchemy session factory.

    Each top-level call is its own transaction; use ``transaction()`` to
    group calls.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[SessionInvoiceStore]:
        with _wrap_errors("transaction"):
            with session_scope(self._session_factory) as session:
                yield SessionInvoiceStore(session)

    def insert(self, invoice: Invoice) -> UUID:
        with self.transaction() as tx:
            return tx.insert(invoice)

    def find_by_id(self, invoice_id: UUID) -> Invoice | None:
        with self.transaction() as tx:
            return tx.find_by_id(invoice_id)

    def find_all(self) -> list[Invoice]:
        with self.transaction() as tx:
            return tx.find_all()

    def update(self, invoice: Invoice) -> Invoice:
        with self.transaction() as tx:
            return tx.update(invoice)

    def delete(self, invoice_id: UUID) -> bool:
        with self.transaction() as tx:
            return tx.delete(invoice_id)
