"""
InvoiceLedger -- applies lifecycle operations to invoices held in a store.

Thin orchestration layer that:
1. Reads invoices from the injected ``InvoiceStore``
2. Delegates every transition decision to ``invoice_ledger.domain.invoice``
3. Writes results back inside one store transaction per invoice
4. Logs each step with operation and invoice id bound in ``LogContext``

The ledger holds no state between calls.  Time comes only from the injected
``Clock``.  Store failures are logged and re-raised unchanged; nothing is
retried.

Usage:
    ledger = InvoiceLedger(SqlAlchemyInvoiceStore(get_session_factory()), clock)
    invoice = ledger.create_invoice(Decimal("100.00"), due_date)
    ledger.pay_invoice(invoice.id, Decimal("60.00"))
    ledger.process_overdue(late_fee=Decimal("10.00"), overdue_days=30)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterator
from uuid import UUID

from invoice_ledger.domain.clock import Clock, SystemClock
from invoice_ledger.domain.invoice import (
    Invoice,
    PaymentOutcome,
    apply_payment,
    check_status_change,
    is_overdue,
    new_invoice,
    require_aware,
    require_money,
    require_status,
    resolve_overdue,
)
from invoice_ledger.domain.results import (
    OverdueSweepResult,
    PaymentResult,
    ResolvedInvoice,
)
from invoice_ledger.exceptions import (
    InvalidArgumentError,
    InvoiceNotFoundError,
    OverdueSweepError,
    StoreError,
)
from invoice_ledger.logging_config import LogContext, get_logger
from invoice_ledger.store.base import InvoiceStore

logger = get_logger("services.ledger")


class InvoiceLedger:
    """
    Enforces the invoice state machine over a persistence store.

    Transaction boundary: every public operation opens its own store
    transaction; ``process_overdue`` opens one per overdue invoice.
    """

    def __init__(self, store: InvoiceStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    # =========================================================================
    # Create / read
    # =========================================================================

    def create_invoice(self, amount: Decimal, due_date: datetime) -> Invoice:
        """Persist a new PENDING invoice with nothing paid."""
        draft = new_invoice(amount, due_date)
        with LogContext.bind(operation="create_invoice"):
            with self._store_failures_logged():
                with self._store.transaction() as tx:
                    invoice = self._insert(tx, draft)

            with LogContext.bind(invoice_id=invoice.id):
                logger.info(
                    "invoice_created",
                    extra={"amount": invoice.amount, "due_date": invoice.due_date},
                )
            return invoice

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        """
        Raises:
            InvoiceNotFoundError: If no invoice has this id.
        """
        with LogContext.bind(operation="get_invoice", invoice_id=str(invoice_id)):
            with self._store_failures_logged():
                invoice = self._store.find_by_id(invoice_id)
            if invoice is None:
                logger.info("invoice_not_found")
                raise InvoiceNotFoundError(invoice_id)
            return invoice

    def list_invoices(self) -> list[Invoice]:
        with LogContext.bind(operation="list_invoices"), self._store_failures_logged():
            return self._store.find_all()

    # =========================================================================
    # Payments
    # =========================================================================

    def pay_invoice(self, invoice_id: UUID, amount: Decimal) -> PaymentResult:
        """
        Apply a payment against the outstanding balance.

        Overpayments and payments against PAID/VOIDED invoices are rejected
        as no-ops, reported through ``PaymentResult.outcome``.

        Raises:
            InvalidAmountError: If amount is negative.
            InvoiceNotFoundError: If no invoice has this id.
            OptimisticLockError: If the invoice changed under us.
        """
        payment = require_money("amount", amount)

        with LogContext.bind(operation="pay_invoice", invoice_id=str(invoice_id)):
            with self._store_failures_logged():
                with self._store.transaction() as tx:
                    current = tx.find_by_id(invoice_id)
                    if current is None:
                        logger.warning("payment_target_missing", extra={"payment": payment})
                        raise InvoiceNotFoundError(invoice_id)

                    outcome, invoice = apply_payment(current, payment)
                    if outcome is PaymentOutcome.APPLIED:
                        invoice = tx.update(invoice)

            if outcome is PaymentOutcome.APPLIED:
                logger.info(
                    "payment_applied",
                    extra={
                        "payment": payment,
                        "remaining": invoice.amount,
                        "paid_amount": invoice.paid_amount,
                        "status": invoice.status,
                    },
                )
            else:
                logger.info(
                    f"payment_{outcome.value}",
                    extra={
                        "payment": payment,
                        "remaining": invoice.amount,
                        "status": invoice.status,
                    },
                )
            return PaymentResult(outcome=outcome, invoice=invoice)

    # =========================================================================
    # Overdue sweep
    # =========================================================================

    def process_overdue(
        self, late_fee: Decimal, overdue_days: int
    ) -> OverdueSweepResult:
        """
        Close every overdue PENDING invoice and spawn its penalized successor.

        An invoice is overdue when ``due_date + overdue_days < now``.  Each
        one is resolved in its own store transaction, re-read first so a
        concurrent payment or update is respected.  The first failure aborts
        the sweep; invoices resolved before it stay resolved.

        Raises:
            InvalidArgumentError: If late_fee or overdue_days is negative.
            OverdueSweepError: If resolving any invoice fails.
            StoreError: If the initial scan fails.
        """
        late_fee = require_money("late_fee", late_fee)
        if overdue_days < 0:
            raise InvalidArgumentError(
                "overdue_days", overdue_days, "must be non-negative"
            )

        as_of = self._clock.now()
        with LogContext.bind(operation="process_overdue"):
            with self._store_failures_logged():
                candidates = [
                    invoice
                    for invoice in self._store.find_all()
                    if is_overdue(invoice, as_of, overdue_days)
                ]

            logger.info(
                "overdue_sweep_started",
                extra={
                    "as_of": as_of,
                    "candidates": len(candidates),
                    "late_fee": late_fee,
                    "overdue_days": overdue_days,
                },
            )

            resolved: list[ResolvedInvoice] = []
            for candidate in candidates:
                with LogContext.bind(invoice_id=str(candidate.id)):
                    try:
                        outcome = self._resolve_overdue_invoice(
                            candidate.id, late_fee, overdue_days, as_of
                        )
                    except Exception as exc:
                        logger.error(
                            "overdue_sweep_aborted",
                            exc_info=True,
                            extra={"resolved_count": len(resolved)},
                        )
                        raise OverdueSweepError(
                            candidate.id, len(resolved), exc
                        ) from exc
                if outcome is not None:
                    resolved.append(outcome)

            logger.info(
                "overdue_sweep_completed",
                extra={"resolved_count": len(resolved)},
            )
            return OverdueSweepResult(as_of=as_of, resolved=tuple(resolved))

    def _resolve_overdue_invoice(
        self,
        invoice_id: UUID,
        late_fee: Decimal,
        overdue_days: int,
        as_of: datetime,
    ) -> ResolvedInvoice | None:
        with self._store.transaction() as tx:
            current = tx.find_by_id(invoice_id)
            if current is None or not is_overdue(current, as_of, overdue_days):
                logger.info("overdue_invoice_skipped")
                return None

            resolution = resolve_overdue(current, late_fee, overdue_days, as_of)
            successor = self._insert(tx, resolution.successor)
            closed = tx.update(resolution.closed)

        logger.info(
            "overdue_invoice_resolved",
            extra={
                "closed_status": closed.status,
                "outstanding": current.amount,
                "paid_amount": current.paid_amount,
                "successor_id": str(successor.id),
                "successor_amount": successor.amount,
                "successor_due_date": successor.due_date,
            },
        )
        return ResolvedInvoice(
            original_id=closed.id,
            closed_status=closed.status,
            successor=successor,
        )

    # =========================================================================
    # Administrative update / delete
    # =========================================================================

    def update_invoice(self, invoice: Invoice) -> Invoice | None:
        """
        Replace amount, paid_amount, due_date and status of an invoice.

        An unknown id is a soft failure: logged, returns None, no exception.
        The write takes whatever version is stored (last writer wins).

        Raises:
            InvalidAmountError: If amount or paid_amount is negative.
            InvalidStatusTransitionError: If the invoice is PAID or VOIDED
                and a different status is requested.
        """
        if invoice.id is None:
            raise InvalidArgumentError("id", None, "update requires an invoice id")
        replacement = replace(
            invoice,
            amount=require_money("amount", invoice.amount),
            paid_amount=require_money("paid_amount", invoice.paid_amount),
            due_date=require_aware("due_date", invoice.due_date),
            status=require_status("status", invoice.status),
        )

        with LogContext.bind(operation="update_invoice", invoice_id=str(invoice.id)):
            try:
                with self._store_failures_logged():
                    with self._store.transaction() as tx:
                        current = tx.find_by_id(invoice.id)
                        if current is None:
                            raise InvoiceNotFoundError(invoice.id)
                        check_status_change(current.id, current.status, replacement.status)
                        stored = tx.update(replace(replacement, version=current.version))
            except InvoiceNotFoundError:
                logger.warning("update_target_missing")
                return None

            logger.info(
                "invoice_updated",
                extra={
                    "amount": stored.amount,
                    "paid_amount": stored.paid_amount,
                    "status": stored.status,
                    "previous_status": current.status,
                },
            )
            return stored

    def delete_invoice(self, invoice_id: UUID) -> None:
        """Remove an invoice regardless of status. No-op if absent."""
        with LogContext.bind(operation="delete_invoice", invoice_id=str(invoice_id)):
            with self._store_failures_logged():
                with self._store.transaction() as tx:
                    removed = tx.delete(invoice_id)
            logger.info("invoice_deleted" if removed else "delete_target_missing")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _insert(tx: InvoiceStore, draft: Invoice) -> Invoice:
        invoice_id = tx.insert(draft)
        stored = tx.find_by_id(invoice_id)
        if stored is None:
            raise StoreError("insert", invoice_id, "record missing after insert")
        return stored

    @contextmanager
    def _store_failures_logged(self) -> Iterator[None]:
        try:
            yield
        except StoreError:
            logger.error("store_failure", exc_info=True)
            raise
