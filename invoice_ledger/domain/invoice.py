"""
Invoice Domain Model (``invoice_ledger.domain.invoice``).

Responsibility
--------------
The invoice value object and the pure transition rules of the invoice
lifecycle: payment application, overdue selection, and overdue resolution.

Architecture position
---------------------
**Domain layer** -- ZERO I/O.  Consumed by ``InvoiceLedger``, which wraps
these functions with store calls and logging.

Invariants enforced
-------------------
* ``amount`` is the OUTSTANDING BALANCE, not the original face value.
  Payments decrement it; ``paid_amount`` accumulates what was received.
* ``amount >= 0`` and ``paid_amount >= 0``.
* PAID and VOIDED are terminal.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``due_date`` is timezone-aware.

State machine
-------------

    PENDING --pay (balance reaches 0)----------> PAID
    PENDING --pay (balance left)---------------> PENDING
    PENDING --sweep (paid_amount > 0)----------> PAID   (+ successor)
    PENDING --sweep (paid_amount == 0)---------> VOIDED (+ successor)
    PAID / VOIDED --anything-------------------> unchanged
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

from invoice_ledger.exceptions import (
    InvalidAmountError,
    InvalidArgumentError,
    InvalidStatusTransitionError,
)

ZERO = Decimal("0")


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""

    PENDING = "pending"
    PAID = "paid"
    VOIDED = "voided"

    @property
    def is_terminal(self) -> bool:
        return self is not InvoiceStatus.PENDING


@dataclass(frozen=True)
class Invoice:
    """
    An invoice record.

    ``id`` is None until the store assigns one on insert.  ``version`` is
    owned by the store and bumped on every successful update.
    """

    amount: Decimal
    paid_amount: Decimal
    due_date: datetime
    status: InvoiceStatus = InvoiceStatus.PENDING
    id: UUID | None = None
    version: int = 0

    @property
    def has_payment(self) -> bool:
        return self.paid_amount > ZERO


class PaymentOutcome(str, Enum):
    """What happened to a payment attempt."""

    APPLIED = "applied"
    REJECTED_OVERPAYMENT = "rejected_overpayment"
    REJECTED_TERMINAL = "rejected_terminal"


@dataclass(frozen=True)
class OverdueResolution:
    """The closed original and its not-yet-persisted successor."""

    closed: Invoice
    successor: Invoice


# =============================================================================
# Validation
# =============================================================================


def require_money(argument: str, value: Decimal | int | str) -> Decimal:
    """Coerce to Decimal and reject negatives and floats."""
    if isinstance(value, float):
        raise InvalidArgumentError(argument, value, "float is not allowed for money")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except InvalidOperation:
        raise InvalidArgumentError(argument, value, "not a number") from None
    if not amount.is_finite() or amount < ZERO:
        raise InvalidAmountError(argument, amount)
    return amount


def require_aware(argument: str, value: datetime) -> datetime:
    if value.tzinfo is None:
        raise InvalidArgumentError(argument, value, "datetime must be timezone-aware")
    return value


def require_status(argument: str, value: InvoiceStatus | str) -> InvoiceStatus:
    """Accept an InvoiceStatus or its string value; anything else is rejected."""
    try:
        return InvoiceStatus(value)
    except (ValueError, TypeError):
        choices = ", ".join(s.value for s in InvoiceStatus)
        raise InvalidArgumentError(argument, value, f"must be one of: {choices}") from None


# =============================================================================
# Transitions
# =============================================================================


def new_invoice(amount: Decimal | int | str, due_date: datetime) -> Invoice:
    """Build a fresh PENDING invoice with nothing paid."""
    return Invoice(
        amount=require_money("amount", amount),
        paid_amount=ZERO,
        due_date=require_aware("due_date", due_date),
        status=InvoiceStatus.PENDING,
    )


def apply_payment(
    invoice: Invoice, payment: Decimal | int | str
) -> tuple[PaymentOutcome, Invoice]:
    """
    Apply a payment to an invoice.

    A payment larger than the outstanding balance is rejected, as is any
    payment against a terminal invoice.  Rejections return the invoice
    unchanged.  An accepted payment that brings the balance to exactly zero
    marks the invoice PAID.
    """
    payment = require_money("payment", payment)

    if invoice.status.is_terminal:
        return PaymentOutcome.REJECTED_TERMINAL, invoice
    if payment > invoice.amount:
        return PaymentOutcome.REJECTED_OVERPAYMENT, invoice

    remaining = invoice.amount - payment
    return PaymentOutcome.APPLIED, replace(
        invoice,
        amount=remaining,
        paid_amount=invoice.paid_amount + payment,
        status=InvoiceStatus.PAID if remaining == ZERO else invoice.status,
    )


def is_overdue(invoice: Invoice, as_of: datetime, overdue_days: int) -> bool:
    """PENDING and past its due date by more than the grace period."""
    return (
        invoice.status is InvoiceStatus.PENDING
        and invoice.due_date + timedelta(days=overdue_days) < as_of
    )


def resolve_overdue(
    invoice: Invoice,
    late_fee: Decimal,
    overdue_days: int,
    as_of: datetime,
) -> OverdueResolution:
    """
    Close an overdue invoice and derive its successor.

    Partially paid invoices are closed as PAID, unpaid ones as VOIDED.  In
    both cases the successor carries the outstanding balance plus the late
    fee and falls due ``overdue_days`` after ``as_of``.
    """
    closed_status = InvoiceStatus.PAID if invoice.has_payment else InvoiceStatus.VOIDED
    return OverdueResolution(
        closed=replace(invoice, status=closed_status),
        successor=new_invoice(
            invoice.amount + late_fee,
            as_of + timedelta(days=overdue_days),
        ),
    )


def check_status_change(
    invoice_id: UUID, current: InvoiceStatus, requested: InvoiceStatus
) -> None:
    """Raise if the change would leave a terminal state."""
    if current.is_terminal and requested is not current:
        raise InvalidStatusTransitionError(invoice_id, current.value, requested.value)
