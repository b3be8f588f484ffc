"""
Typed Exception Hierarchy for the Invoice Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to tell a missing invoice from a rejected amount from a
broken database without parsing message strings.  Every exception therefore:

  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (invoice id, amounts, operation)

Example:
    try:
        ledger.pay_invoice(invoice_id, Decimal("40.00"))
    except InvoiceNotFoundError as e:
        return {"error": e.code, "invoice_id": str(e.invoice_id)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InvoiceLedgerError (base)
    |
    +-- InvalidArgumentError
    |   +-- InvalidAmountError
    |
    +-- InvoiceNotFoundError
    |
    +-- InvalidStatusTransitionError
    |
    +-- StoreError
    |   +-- OptimisticLockError
    |
    +-- OverdueSweepError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                        | When Raised
----------------------------|------------------------------------------------
INVALID_ARGUMENT            | Bad sweep parameters (negative fee or days)
INVALID_AMOUNT              | Negative amount to create/pay/update
INVOICE_NOT_FOUND           | pay/get on an id the store does not hold
INVALID_STATUS_TRANSITION   | Update tries to leave PAID or VOIDED
STORE_FAILURE               | Any persistence failure
OPTIMISTIC_LOCK_CONFLICT    | Record changed by another writer since read
OVERDUE_SWEEP_FAILED        | Sweep aborted while resolving an invoice

Note: update_invoice on an absent id is NOT an error (soft failure, logged).
"""

from decimal import Decimal
from uuid import UUID


class InvoiceLedgerError(Exception):
    """
    Base exception for all invoice ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVOICE_LEDGER_ERROR"


# Argument validation


class InvalidArgumentError(InvoiceLedgerError):
    """An operation received an argument outside its domain."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, value: object, reason: str):
        self.argument = argument
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {argument}={value!r}: {reason}")


class InvalidAmountError(InvalidArgumentError):
    """A monetary amount was negative."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, argument: str, value: Decimal):
        super().__init__(argument, value, "amount must be non-negative")


# Lookup


class InvoiceNotFoundError(InvoiceLedgerError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: UUID):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


# State machine


class InvalidStatusTransitionError(InvoiceLedgerError):
    """
    Requested status change leaves a terminal state.

    PAID and VOIDED are terminal: no operation may move an invoice out of
    them, including administrative updates.
    """

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, invoice_id: UUID, from_status: str, to_status: str):
        self.invoice_id = invoice_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invoice {invoice_id} cannot move from {from_status} to {to_status}"
        )


# Persistence


class StoreError(InvoiceLedgerError):
    """
    Persistence store failed.

    Raised by store implementations; the ledger logs it with context and
    re-raises it unchanged.
    """

    code: str = "STORE_FAILURE"

    def __init__(
        self,
        operation: str,
        invoice_id: UUID | None = None,
        reason: str | None = None,
    ):
        self.operation = operation
        self.invoice_id = invoice_id
        self.reason = reason
        target = f" on invoice {invoice_id}" if invoice_id is not None else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"Store {operation} failed{target}{detail}")


class OptimisticLockError(StoreError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, invoice_id: UUID, expected_version: int):
        self.expected_version = expected_version
        super().__init__(
            "update",
            invoice_id,
            f"expected version {expected_version}, "
            "record was modified by another transaction",
        )


# Overdue sweep


class OverdueSweepError(InvoiceLedgerError):
    """
    Overdue sweep aborted.

    Invoices resolved before the failure stay resolved; there is no rollback
    across invoices.  The original exception is chained as __cause__.
    """

    code: str = "OVERDUE_SWEEP_FAILED"

    def __init__(self, invoice_id: UUID, resolved_count: int, cause: Exception):
        self.invoice_id = invoice_id
        self.resolved_count = resolved_count
        self.cause_code = getattr(cause, "code", type(cause).__name__)
        super().__init__(
            f"Overdue sweep aborted at invoice {invoice_id} "
            f"after {resolved_count} resolved: {cause}"
        )
