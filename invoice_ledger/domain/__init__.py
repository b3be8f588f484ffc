"""
Invoice ledger domain layer.

Pure value objects and transition rules.  No I/O apart from SystemClock.
"""

from invoice_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from invoice_ledger.domain.invoice import (
    Invoice,
    InvoiceStatus,
    OverdueResolution,
    PaymentOutcome,
    apply_payment,
    is_overdue,
    new_invoice,
    resolve_overdue,
)
from invoice_ledger.domain.results import (
    OverdueSweepResult,
    PaymentResult,
    ResolvedInvoice,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Invoice",
    "InvoiceStatus",
    "OverdueResolution",
    "PaymentOutcome",
    "apply_payment",
    "is_overdue",
    "new_invoice",
    "resolve_overdue",
    "OverdueSweepResult",
    "PaymentResult",
    "ResolvedInvoice",
]
