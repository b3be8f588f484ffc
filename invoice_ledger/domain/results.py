"""
Result DTOs returned by ``InvoiceLedger`` operations.

Frozen dataclasses, ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from invoice_ledger.domain.invoice import Invoice, InvoiceStatus, PaymentOutcome


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of ``pay_invoice`` and the invoice as it stands afterwards."""

    outcome: PaymentOutcome
    invoice: Invoice

    @property
    def is_applied(self) -> bool:
        return self.outcome is PaymentOutcome.APPLIED


@dataclass(frozen=True)
class ResolvedInvoice:
    """One overdue invoice closed by a sweep."""

    original_id: UUID
    closed_status: InvoiceStatus
    successor: Invoice


@dataclass(frozen=True)
class OverdueSweepResult:
    """Everything a completed sweep resolved."""

    as_of: datetime
    resolved: tuple[ResolvedInvoice, ...] = field(default_factory=tuple)

    @property
    def resolved_count(self) -> int:
        return len(self.resolved)

    @property
    def successor_ids(self) -> tuple[UUID, ...]:
        return tuple(r.successor.id for r in self.resolved if r.successor.id is not None)
