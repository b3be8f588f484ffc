"""Ledger services."""

from invoice_ledger.services.ledger import InvoiceLedger

__all__ = ["InvoiceLedger"]
