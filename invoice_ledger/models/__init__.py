"""ORM models. Importing this package registers every table on Base.metadata."""

from invoice_ledger.models.invoice import InvoiceModel

__all__ = ["InvoiceModel"]
