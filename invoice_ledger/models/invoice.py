"""
Invoice ORM Model (``invoice_ledger.models.invoice``).

Responsibility
--------------
SQLAlchemy persistence model for invoices.  Maps the frozen ``Invoice``
dataclass from ``invoice_ledger.domain.invoice`` to the ``invoices`` table.

Architecture position
---------------------
**Persistence** -- imports from ``invoice_ledger.db`` and the domain layer.
Only the SQLAlchemy store touches it.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from invoice_ledger.db.base import Base
from invoice_ledger.db.types import as_utc
from invoice_ledger.domain.invoice import Invoice, InvoiceStatus


class InvoiceModel(Base):
    """
    ORM model for invoices.

    Guarantees:
        - amount / paid_amount are Numeric(38,9), never negative (CHECK).
        - status stored as the string enum value.
        - version starts at 1 and increments on every update; the UPDATE
          matches on the previous version, so a concurrent writer makes
          the flush fail with StaleDataError.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_invoices_amount_non_negative"),
        CheckConstraint(
            "paid_amount >= 0", name="ck_invoices_paid_amount_non_negative"
        ),
        CheckConstraint(
            "status IN ('pending', 'paid', 'voided')", name="ck_invoices_status"
        ),
        Index("idx_invoices_status_due_date", "status", "due_date"),
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    due_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.PENDING.value
    )
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    # UPDATE ... WHERE version = <loaded version>; apply() sets the new value
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def to_dto(self) -> Invoice:
        """Convert ORM model to frozen dataclass."""
        return Invoice(
            id=self.id,
            amount=self.amount,
            paid_amount=self.paid_amount,
            due_date=as_utc(self.due_date),
            status=InvoiceStatus(self.status),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: Invoice, invoice_id: UUID) -> "InvoiceModel":
        """Create ORM model for a new record with a store-assigned id."""
        return cls(
            id=invoice_id,
            amount=dto.amount,
            paid_amount=dto.paid_amount,
            due_date=as_utc(dto.due_date),
            status=dto.status.value,
            version=1,
        )

    def apply(self, dto: Invoice) -> None:
        """Copy the mutable fields of ``dto`` onto this row and bump version."""
        self.amount = dto.amount
        self.paid_amount = dto.paid_amount
        self.due_date = as_utc(dto.due_date)
        self.status = dto.status.value
        self.version = self.version + 1

    def __repr__(self) -> str:
        return (
            f"<InvoiceModel {self.id} status={self.status} "
            f"amount={self.amount} paid={self.paid_amount} v{self.version}>"
        )
