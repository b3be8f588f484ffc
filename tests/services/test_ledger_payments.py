"""
InvoiceLedger payment tests.

Runs against every store implementation (see the ``store`` fixture).

CRITICAL: After a payment, ``amount`` is what is still owed.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from invoice_ledger.domain.invoice import InvoiceStatus, PaymentOutcome
from invoice_ledger.exceptions import InvalidAmountError, InvoiceNotFoundError


class TestPayInvoice:

    def test_full_payment_scenario(self, ledger, now):
        """100 -> pay 60 -> pay 40 -> pay 1 is a no-op."""
        invoice = ledger.create_invoice(Decimal("100"), now + timedelta(days=30))

        ledger.pay_invoice(invoice.id, Decimal("60"))
        after_first = ledger.get_invoice(invoice.id)
        assert after_first.amount == Decimal("40")
        assert after_first.paid_amount == Decimal("60")
        assert after_first.status is InvoiceStatus.PENDING

        ledger.pay_invoice(invoice.id, Decimal("40"))
        after_second = ledger.get_invoice(invoice.id)
        assert after_second.amount == Decimal("0")
        assert after_second.paid_amount == Decimal("100")
        assert after_second.status is InvoiceStatus.PAID

        result = ledger.pay_invoice(invoice.id, Decimal("1"))
        after_third = ledger.get_invoice(invoice.id)
        assert result.outcome is PaymentOutcome.REJECTED_TERMINAL
        assert after_third.amount == Decimal("0")
        assert after_third.paid_amount == Decimal("100")
        assert after_third.status is InvoiceStatus.PAID

    def test_amount_is_outstanding_not_face_value(self, ledger, now):
        """Outstanding is decremented in place, never recomputed from paid."""
        invoice = ledger.create_invoice(Decimal("100"), now)
        ledger.pay_invoice(invoice.id, Decimal("30"))
        ledger.pay_invoice(invoice.id, Decimal("30"))

        stored = ledger.get_invoice(invoice.id)
        assert stored.amount == Decimal("40")
        assert stored.paid_amount == Decimal("60")

    def test_overpayment_leaves_invoice_unchanged(self, ledger, now):
        invoice = ledger.create_invoice(Decimal("50"), now)
        ledger.pay_invoice(invoice.id, Decimal("20"))
        before = ledger.get_invoice(invoice.id)

        result = ledger.pay_invoice(invoice.id, Decimal("30.01"))

        assert result.outcome is PaymentOutcome.REJECTED_OVERPAYMENT
        assert not result.is_applied
        assert ledger.get_invoice(invoice.id) == before

    def test_paying_exact_balance_twice_is_not_idempotent(self, ledger, now):
        invoice = ledger.create_invoice(Decimal("75"), now)

        first = ledger.pay_invoice(invoice.id, Decimal("75"))
        second = ledger.pay_invoice(invoice.id, Decimal("75"))

        assert first.is_applied
        assert second.outcome is PaymentOutcome.REJECTED_TERMINAL
        assert ledger.get_invoice(invoice.id).paid_amount == Decimal("75")

    def test_voided_invoice_rejects_payment(self, ledger, seed_invoice):
        invoice = seed_invoice(amount="80", status=InvoiceStatus.VOIDED)

        result = ledger.pay_invoice(invoice.id, Decimal("10"))

        assert result.outcome is PaymentOutcome.REJECTED_TERMINAL
        assert ledger.get_invoice(invoice.id).amount == Decimal("80")

    def test_zero_payment_on_zero_balance_marks_paid(self, ledger, now):
        invoice = ledger.create_invoice(Decimal("0"), now)

        result = ledger.pay_invoice(invoice.id, Decimal("0"))

        assert result.is_applied
        assert ledger.get_invoice(invoice.id).status is InvoiceStatus.PAID

    def test_applied_payment_bumps_version(self, ledger, now):
        invoice = ledger.create_invoice(Decimal("10"), now)
        result = ledger.pay_invoice(invoice.id, Decimal("1"))
        assert result.invoice.version == invoice.version + 1

    def test_missing_invoice_raises_not_found(self, ledger):
        missing = uuid4()
        with pytest.raises(InvoiceNotFoundError) as exc_info:
            ledger.pay_invoice(missing, Decimal("1"))
        assert exc_info.value.invoice_id == missing

    def test_negative_payment_raises(self, ledger, now):
        invoice = ledger.create_invoice(Decimal("10"), now)
        with pytest.raises(InvalidAmountError):
            ledger.pay_invoice(invoice.id, Decimal("-5"))
        assert ledger.get_invoice(invoice.id).amount == Decimal("10")

    def test_payment_logged_with_invoice_context(self, ledger, captured_logs, now):
        invoice = ledger.create_invoice(Decimal("10"), now)
        ledger.pay_invoice(invoice.id, Decimal("4"))

        applied = [r for r in captured_logs() if r["message"] == "payment_applied"]
        assert len(applied) == 1
        assert applied[0]["invoice_id"] == str(invoice.id)
        assert applied[0]["operation"] == "pay_invoice"
        assert Decimal(applied[0]["remaining"]) == Decimal("6")

    def test_rejection_logged(self, ledger, captured_logs, now):
        invoice = ledger.create_invoice(Decimal("10"), now)
        ledger.pay_invoice(invoice.id, Decimal("11"))

        messages = [r["message"] for r in captured_logs()]
        assert "payment_rejected_overpayment" in messages
