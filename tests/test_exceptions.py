"""Tests for the exception hierarchy and its machine-readable codes."""

from uuid import uuid4

import pytest

from invoice_ledger.exceptions import (
    InvalidAmountError,
    InvalidArgumentError,
    InvalidStatusTransitionError,
    InvoiceLedgerError,
    InvoiceNotFoundError,
    OptimisticLockError,
    OverdueSweepError,
    StoreError,
)


@pytest.mark.parametrize(
    "exc, code",
    [
        (InvalidArgumentError("overdue_days", -1, "must be non-negative"), "INVALID_ARGUMENT"),
        (InvalidAmountError("amount", "-5"), "INVALID_AMOUNT"),
        (InvoiceNotFoundError(uuid4()), "INVOICE_NOT_FOUND"),
        (InvalidStatusTransitionError(uuid4(), "paid", "pending"), "INVALID_STATUS_TRANSITION"),
        (StoreError("insert"), "STORE_FAILURE"),
        (OptimisticLockError(uuid4(), 3), "OPTIMISTIC_LOCK_CONFLICT"),
    ],
)
def test_codes(exc, code):
    assert isinstance(exc, InvoiceLedgerError)
    assert exc.code == code


def test_amount_error_is_argument_error():
    exc = InvalidAmountError("paid_amount", "-1")
    assert isinstance(exc, InvalidArgumentError)
    assert exc.argument == "paid_amount"


def test_lock_conflict_is_store_error():
    invoice_id = uuid4()
    exc = OptimisticLockError(invoice_id, 2)
    assert isinstance(exc, StoreError)
    assert exc.operation == "update"
    assert exc.invoice_id == invoice_id
    assert "expected version 2" in str(exc)


class TestOverdueSweepError:

    def test_carries_ledger_cause_code(self):
        invoice_id = uuid4()
        exc = OverdueSweepError(invoice_id, 4, StoreError("update", invoice_id, "disk full"))

        assert exc.code == "OVERDUE_SWEEP_FAILED"
        assert exc.cause_code == "STORE_FAILURE"
        assert exc.resolved_count == 4
        assert "disk full" in str(exc)

    def test_foreign_cause_named_by_type(self):
        exc = OverdueSweepError(uuid4(), 0, KeyError("boom"))
        assert exc.cause_code == "KeyError"
