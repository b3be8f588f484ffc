"""
Pytest fixtures for the invoice ledger test suite.

Provides:
- Structured logging setup and log capture
- A deterministic clock
- In-memory and SQLite-backed stores
- A ledger fixture parametrized over both stores

Environment Variables:
- INVOICE_LEDGER_TEST_DATABASE_URL: PostgreSQL URL for tests marked
  ``postgres``.  Those tests are skipped when it is not set.
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from invoice_ledger.db.engine import create_tables, drop_tables, reset_engine
from invoice_ledger.domain.clock import DeterministicClock
from invoice_ledger.domain.invoice import Invoice, InvoiceStatus
from invoice_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from invoice_ledger.services.ledger import InvoiceLedger
from invoice_ledger.store.memory import InMemoryInvoiceStore
from invoice_ledger.store.sql import SqlAlchemyInvoiceStore

POSTGRES_URL_ENV = "INVOICE_LEDGER_TEST_DATABASE_URL"

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture invoice_ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create_invoice(...)
            logs = captured_logs()
            assert any(r["message"] == "invoice_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("invoice_ledger")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(fixed_time=NOW)


@pytest.fixture
def now(clock):
    return clock.now()


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryInvoiceStore()


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite engine with the schema created."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sql_store(session_factory):
    return SqlAlchemyInvoiceStore(session_factory)


@pytest.fixture
def postgres_store():
    """PostgreSQL-backed store; skipped unless a test database is configured."""
    url = os.environ.get(POSTGRES_URL_ENV)
    if not url:
        pytest.skip(f"{POSTGRES_URL_ENV} not set")
    engine = create_engine(url)
    drop_tables(engine)
    create_tables(engine)
    yield SqlAlchemyInvoiceStore(sessionmaker(bind=engine, expire_on_commit=False))
    drop_tables(engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store implementation the ledger must behave identically on."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


@pytest.fixture
def ledger(store, clock):
    return InvoiceLedger(store, clock)


@pytest.fixture(autouse=True)
def _reset_module_engine():
    """Tests that go through init_engine_from_url must not leak the engine."""
    yield
    reset_engine()


# =============================================================================
# Data helpers
# =============================================================================


@pytest.fixture
def seed_invoice(store):
    """
    Insert an invoice with arbitrary state straight into the store.

    Usage::

        invoice = seed_invoice(amount="100", paid_amount="30", due_in_days=-31)
    """

    def _seed(
        amount: str = "100.00",
        paid_amount: str = "0",
        due_in_days: int = 30,
        status: InvoiceStatus = InvoiceStatus.PENDING,
    ) -> Invoice:
        invoice_id = store.insert(
            Invoice(
                amount=Decimal(amount),
                paid_amount=Decimal(paid_amount),
                due_date=NOW + timedelta(days=due_in_days),
                status=status,
            )
        )
        return store.find_by_id(invoice_id)

    return _seed
