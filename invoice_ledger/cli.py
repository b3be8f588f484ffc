"""Command-line transport for the invoice ledger: one subcommand per operation."""

import argparse
import json
import sys
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

import yaml

from invoice_ledger.config import LedgerConfig, load_config
from invoice_ledger.db.engine import create_tables, get_session_factory, init_engine_from_url
from invoice_ledger.db.types import money_from_str
from invoice_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from invoice_ledger.domain.invoice import Invoice, InvoiceStatus
from invoice_ledger.domain.results import OverdueSweepResult, PaymentResult
from invoice_ledger.exceptions import InvoiceLedgerError
from invoice_ledger.logging_config import configure_logging, get_logger
from invoice_ledger.services.ledger import InvoiceLedger
from invoice_ledger.store.sql import SqlAlchemyInvoiceStore

logger = get_logger("cli")


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------


def _money(value: str) -> Decimal:
    try:
        return money_from_str(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an invoice id: {value!r}") from None


def _timestamp(value: str) -> datetime:
    """ISO-8601 date or datetime; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO-8601 timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _status(value: str) -> InvoiceStatus:
    try:
        return InvoiceStatus(value.lower())
    except ValueError:
        choices = ", ".join(s.value for s in InvoiceStatus)
        raise argparse.ArgumentTypeError(f"Status must be one of: {choices}") from None


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def invoice_to_dict(invoice: Invoice) -> dict[str, Any]:
    return {
        "id": str(invoice.id),
        "amount": str(invoice.amount),
        "paid_amount": str(invoice.paid_amount),
        "due_date": invoice.due_date.isoformat(),
        "status": invoice.status.value,
        "version": invoice.version,
    }


def _payment_to_dict(result: PaymentResult) -> dict[str, Any]:
    return {"outcome": result.outcome.value, "invoice": invoice_to_dict(result.invoice)}


def _sweep_to_dict(result: OverdueSweepResult) -> dict[str, Any]:
    return {
        "as_of": result.as_of.isoformat(),
        "resolved_count": result.resolved_count,
        "resolved": [
            {
                "original_id": str(r.original_id),
                "closed_status": r.closed_status.value,
                "successor": invoice_to_dict(r.successor),
            }
            for r in result.resolved
        ],
    }


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_create(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    _emit(invoice_to_dict(ledger.create_invoice(args.amount, args.due_date)))


def _cmd_pay(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    _emit(_payment_to_dict(ledger.pay_invoice(args.invoice_id, args.amount)))


def _cmd_sweep(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    late_fee = args.late_fee if args.late_fee is not None else config.default_late_fee
    overdue_days = (
        args.overdue_days if args.overdue_days is not None else config.default_overdue_days
    )
    _emit(_sweep_to_dict(ledger.process_overdue(late_fee, overdue_days)))


def _cmd_show(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    _emit(invoice_to_dict(ledger.get_invoice(args.invoice_id)))


def _cmd_list(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    invoices = ledger.list_invoices()
    if args.status is not None:
        invoices = [i for i in invoices if i.status is args.status]
    _emit([invoice_to_dict(i) for i in invoices])


def _cmd_update(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    current = ledger.get_invoice(args.invoice_id)
    changes: dict[str, Any] = {}
    if args.amount is not None:
        changes["amount"] = args.amount
    if args.paid_amount is not None:
        changes["paid_amount"] = args.paid_amount
    if args.due_date is not None:
        changes["due_date"] = args.due_date
    if args.status is not None:
        changes["status"] = args.status
    stored = ledger.update_invoice(replace(current, **changes))
    _emit({"updated": stored is not None, "invoice": invoice_to_dict(stored) if stored else None})


def _cmd_delete(ledger: InvoiceLedger, args: argparse.Namespace, config: LedgerConfig) -> None:
    ledger.delete_invoice(args.invoice_id)
    _emit({"deleted": str(args.invoice_id)})


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invoice-ledger",
        description="Create, pay and resolve overdue invoices.",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--database-url", help="Overrides the configured database URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the invoices table")

    p = sub.add_parser("create", help="Create a pending invoice")
    p.add_argument("amount", type=_money)
    p.add_argument("due_date", type=_timestamp)
    p.set_defaults(handler=_cmd_create)

    p = sub.add_parser("pay", help="Pay against an invoice's outstanding balance")
    p.add_argument("invoice_id", type=_uuid)
    p.add_argument("amount", type=_money)
    p.set_defaults(handler=_cmd_pay)

    p = sub.add_parser("sweep", help="Resolve overdue invoices")
    p.add_argument("--late-fee", type=_money)
    p.add_argument("--overdue-days", type=int)
    p.add_argument("--as-of", type=_timestamp, help="Run the sweep as of this time")
    p.set_defaults(handler=_cmd_sweep)

    p = sub.add_parser("show", help="Show one invoice")
    p.add_argument("invoice_id", type=_uuid)
    p.set_defaults(handler=_cmd_show)

    p = sub.add_parser("list", help="List invoices")
    p.add_argument("--status", type=_status)
    p.set_defaults(handler=_cmd_list)

    p = sub.add_parser("update", help="Administrative correction of an invoice")
    p.add_argument("invoice_id", type=_uuid)
    p.add_argument("--amount", type=_money)
    p.add_argument("--paid-amount", type=_money)
    p.add_argument("--due-date", type=_timestamp)
    p.add_argument("--status", type=_status)
    p.set_defaults(handler=_cmd_update)

    p = sub.add_parser("delete", help="Delete an invoice regardless of status")
    p.add_argument("invoice_id", type=_uuid)
    p.set_defaults(handler=_cmd_delete)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.database_url:
            config = replace(config, database_url=args.database_url)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(json.dumps({"error": "INVALID_CONFIGURATION", "message": str(exc)}), file=sys.stderr)
        return 2
    configure_logging(level=config.log_level)
    init_engine_from_url(config.database_url, echo=config.echo_sql)

    if args.command == "init-db":
        create_tables()
        _emit({"initialized": True})
        return 0

    clock: Clock = SystemClock()
    if getattr(args, "as_of", None) is not None:
        clock = DeterministicClock(args.as_of)
    ledger = InvoiceLedger(SqlAlchemyInvoiceStore(get_session_factory()), clock)

    try:
        args.handler(ledger, args, config)
    except InvoiceLedgerError as exc:
        logger.error("command_failed", extra={"command": args.command, "error_code": exc.code})
        print(json.dumps({"error": exc.code, "message": str(exc)}), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
