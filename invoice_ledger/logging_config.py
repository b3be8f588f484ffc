"""
Structured JSON logging for the invoice ledger.

Every record is written as one JSON object per line:

    {"ts": "...", "level": "INFO", "logger": "invoice_ledger.services.ledger",
     "message": "payment_applied", "operation": "pay_invoice",
     "invoice_id": "...", "remaining": "40.00", "status": "pending"}

Request-scoped fields (correlation_id, actor_id, operation, invoice_id) are
held in a single ContextVar by ``LogContext`` and merged into every record.
``extra=`` values may be UUIDs, Decimals, datetimes or enums; they are
rendered as strings, ISO-8601 timestamps and enum values respectively.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "operation", "invoice_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})

_log_context: ContextVar[Mapping[str, str]] = ContextVar(
    "invoice_ledger_log_context", default=_EMPTY
)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    current = dict(_log_context.get())
    for name, value in fields.items():
        if name in _CONTEXT_FIELDS and value is not None:
            current[name] = str(value)
    return MappingProxyType(current)


class LogContext:
    """Thread-safe / async-safe holder for request-scoped log fields."""

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        operation: str | None = None,
        invoice_id: str | None = None,
    ) -> None:
        """Set context fields. Only non-None values are updated."""
        _log_context.set(
            _merged(
                {
                    "correlation_id": correlation_id,
                    "actor_id": actor_id,
                    "operation": operation,
                    "invoice_id": invoice_id,
                }
            )
        )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_log_context.get())

    @classmethod
    def clear(cls) -> None:
        _log_context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: Any) -> "_Binding":
        """
        Context manager that adds fields for the duration of a block.

        Values are converted with ``str``; None values and names outside
        the known context fields are ignored.  On exit the previous context
        is restored exactly, including fields the block never touched.
        """
        return _Binding(fields)


class _Binding:

    def __init__(self, fields: Mapping[str, Any]):
        self._fields = fields
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _log_context.set(_merged(self._fields))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Render ledger value types; anything else falls back to ``str``."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        # UUID, Decimal and anything else unknown
        return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Attributes set by InvoiceLedgerError subclasses (invoice_id, operation, ...)
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_log_context.get(),
        }

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory / initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "invoice_ledger"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the invoice_ledger namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``invoice_ledger`` logger.

    Idempotent: only the first call in a process (or after
    ``reset_logging``) has any effect.  Records do not propagate to the
    root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    ledger_logger = logging.getLogger(_LOGGER_PREFIX)
    ledger_logger.setLevel(level)
    ledger_logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    ledger_logger.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    ledger_logger = logging.getLogger(_LOGGER_PREFIX)
    ledger_logger.handlers.clear()
    ledger_logger.setLevel(logging.WARNING)
    ledger_logger.propagate = True
