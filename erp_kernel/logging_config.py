"""
Structured JSON logging for the ERP kernel.

Every logger lives under the ``erp_kernel`` namespace and writes one JSON
object per line:

    {"ts": "...", "level": "INFO", "logger": "erp_kernel.services.tax",
     "message": "tax_rule_created", "document_no": "INV-7", "tax_code": "VAT20"}

Messages are snake_case event names; details travel in ``extra``.  Values
the stdlib encoder rejects (Decimal amounts, dates, enums, group-code sets)
are rendered by ``_JSONEncoder``.  Errors derived from ErpKernelError add
their ``code`` and structured attributes as ``exc_*`` fields.
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
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from erp_kernel.exceptions import ErpKernelError

_LOGGER_PREFIX = "erp_kernel"

# Context fields, in output order.
_CONTEXT_FIELDS = ("correlation_id", "actor_id", "document_no")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"erp_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Contextvar-scoped fields copied into every record.

    ``document_no`` is set while a document is being taxed or posted so that
    rule resolution logs can be traced back to it.
    """

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        document_no: str | None = None,
    ) -> None:
        """Set context fields.  None leaves a field unchanged."""
        values = {
            "correlation_id": correlation_id,
            "actor_id": actor_id,
            "document_no": document_no,
        }
        for name, value in values.items():
            if value is not None:
                _context_vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name in _CONTEXT_FIELDS
            if (value := _context_vars[name].get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block.  Unknown names are ignored."""
        return _BoundContext(
            {k: v for k, v in fields.items() if k in _context_vars and v is not None}
        )


class _BoundContext:
    def __init__(self, fields: dict[str, str]):
        self._fields = fields
        self._tokens: list[tuple[str, Token]] = []

    def __enter__(self) -> type[LogContext]:
        self._tokens = [
            (name, _context_vars[name].set(value)) for name, value in self._fields.items()
        ]
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for name, token in reversed(self._tokens):
            _context_vars[name].reset(token)
        self._tokens = []


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if isinstance(obj, (UUID, Decimal)):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, ErpKernelError):
        fields["exc_code"] = exc.code
        for key, value in vars(exc).items():
            if not key.startswith("_") and key != "code":
                fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RECORD_KEYS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.tax")`` returns ``erp_kernel.services.tax``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``erp_kernel`` logger.

    Only the first call has an effect; ``bootstrap()`` and ``init_engine_from_url``
    both call it.  ``level`` accepts a level name such as ``"DEBUG"``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root.addHandler(h)


def reset_logging() -> None:
    """Undo configure_logging().  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
