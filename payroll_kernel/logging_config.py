"""
Structured JSON logging for the payroll kernel.

Every payroll logger lives under the ``payroll_kernel`` namespace and writes
one JSON object per line.  Fields passed through ``extra=`` and the fields
bound on ``LogContext`` (employee, payroll id, partition, ...) become
top-level keys; Decimal amounts are written as strings so no precision is
lost between the ledger and the log.

Usage:
    from payroll_kernel.logging_config import LogContext, get_logger

    logger = get_logger("services.deduction_ledger")
    with LogContext.bind(employee_id="E1", partition="2024-01"):
        logger.info("deduction_applied", extra={"source_id": "CA1"})
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "payroll_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "employee_id",
    "payroll_id",
    "actor_id",
    "partition",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("payroll_log_context", default={})


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
    if unknown:
        raise TypeError(f"Unknown log context fields: {unknown}")


class LogContext:
    """
    Run-scoped log fields held in a single context variable.

    The mapping is replaced, never mutated, so a ``bind`` inside a nested
    call cannot leak into its caller.
    """

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of the current context; None values are ignored."""
        _check_fields(fields)
        updates = {k: v for k, v in fields.items() if v is not None}
        _context.set({**_context.get(), **updates})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    def bind(cls, **fields: str | None):
        """Context manager: set ``fields`` on entry, restore the previous values on exit."""
        _check_fields(fields)
        return _bound({k: v for k, v in fields.items() if v is not None})


@contextmanager
def _bound(fields: dict[str, str]) -> Iterator[type[LogContext]]:
    token = _context.set({**_context.get(), **fields})
    try:
        yield LogContext
    finally:
        _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_*`` keys: type, message, code and the public attributes of the exception."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
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
            **LogContext.get_all(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the payroll_kernel namespace, e.g. ``payroll_kernel.store.file``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``payroll_kernel`` logger.

    Only the first call has any effect until ``reset_logging()``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if isinstance(level, str):
        level = logging.getLevelNamesMapping()[level.upper()]

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
