"""
Structured JSON logging for the rent ledger.

Every record is one JSON line.  Records carry the fields of the unit of work
they were emitted from (the generation run, the landlord, the lease account
being billed or allocated) so that one landlord's run, or one lease
account's allocation history, can be filtered out of a mixed log stream:

    with LogContext.bind(landlord_id=landlord.id, lease_account_id=lease.id):
        logger.info("advance_rent_applied", extra={"amount_applied": "5000.00"})

    {"ts": "...", "level": "INFO", "logger": "rental_kernel.services...",
     "message": "advance_rent_applied", "landlord_id": "...",
     "lease_account_id": "...", "amount_applied": "5000.00"}

Money is always rendered as a decimal string, never a float.
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "rental_kernel"

# Order is the order the fields appear in each JSON line.
CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "landlord_id",
    "lease_account_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("rent_ledger_log_context", default=_EMPTY)


def _render_id(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class LogContext:
    """
    Run-scoped log fields (correlation, actor, landlord, lease account).

    Held in a single ContextVar, so nested ``bind()`` blocks in the
    generator (landlord run, then each lease account) restore the outer
    fields on exit.  Unknown field names are ignored.
    """

    @staticmethod
    def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
        current = dict(_context.get())
        for name, value in fields.items():
            if name in CONTEXT_FIELDS and value is not None:
                current[name] = _render_id(value)
        return MappingProxyType(current)

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context. None values are skipped."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _context.set(_EMPTY)

    @classmethod
    def bind(cls, **fields: Any) -> "_Binding":
        """Context manager: set fields on entry, restore the previous set on exit."""
        return _Binding(fields)


class _Binding:

    def __init__(self, fields: Mapping[str, Any]):
        self._fields = fields
        self._token = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(LogContext._merged(self._fields))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _context.reset(self._token)


# ---------------------------------------------------------------------------
# JSON formatting
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record: envelope, context fields, ``extra`` fields,
    then exception details.

    Kernel exceptions contribute ``exc_code`` and their structured
    attributes (``exc_lease_account_id``, ``exc_key`` ...).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RESERVED and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if isinstance(code, str):
            fields["exc_code"] = code
            for name, value in vars(exc).items():
                if not name.startswith("_"):
                    fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``rental_kernel`` namespace (``batch.generator`` ...)."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``rental_kernel`` logger.

    Idempotent: later calls are ignored until ``reset_logging()``.  Records
    do not propagate to the root logger, so a host application's own
    handlers never re-emit them in another format.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
    namespace_logger.setLevel(level)
    namespace_logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    namespace_logger.addHandler(target)


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging()`` again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
    namespace_logger.handlers.clear()
    namespace_logger.setLevel(logging.WARNING)
