"""Logging configuration and helpers for the authorization engine.

Records are rendered either as single console lines or as one JSON object
per line. The acting caller is carried in a context variable set by
:func:`caller_context` around each engine operation, and
:func:`log_context` builds the `extra` payload for engine events.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from rbac_engine.identifiers import Identifier
from rbac_engine.settings import Settings

# ---------------------------------------------------------------------------
# Context and constants
# ---------------------------------------------------------------------------

# Caller identity for the operation currently executing, set by caller_context().
_CALLER: ContextVar[str | None] = ContextVar(
    "rbac_engine_caller",
    default=None,
)

# Attributes that are already handled by logging and should not be copied into
# the extra key=value list.
_STANDARD_ATTRS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    # We handle this explicitly in the base format.
    "caller",
    "taskName",
}


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class ConsoleLogFormatter(logging.Formatter):
    """Render log records as single-line console output.

    Example line:

        2025-11-27T02:57:00.302Z INFO  rbac_engine.engine [caller=0xaa..aa] rbac.membership.added
        changed=True group=0x11..10 user=0x11..00
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s [caller=%(caller)s] %(message)s"
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _utc_timestamp(record)

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        record.caller = _record_caller(record)
        base = super().format(record)

        extras = [
            f"{key}={_format_extra_value(value)}"
            for key, value in sorted(_record_extras(record).items())
        ]

        if extras:
            return f"{base} " + " ".join(extras)
        return base


class JsonLogFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        caller = _record_caller(record)
        payload: dict[str, Any] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "service": "rbac-engine",
            "logger": record.name,
            "message": record.getMessage(),
            "caller": caller,
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonLogFormatter()
    return ConsoleLogFormatter()


def setup_logging(settings: Settings) -> None:
    """Configure root logging for the engine process.

    Installs a single StreamHandler on the root logger and sets the level from
    ``settings.log_level``. SQLAlchemy loggers propagate into the same handler
    and stay at WARNING unless ``settings.database_echo`` is enabled.
    """
    root_logger = logging.getLogger()
    level = getattr(logging, settings.log_level)

    # A fresh handler binds the current sys.stderr; CLI runners swap it per invocation.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_build_formatter(settings.log_format))
    # Keep exactly one root handler for deterministic output.
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    db_level = logging.INFO if settings.database_echo else logging.WARNING
    for name in ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(db_level)


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------


def current_caller() -> str | None:
    """Return the caller identity bound to the logging context, if any."""
    return _CALLER.get()


@contextmanager
def caller_context(caller: Identifier | str | None) -> Iterator[None]:
    """Bind ``caller`` for the duration of the block, restoring the previous value."""
    token = _CALLER.set(str(caller) if caller is not None else None)
    try:
        yield
    finally:
        _CALLER.reset(token)


def log_context(
    *,
    user: Identifier | str | None = None,
    group: Identifier | str | None = None,
    subject: Identifier | str | None = None,
    role: Identifier | str | None = None,
    permission: Identifier | str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a consistent `extra` payload for structured logs.

    Example:
        logger.info(
            "rbac.membership.added",
            extra=log_context(user=user, group=group, changed=True),
        )
    """
    ctx: dict[str, Any] = {}

    if user is not None:
        ctx["user"] = str(user)
    if group is not None:
        ctx["group"] = str(group)
    if subject is not None:
        ctx["subject"] = str(subject)
    if role is not None:
        ctx["role"] = str(role)
    if permission is not None:
        ctx["permission"] = str(permission)

    for key, value in extra.items():
        if value is None:
            continue
        ctx[key] = str(value) if isinstance(value, Identifier) else value

    return ctx


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _utc_timestamp(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, tz=UTC).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{stamp}.{int(record.msecs):03d}Z"


def _record_caller(record: logging.LogRecord) -> str:
    return getattr(record, "caller", None) or _CALLER.get() or "-"


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


def _format_extra_value(value: Any) -> str:
    if isinstance(value, str):
        return value if value and " " not in value else json.dumps(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=_json_default, separators=(",", ":"))
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, Identifier):
        return value.to_hex()
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "caller_context",
    "current_caller",
    "log_context",
    "setup_logging",
]
