"""Loguru configuration and per-call log context for WatchlistDB.

Every record is stamped with up to three context fields in
``record["extra"]``:

- ``request_id``: one per CLI invocation (or per gateway request)
- ``operation``: the service operation being run
- ``actor_id``: the user performing a mutation

``metrics.track_operation`` binds ``operation`` and ``actor_id`` around each
service call with :func:`log_context`; the CLI sets ``request_id`` once in
its callback. Console lines show the fields as a trailing tag, JSON lines as
top-level keys.

Example:
    >>> from watchlistdb.logging import log_context, logger
    >>> with log_context(operation="add_movie", actor_id=42):
    ...     logger.info("Adding movie")   # ... | Adding movie [op=add_movie actor=42]
"""

import json
import sys
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from loguru import logger

from watchlistdb.config import settings

CONTEXT_FIELDS = ("request_id", "actor_id", "operation")

# Console tag order and labels
_TAG_LABELS = (("operation", "op"), ("actor_id", "actor"), ("request_id", "req"))

_context: ContextVar[dict[str, str]] = ContextVar("watchlistdb_log_context", default={})


# =============================================================================
# Context Binding
# =============================================================================


def _merged(values: dict[str, Any]) -> dict[str, str]:
    unknown = sorted(set(values) - set(CONTEXT_FIELDS))
    if unknown:
        raise TypeError(f"Unknown log context field(s): {', '.join(unknown)}")
    merged = dict(_context.get())
    merged.update({key: str(value) for key, value in values.items() if value is not None})
    return merged


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Add context fields for the duration of a block.

    Fields given as None are left as they were. The previous context is
    restored on exit, so nested service calls do not leak into each other.

    Raises:
        TypeError: A field name outside ``CONTEXT_FIELDS``
    """
    token = _context.set(_merged(values))
    try:
        yield
    finally:
        _context.reset(token)


def set_request_context(**values: Any) -> None:
    """Set context fields until cleared (one CLI run, one gateway request)."""
    _context.set(_merged(values))


def clear_request_context() -> None:
    _context.set({})


def get_request_context() -> dict[str, str | None]:
    current = _context.get()
    return {field: current.get(field) for field in CONTEXT_FIELDS}


def _stamp_context(record: Any) -> None:
    """Loguru patcher: copy the active context into ``record["extra"]``."""
    extra = record["extra"]
    for field, value in _context.get().items():
        extra.setdefault(field, value)
    extra["context_tag"] = " ".join(
        f"{label}={extra[field]}" for field, label in _TAG_LABELS if extra.get(field)
    )


# =============================================================================
# Formatters
# =============================================================================


def _console_format(record: Any) -> str:
    line = (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<level>{message}</level>"
    )
    if record["extra"].get("context_tag"):
        line += " <dim>[{extra[context_tag]}]</dim>"
    return line + "\n{exception}"


def _json_format(record: Any) -> str:
    payload: dict[str, Any] = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "message": record["message"],
    }
    payload.update(
        (key, value)
        for key, value in record["extra"].items()
        if key not in ("context_tag", "json_line")
    )
    if record["exception"] is not None:
        exc_type, exc_value, exc_tb = record["exception"]
        payload["exception"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    record["extra"]["json_line"] = json.dumps(payload, default=str)
    return "{extra[json_line]}\n"


# =============================================================================
# Sink Setup
# =============================================================================


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Path | None = None,
    colorize: bool = True,
) -> Any:
    """Replace every Loguru sink with the WatchlistDB ones.

    Args:
        level: Minimum log level
        json_logs: One JSON object per line instead of the console format
        log_file: Also write to this file (rotated at 50 MB, kept 14 days)
        colorize: Colour console output (ignored for JSON)

    Returns:
        The configured Loguru logger
    """
    logger.remove()
    logger.configure(patcher=_stamp_context)

    formatter = _json_format if json_logs else _console_format
    logger.add(sys.stdout, level=level, format=formatter, colorize=colorize and not json_logs)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=formatter,
            colorize=False,
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            enqueue=True,
        )

    return logger


setup_logging(
    level=settings.log_level,
    json_logs=settings.log_json,
    log_file=settings.data_dir / "watchlistdb.log" if settings.log_to_file else None,
    colorize=not settings.log_json,
)


__all__ = [
    "CONTEXT_FIELDS",
    "clear_request_context",
    "get_request_context",
    "log_context",
    "logger",
    "set_request_context",
    "setup_logging",
]
