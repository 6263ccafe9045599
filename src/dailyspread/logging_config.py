"""Logging configuration and custom formatters for DailySpread.

Log calls throughout the package use short static messages with structured
``extra`` fields. This module renders those either as a single human-readable
line (extras appended as ``key:value``) or as JSON, tags every record with
the current refresh-cycle id, and condenses exception chains unless full
stack traces are requested.
"""

from contextvars import ContextVar
import json
import logging
from logging.config import dictConfig
import sys
from typing import Any, Literal

_original_log_record_factory = logging.getLogRecordFactory()

_context_id_var: ContextVar[str | None] = ContextVar("context_id", default=None)

_should_include_stacktrace: bool = False

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "context_id", "exc_custom_attrs", "semantic_trace"}


def custom_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    """Create a log record carrying the attributes of its exception chain.

    Public attributes of each exception in the ``__cause__``/``__context__``
    chain (e.g. ``FeedListingError.source``) are collected into
    ``exc_custom_attrs`` and the chain's messages into ``semantic_trace``.
    """
    record = _original_log_record_factory(*args, **kwargs)
    if not (record.exc_info and record.exc_info[1]):
        return record

    collected_attrs: dict[str, Any] = {}
    chain_messages: list[str] = []
    current: BaseException | None = record.exc_info[1]
    while current:
        for name, val in vars(current).items():
            if not name.startswith("_"):
                collected_attrs.setdefault(name, val)
        chain_messages.append(str(current))
        current = current.__cause__ or current.__context__

    if collected_attrs:
        record.exc_custom_attrs = collected_attrs
    record.semantic_trace = chain_messages
    return record


def set_context_id(context_id: str) -> None:
    """Tag subsequent log records in this context (e.g. ``"cycle-1700000000"``)."""
    _context_id_var.set(context_id)


class ContextIdFilter(logging.Filter):
    """Inject the current context id into each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context_id = _context_id_var.get()
        if context_id is not None:
            record.context_id = context_id
        return True


def _format_extra_value(value: Any) -> str:
    if isinstance(value, dict | list | tuple):
        try:
            return json.dumps(value, sort_keys=True, separators=(", ", ":"))
        except TypeError:
            return f"[Unserializable Value: {type(value).__name__}]"
    return str(value)


class HumanReadableExtrasFormatter(logging.Formatter):
    """Render a record as ``time LEVEL [logger] CtxID:id key:value ... - message``."""

    def _extras(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = dict(getattr(record, "exc_custom_attrs", None) or {})
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                extras[key] = value
        return extras

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            f"[{record.name}]",
        ]
        ctx_id = getattr(record, "context_id", None)
        if ctx_id is not None:
            parts.append(f"CtxID:{ctx_id}")
        parts.extend(
            f"{key}:{_format_extra_value(value)}"
            for key, value in self._extras(record).items()
        )
        parts.append(f"- {record.getMessage()}")
        line = " ".join(parts)

        if record.exc_info:
            if _should_include_stacktrace:
                if not record.exc_text:
                    record.exc_text = self.formatException(record.exc_info)
                line += "\n" + record.exc_text
            else:
                trace: list[str] = getattr(record, "semantic_trace", None) or []
                if trace:
                    line += f"\nError: {trace[0]}"
                    line += "".join(f"\n  Caused by: {msg}" for msg in trace[1:])

        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)
        return line


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "context_id_filter": {"()": ContextIdFilter},
    },
    "formatters": {
        "human_readable_formatter": {
            "()": HumanReadableExtrasFormatter,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json_formatter": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "formatter": "human_readable_formatter",
            "stream": "ext://sys.stderr",
            "filters": ["context_id_filter"],
        },
    },
    "loggers": {
        "dailyspread": {
            "handlers": ["console_handler"],
            "level": "INFO",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "WARNING",
    },
}


def setup_logging(
    log_format_type: Literal["human", "json"],
    app_log_level_name: str,
    include_stacktrace: bool,
) -> None:
    """Configure logging for the application.

    Args:
        log_format_type: Format for logs ('human' or 'json').
        app_log_level_name: Logging level name (e.g., 'INFO', 'DEBUG').
        include_stacktrace: Whether to include full stack traces in error logs.
    """
    global _should_include_stacktrace
    _should_include_stacktrace = include_stacktrace

    logging.setLogRecordFactory(custom_record_factory)

    level_name = app_log_level_name.upper()
    if not isinstance(getattr(logging, level_name, None), int):
        print(
            f"Warning: Invalid LOG_LEVEL '{app_log_level_name}'. Defaulting to INFO.",
            file=sys.stderr,
        )
        level_name = "INFO"
    LOGGING_CONFIG["loggers"]["dailyspread"]["level"] = level_name

    formatter = (
        "json_formatter"
        if log_format_type.lower() == "json"
        else "human_readable_formatter"
    )
    LOGGING_CONFIG["handlers"]["console_handler"]["formatter"] = formatter

    dictConfig(LOGGING_CONFIG)
