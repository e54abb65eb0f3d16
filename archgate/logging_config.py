"""
Central logging configuration for the governance engine.

Provides:
- Structured logging (JSON in production, human-readable in development)
- Evaluation correlation via contextvars (evaluation_id set per gate decision)
- The LogSink seam the engines log through

Usage:
    from archgate.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Layer registered", extra={"context": {"layer_id": "dom"}})
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Protocol

# Context var for evaluation ID - set by evaluation_scope(), available throughout a gate decision
evaluation_id_var: ContextVar[Optional[str]] = ContextVar("evaluation_id", default=None)


def get_evaluation_id() -> Optional[str]:
    """Get the current evaluation ID from context, if set."""
    return evaluation_id_var.get()


@contextmanager
def evaluation_scope(evaluation_id: Optional[str] = None) -> Iterator[str]:
    """Bind an evaluation ID to every log record emitted inside the block."""
    value = evaluation_id or uuid.uuid4().hex[:12]
    token = evaluation_id_var.set(value)
    try:
        yield value
    finally:
        evaluation_id_var.reset(token)


class LogLevel(str, Enum):
    """Levels accepted by a LogSink."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogSink(Protocol):
    """Structured logging collaborator supplied by the host application."""

    def log(self, level: LogLevel, message: str, context: Dict[str, Any]) -> None:
        ...


class LoggerSink:
    """LogSink backed by a stdlib logger; the context map travels as the `context` extra."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log(self, level: LogLevel, message: str, context: Dict[str, Any]) -> None:
        self.logger.log(
            _STDLIB_LEVELS[LogLevel(level)],
            message,
            extra={"context": dict(context)},
        )


class EvaluationIdFilter(logging.Filter):
    """Filter that adds evaluation_id to log records from context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.evaluation_id = get_evaluation_id() or "-"  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """Format log records as JSON for production log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        eval_id = getattr(record, "evaluation_id", None)
        if eval_id and eval_id != "-":
            log_obj["evaluation_id"] = eval_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Add extra fields (anything passed via extra= in the log call)
        for key, value in record.__dict__.items():
            if key not in (
                "name", "msg", "args", "created", "filename", "funcName",
                "levelname", "levelno", "lineno", "module", "msecs",
                "pathname", "process", "processName", "relativeCreated",
                "stack_info", "exc_info", "exc_text", "thread", "threadName",
                "message", "taskName", "evaluation_id",
            ) and value is not None:
                # Ensure JSON-serializable
                try:
                    json.dumps(value)
                    log_obj[key] = value
                except (TypeError, ValueError):
                    log_obj[key] = str(value)

        return json.dumps(log_obj)


def _create_dev_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] eval=%(evaluation_id)s %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Configure process-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'development' or 'production'
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    # Ensure evaluation_id exists on all records (default before filter runs)
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = old_factory(*args, **kwargs)
        if not hasattr(record, "evaluation_id"):
            setattr(record, "evaluation_id", "-")
        return record

    logging.setLogRecordFactory(record_factory)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates on reconfigure
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(EvaluationIdFilter())

    if environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(_create_dev_formatter())

    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Logs will automatically include evaluation_id inside evaluation_scope().
    """
    return logging.getLogger(name)


def default_sink(name: str) -> LoggerSink:
    """Sink used by an engine when the host supplies none."""
    return LoggerSink(get_logger(name))
