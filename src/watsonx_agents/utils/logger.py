"""
Structured logging utilities for the watsonx agent examples.

This module provides the logging setup used by the runtime and the scripts:
- Pretty colored logs (Rich) for development
- JSON formatted logs for staging and production
- A TRACE level below DEBUG for very chatty output
- Run ID tracking so that log lines of one agent run can be correlated
- An optional rotating file handler
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from watsonx_agents.config import get_settings

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Context variable for agent run tracking
_run_id: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

_RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging outside of development.

    Formats log records as JSON objects with timestamp, level, logger name,
    message, and any extra fields including run_id if present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = _run_id.get()
        if run_id:
            log_data["run_id"] = run_id

        # Location is only interesting for debug output
        if record.levelno <= logging.DEBUG:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Set up the logging configuration for the application.

    Args:
        log_level: The logging level (TRACE, DEBUG, INFO, WARNING, ERROR,
                   CRITICAL). If None, uses the level from settings.
        log_file: Path of a rotating JSON log file. If None, uses the
                  configured log file, and no file is written when neither
                  is set.
    """
    settings = get_settings()
    level = _resolve_level(log_level or settings.log_level)
    log_file = log_file or settings.log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if settings.is_development():
        console_handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(JSONFormatter())

    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

    # litellm is very verbose at DEBUG
    logging.getLogger("LiteLLM").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={
            "level": logging.getLevelName(level),
            "environment": settings.environment,
            "log_file": log_file,
        },
    )


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: The name of the logger, typically __name__ of the calling module.
        level: Optional level for this logger only, e.g. "TRACE".

    Returns:
        A configured logger instance.

    Example:
        >>> logger = get_logger("app", level="TRACE")
        >>> logger.log(TRACE, "Very detailed output")
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(_resolve_level(level))
    return logger


def set_run_id(run_id: str) -> None:
    """Set the agent run ID for the current context."""
    _run_id.set(run_id)


def get_run_id() -> Optional[str]:
    """Get the current agent run ID, or None outside of a run."""
    return _run_id.get()


def clear_run_id() -> None:
    """Clear the agent run ID from the current context."""
    _run_id.set(None)


# Initialize logging on module import
try:
    setup_logging()
except Exception as e:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger(__name__).warning(
        f"Failed to set up advanced logging: {e}. Using basic logging."
    )
