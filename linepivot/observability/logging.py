"""Structured logging with per-command correlation."""

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, Optional

import structlog

from ..core.config import LoggingConfig, get_config

# Context variable for the id of the command being executed
command_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "command_id", default=""
)


def add_command_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the current command id to log events."""
    current = command_id.get()
    if current:
        event_dict["command_id"] = current
    return event_dict


def add_timestamp(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add timestamp to log events."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_level(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add log level to event dict."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog on top of the standard library logging module."""
    if config is None:
        config = get_config().logging

    processors_list = [
        structlog.stdlib.filter_by_level,
        add_timestamp,
        add_level,
        structlog.stdlib.add_logger_name,
        add_command_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.format == "json":
        processors_list.append(structlog.processors.JSONRenderer())
    else:
        processors_list.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors_list,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if config.output == "file" and config.file_path:
        handler: logging.Handler = logging.FileHandler(config.file_path)
    else:
        handler = logging.StreamHandler(sys.stdout if config.output == "stdout" else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


@contextmanager
def command_context(current: Optional[str] = None) -> Generator[str, None, None]:
    """Bind a command id to every log event emitted inside the block."""
    if current is None:
        current = uuid.uuid4().hex[:12]

    token = command_id.set(current)
    try:
        yield current
    finally:
        command_id.reset(token)
