"""Logging setup for LinePivot."""

from .logging import command_context, command_id, configure_logging, get_logger

__all__ = [
    "command_context",
    "command_id",
    "configure_logging",
    "get_logger",
]
