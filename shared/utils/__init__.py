"""Shared utilities."""

from .logging import DEFAULT_FORMAT, get_logger, quiet_loggers, set_log_level, setup_logging

__all__ = [
    "DEFAULT_FORMAT",
    "get_logger",
    "quiet_loggers",
    "set_log_level",
    "setup_logging",
]
