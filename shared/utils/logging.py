"""
Logging setup for Call Captions.

The orchestrator, capture context and inference worker all log through the
standard logging module; this configures it once at startup and keeps model
download and socket libraries from drowning out the caption log.
"""

import logging
import os
import sys
from typing import Literal

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log level type
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers that are chatty at INFO during model loads and socket churn
NOISY_LOGGERS = ("transformers", "websockets", "urllib3", "filelock", "huggingface_hub")


def _resolve_level(level: str | None) -> int:
    """Map a level name (or LOG_LEVEL when None) to a logging constant, INFO if unknown."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    resolved = getattr(logging, level.strip().upper(), None)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    name: str | None = None,
    level: LogLevel | None = None,
    format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure stdout logging and return a logger.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.
        level: Log level. Defaults to LOG_LEVEL env var or INFO.
        format: Log format string.

    Usage:
        from shared.utils import setup_logging
        logger = setup_logging(__name__)
        logger.info("Capture started")
    """
    log_level = _resolve_level(level)

    # basicConfig is a no-op once the root logger has handlers
    logging.basicConfig(level=log_level, format=format, stream=sys.stdout)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger by name. Assumes setup_logging() ran at startup."""
    return logging.getLogger(name)


def set_log_level(level: LogLevel) -> None:
    """Change the root log level at runtime (e.g. for --debug)."""
    logging.getLogger().setLevel(_resolve_level(level))


def quiet_loggers(names: tuple[str, ...] = NOISY_LOGGERS, level: int = logging.WARNING) -> None:
    """
    Raise the threshold of third-party loggers.

    Args:
        names: Logger names to quiet
        level: Minimum level those loggers will emit
    """
    for name in names:
        logging.getLogger(name).setLevel(level)
