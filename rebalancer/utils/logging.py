"""Logging setup for the rebalancer.

Console output always goes to stdout; an optional rotating log file keeps the
history of a long-running monitor.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_format: str | None = None,
    log_file: str | Path | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
) -> None:
    """Configure the root logger.

    Args:
        level: Logging level name, case-insensitive. Unknown names fall back to INFO.
        log_format: Custom format string. If None, uses DEFAULT_FORMAT.
        log_file: Also write to this file, rotated at max_bytes
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files to keep

    Example:
        >>> setup_logging(level="DEBUG", log_file="logs/rebalancer.log")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=numeric_level,
        format=log_format or DEFAULT_FORMAT,
        handlers=handlers,
        force=True,  # Replace handlers from an earlier call
    )

    # One INFO line per job run is too much at a 5 second poll interval
    logging.getLogger("apscheduler").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Module logger, typically get_logger(__name__)."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: Any,
) -> None:
    """Log a message followed by key=value context fields.

    Example:
        >>> log_with_context(logger, "info", "Trade completed", symbol="XAUT", side="BUY")
        # Logs: "Trade completed | symbol=XAUT side=BUY"
    """
    log_func = getattr(logger, level.lower())

    if context:
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        log_func("%s | %s", message, fields)
    else:
        log_func(message)
