# stocklab/utils/logging_config.py
"""
Logging setup for stocklab scripts.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed once by the entry point through :func:`setup_logging` or
:func:`setup_logging_from_config`.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Mapping, Optional

from ..models.config import LoggingConfig


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        return f"{color}{super().format(record)}{self.COLORS['RESET']}"


def _to_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def _rotating_file_handler(
    log_file: str,
    format_str: str,
    level: int,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    # Files never get ANSI colors
    handler.setFormatter(logging.Formatter(format_str))
    return handler


def setup_logging(
    level: str = "INFO",
    format_str: Optional[str] = None,
    log_file: Optional[str] = None,
    colored: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    logger_levels: Optional[Mapping[str, str]] = None
) -> logging.Logger:
    """
    Configure the root logger for a stocklab run.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_str: Log format string
        log_file: Optional rotating log file path
        colored: Colorize console output by level
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        logger_levels: Per-logger level overrides

    Returns:
        Configured root logger
    """
    format_str = format_str or DEFAULT_FORMAT
    numeric_level = _to_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ColoredFormatter(format_str) if colored else logging.Formatter(format_str))
    root_logger.addHandler(console_handler)

    if log_file:
        root_logger.addHandler(
            _rotating_file_handler(log_file, format_str, numeric_level, max_bytes, backup_count)
        )

    for name, logger_level in (logger_levels or {}).items():
        set_logger_level(name, logger_level)

    return root_logger


def setup_logging_from_config(config: LoggingConfig, level: Optional[str] = None) -> logging.Logger:
    """Setup logging from a LoggingConfig section; ``level`` overrides config.level."""
    return setup_logging(
        level=level or config.level,
        format_str=config.format,
        log_file=config.file,
        colored=config.colored,
        logger_levels=config.logger_levels,
    )


def set_logger_level(name: str, level: str) -> None:
    """Set logging level for a specific logger."""
    logging.getLogger(name).setLevel(_to_level(level))
