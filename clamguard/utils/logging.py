"""Logging setup for ClamGuard."""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Set up logging for ClamGuard.

    The terminal handler honours ``level``. The file handler always records
    INFO and above so the append-only log keeps a full history of runs even
    when the terminal is quiet.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging (opened in append mode)
        use_colors: Whether to use colored output (if rich is available)

    Returns:
        Root logger for clamguard
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if use_colors:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        formatter = logging.Formatter("%(message)s")
    else:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_LOG_DATEFMT)

    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)

    logger = logging.getLogger("clamguard")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    file_level = min(numeric_level, logging.INFO)
    logger.setLevel(file_level if log_file else numeric_level)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_LOG_DATEFMT)
        )
        file_handler.setLevel(file_level)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (will be prefixed with 'clamguard.')

    Returns:
        Logger instance
    """
    if not name.startswith("clamguard"):
        name = f"clamguard.{name}"
    return logging.getLogger(name)


def close_file_handlers() -> None:
    """Flush and detach file handlers so log files are released."""
    logger = logging.getLogger("clamguard")
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            handler.close()
            logger.removeHandler(handler)
