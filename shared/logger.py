"""Logging setup shared by all tools."""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

DEFAULT_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure a logger with rich console output.

    Calling it again for the same name only updates the level.

    Args:
        name: Logger name (usually the package or module name)
        level: Log level name (DEBUG, INFO, WARNING, ...)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)


def get_file_logger(name: str, path: Path, fmt: Optional[str] = None) -> logging.Logger:
    """
    Return a logger that appends to a text file.

    The logger does not propagate, so file-only records never reach the
    console. Repeated calls with the same path reuse the existing handler.

    Args:
        name: Logger name
        path: Log file path (parent directories are created)
        fmt: Record format (timestamp + message by default)

    Returns:
        File-backed logger
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    target = str(path.resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return logger

    handler = logging.FileHandler(target, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt or FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def close_file_logger(logger: logging.Logger) -> None:
    """Detach and close every file handler of a logger."""
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
