"""Logging configuration for the cache layer and its host application."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, Optional, Union

# Between DEBUG(10) and INFO(20): per-call cache decisions
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

ROOT_LOGGER_NAME = "joinme"

NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(funcName)s:%(lineno)d] %(message)s"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def get_log_level(level_name: str) -> int:
    """Resolve a level name, accepting VERBOSE as well as the stdlib names.

    Raises:
        AttributeError: If the level name is not recognized
    """
    name = level_name.upper()
    if name == "VERBOSE":
        return VERBOSE
    level = getattr(logging, name)
    if not isinstance(level, int):
        raise AttributeError(f"Unknown log level: {level_name}")
    return level


class AutoColoredFormatter(logging.Formatter):
    """Formatter colouring the level name when writing to a color terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "35",
        VERBOSE: "32",
        logging.INFO: "34",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "1;31",
    }

    def __init__(self, *args: Any, enable_colors: bool = True, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.use_colors = enable_colors and self._terminal_supports_color()

    @staticmethod
    def _terminal_supports_color() -> bool:
        isatty = getattr(sys.stdout, "isatty", None)
        if isatty is None or not isatty():
            return False
        term = os.environ.get("TERM", "").lower()
        return bool(term) and term != "dumb"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_colors or color is None:
            return formatted
        return formatted.replace(record.levelname, f"\033[{color}m{record.levelname}\033[0m", 1)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(AutoColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _file_handler(log_path: Path) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    # Files always get the full detail regardless of the console level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: Optional[Union[Path, str]] = None,
) -> logging.Logger:
    """Configure the ``joinme`` logger.

    Args:
        log_level: Console level name; unknown names fall back to INFO
        log_file: Optional file name for a rotating DEBUG-level log
        log_dir: Directory for ``log_file`` (created if missing)

    Returns:
        The configured ``joinme`` logger
    """
    try:
        console_level = get_log_level(log_level)
    except AttributeError:
        console_level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.addHandler(_console_handler(console_level))

    log_path = None
    if log_file:
        log_path = Path(log_file)
        if log_dir is not None:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            log_path = Path(log_dir) / log_file
        logger.addHandler(_file_handler(log_path))

    logger.setLevel(logging.DEBUG if log_path else console_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_path:
        logger.info(f"Logging to file: {log_path}")
    logger.info(f"Logging initialized at {log_level} level")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``joinme`` namespace.

    Module ``__name__`` values already in the namespace are used as-is.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
