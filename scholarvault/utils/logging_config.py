"""
Logging configuration for console and file output.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

ROOT_LOGGER_NAME = "scholarvault"


class LogLevel(str, Enum):
    """Log level enumeration."""

    MINIMAL = "minimal"  # Only errors and warnings
    NORMAL = "normal"  # INFO, WARNING, ERROR
    DETAILED = "detailed"  # DEBUG and up
    FULL = "full"  # DEBUG with module and line context


class ColoredFormatter(logging.Formatter):
    """Colored log formatter."""

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        """Format log record with colors."""
        log_color = self.COLORS.get(record.levelname, "")
        record.levelname = f"{log_color}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


def parse_log_level(value: str) -> LogLevel:
    """Map a config string to a LogLevel, accepting stdlib names as well."""
    v = (value or "").strip().lower()
    aliases = {
        "debug": LogLevel.DETAILED,
        "info": LogLevel.NORMAL,
        "warning": LogLevel.MINIMAL,
        "error": LogLevel.MINIMAL,
    }
    if v in aliases:
        return aliases[v]
    try:
        return LogLevel(v)
    except ValueError:
        return LogLevel.NORMAL


def setup_logging(
    level: LogLevel = LogLevel.NORMAL,
    log_file: Optional[str] = None,
    debug: bool = False,
) -> logging.Logger:
    """
    Setup logging configuration for the service.

    Args:
        level: Log level
        log_file: Optional log file path; everything is written there at DEBUG
        debug: Debug mode flag

    Returns:
        Configured package logger
    """
    if debug or level in (LogLevel.DETAILED, LogLevel.FULL):
        log_level = logging.DEBUG
    elif level == LogLevel.NORMAL:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if debug or level == LogLevel.FULL:
        console_format = ColoredFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%H:%M:%S"
        )
    else:
        console_format = ColoredFormatter("%(levelname)-8s | %(message)s")
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance under the package root logger
    """
    if name.startswith(f"{ROOT_LOGGER_NAME}.") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
