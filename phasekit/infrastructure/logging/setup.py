"""
Logging setup and configuration utilities.

Library modules log through the standard ``logging`` module. This module
configures where those records go: loguru sinks (console and rotating file)
or plain standard library handlers, depending on the configured backend.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger as loguru_logger

from ..config.models import LoggingConfig

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_STANDARD_LEVELS = {
    "TRACE": logging.DEBUG,
    "SUCCESS": logging.INFO,
}


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    if config.backend == "loguru":
        _setup_loguru_logging(config)
    else:
        _setup_standard_logging(config)


def standard_level(level: str) -> int:
    """Map a configured level name onto a standard library level."""
    level = level.upper()
    if level in _STANDARD_LEVELS:
        return _STANDARD_LEVELS[level]
    return getattr(logging, level, logging.INFO)  # type: ignore[no-any-return]


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields passed to a log call through ``extra=``."""
    return {key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")}


class LoguruHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        loguru_logger.bind(**record_extras(record)).opt(
            depth=0, exception=record.exc_info
        ).patch(
            lambda r: r.update(name=record.name, function=record.funcName, line=record.lineno)
        ).log(level, record.getMessage())


def _setup_loguru_logging(config: LoggingConfig) -> None:
    """Setup logging using loguru."""
    loguru_logger.remove()

    if config.console_enabled:
        loguru_logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                   "<level>{level: <8}</level> | "
                   "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                   "<level>{message}</level>",
            level=config.level,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        loguru_logger.add(
            log_dir / "startup.log",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                   "{name}:{function}:{line} - {message} | {extra}",
            level=config.level,
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(LoguruHandler())
    root_logger.setLevel(standard_level(config.level))


def _setup_standard_logging(config: LoggingConfig) -> None:
    """Setup logging using standard library."""
    level = standard_level(config.level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    formatter = logging.Formatter(config.format)

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_dir / "startup.log", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
