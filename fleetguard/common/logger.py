"""Logging setup for FleetGuard.

Every component logs through a child of the ``fleetguard`` logger
(``fleetguard.rbac``, ``fleetguard.tenancy``, ...). The root is configured
once, at application or CLI start, with a console handler and an optional
size-rotated file. Timestamps are ISO 8601 in UTC.
"""

import logging
import logging.handlers
import os
import time
from typing import List, Optional

ROOT_LOGGER = "fleetguard"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _parse_level(level: str) -> int:
    level_upper = level.upper()
    if level_upper not in LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: {', '.join(LOG_LEVELS)}"
        )
    return getattr(logging, level_upper)


def _utc_formatter(log_format: str, date_format: str) -> logging.Formatter:
    formatter = logging.Formatter(log_format, datefmt=date_format)
    formatter.converter = time.gmtime
    return formatter


def _build_handlers(
    name: str,
    log_dir: str,
    file_logging: bool,
    console_logging: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        ))
    if console_logging:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logger(
    name: str = ROOT_LOGGER,
    log_dir: str = "./logs",
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure a logger with console and optional rotating file output.

    Calling it again only adjusts the level; handlers are attached once.

    Args:
        name: Logger name, normally the ``fleetguard`` root
        log_dir: Directory for ``<name>.log`` when file logging is on
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL (any case)
        log_format: Custom log format string
        date_format: Custom date format string
        file_logging: Write to a rotating file in ``log_dir``
        console_logging: Write to stderr
        max_bytes: File size that triggers rotation
        backup_count: Rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))

    if logger.handlers:
        return logger

    formatter = _utc_formatter(log_format or DEFAULT_FORMAT, date_format or DEFAULT_DATE_FORMAT)
    for handler in _build_handlers(
        name, log_dir, file_logging, console_logging, max_bytes, backup_count
    ):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_logging(settings) -> logging.Logger:
    """Configure the ``fleetguard`` root from application settings."""
    return setup_logger(
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("rbac")`` -> ``fleetguard.rbac``."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
