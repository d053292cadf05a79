"""Common utilities for FleetGuard."""

from .logger import configure_logging, get_logger, setup_logger

__all__ = ["configure_logging", "get_logger", "setup_logger"]
