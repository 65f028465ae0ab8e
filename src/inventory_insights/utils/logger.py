"""
Logging configuration for the Inventory Insights client.

Provides centralized logging setup with colored console output and a rotating
log file. Log level, log directory and verbosity come from environment
variables so logging works before the full configuration is loaded.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import colorlog


LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

ROOT_LOGGER_NAME = "inventory_insights"

_package_logger: Optional["InventoryInsightsLogger"] = None


class InventoryInsightsLogger:
    """Centralized logger for the Inventory Insights client."""

    def __init__(self, name: str = ROOT_LOGGER_NAME):
        """Initialize logger with the given name."""
        self.name = name
        self.logger = logging.getLogger(name)
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Setup logger with file and console handlers."""
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_dir = os.getenv("LOG_DIR", "./logs")
        debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"

        Path(log_dir).mkdir(parents=True, exist_ok=True)

        self.logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Handlers are rebuilt on every call so LOG_LEVEL changes take effect
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self._setup_console_handler(debug_mode)
        self._setup_file_handler(log_dir, debug_mode)

        self.logger.propagate = False

    def _setup_console_handler(self, debug_mode: bool) -> None:
        """Setup colored console logging on stderr."""
        console_handler = colorlog.StreamHandler(sys.stderr)

        if debug_mode:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s.%(funcName)s:%(lineno)d - %(message)s"
            )
        else:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s - %(message)s"
            )

        formatter = colorlog.ColoredFormatter(
            color_format,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
        )

        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

    def _setup_file_handler(self, log_dir: str, debug_mode: bool) -> None:
        """Setup file logging with rotation (1MB per file, keep 3 files)."""
        log_file = os.path.join(log_dir, f"{self.name}.log")

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )

        if debug_mode:
            file_format = (
                "%(asctime)s [%(levelname)8s] %(name)s.%(funcName)s:%(lineno)d - "
                "%(message)s"
            )
        else:
            file_format = "%(asctime)s [%(levelname)8s] %(name)s - %(message)s"

        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(file_handler)

    def get_logger(self) -> logging.Logger:
        """Get the configured logger instance."""
        return self.logger


def _ensure_configured() -> None:
    global _package_logger
    if _package_logger is None:
        _package_logger = InventoryInsightsLogger(ROOT_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Module loggers carry no handlers of their own; records propagate to the
    ``inventory_insights`` logger, which owns the console and file handlers.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Returns:
        Logger under the ``inventory_insights`` hierarchy.
    """
    if name is None:
        frame = sys._getframe(1)
        name = frame.f_globals.get('__name__', ROOT_LOGGER_NAME)

    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    _ensure_configured()
    return logging.getLogger(name)


def setup_logging() -> None:
    """
    Setup application-wide logging configuration.

    This should be called once at application startup. Calling it again
    rebuilds the handlers from the current environment.
    """
    global _package_logger
    _package_logger = InventoryInsightsLogger(ROOT_LOGGER_NAME)

    logger = _package_logger.get_logger()
    logger.debug("Logging system initialized")
    logger.debug(f"Handlers: {[h.__class__.__name__ for h in logger.handlers]}")


def mask_token(token: Optional[str], visible: int = 12) -> str:
    """Shorten a bearer token for log output."""
    if not token:
        return "<none>"
    if len(token) <= visible:
        return "***"
    return f"{token[:visible]}...({len(token)} chars)"
