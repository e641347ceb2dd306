"""
Logging Configuration Module.

This module provides centralized logging configuration for Autopilot-AI.
Every module logs through ``logging.getLogger(__name__)``; this module wires
handlers, formats and per-module levels once, at application start-up.

Features:
- Configurable log levels per module
- Console and optional file logging
- Simple, detailed or JSON line formats
"""

import logging
from pathlib import Path
from typing import Optional

from autopilot_ai.core.config import settings

# Define log formats
SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

LOG_FILE_NAME = "autopilot_ai.log"

# Module-specific log levels
MODULE_LOG_LEVELS = {
    # Engine modules
    "autopilot_ai.agent_core": "INFO",
    "autopilot_ai.agent_core.planning": "DEBUG",
    "autopilot_ai.agent_core.runtime": "DEBUG",
    "autopilot_ai.agent_core.policy": "DEBUG",
    "autopilot_ai.agent_core.scheduling": "INFO",
    "autopilot_ai.agent_core.repos": "INFO",
    "autopilot_ai.agent_core.reasoning": "INFO",
    # Third-party libraries (reduce noise)
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "asyncio": "WARNING",
}


def _format_string(fmt: str) -> str:
    if fmt == "json":
        return JSON_FORMAT
    if fmt == "simple":
        return SIMPLE_FORMAT
    return DETAILED_FORMAT


def setup_logging(
    log_level: Optional[str] = None,
    log_format: str = "detailed",
    enable_file: Optional[bool] = None,
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override the configured log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (simple, detailed, json)
        enable_file: Whether to also log to ``<log_dir>/autopilot_ai.log``; defaults to settings
        log_dir: Override the configured log directory
    """
    level = (log_level or settings.log_level).upper()
    file_logging = settings.log_to_file if enable_file is None else enable_file
    directory = Path(log_dir or settings.log_dir)

    formatter = logging.Formatter(_format_string(log_format), datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all levels, filter at handler level

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_logging:
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info("Logging configured: level=%s, format=%s, file_logging=%s", level, log_format, file_logging)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
