"""Centralized logging configuration for the campfin application.

Sets up standard Python logging with appropriate levels, formatters,
and handlers (console and optional file).
"""

import logging
import sys
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None

def resolve_log_level(level: Union[int, str, None]) -> int:
    """Accepts a level number or name ('debug', 'INFO', ...)."""
    if isinstance(level, int):
        return level
    if level is None:
        return DEFAULT_LOG_LEVEL
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL

def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG or 'debug').
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
    """
    level = resolve_log_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers attached to the root logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    # Console output goes to stderr so it never mixes with JSON on stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}")

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}")
