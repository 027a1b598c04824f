"""
===================================================
Centralized logging configuration for provisioning.
===================================================

Provides consistent logging setup across the provisioning modules with:
- Console output (colored when attached to a terminal) and optional file output
- Configurable log levels
- A dedicated logger for SQL batches so statement echo can be toggled alone

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> # Setup logging at application start
    >>> setup_logging(log_level='DEBUG', log_file='provisioning.log')
    >>>
    >>> # Get module logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Provisioning started")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

SQL_LOGGER_NAME = 'provisioning.sql'

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter adding ANSI colors to the level name.

    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        """Format log record with a colored level name.

        The record is copied so other handlers still see the plain level name.
        """
        color = self.COLORS.get(record.levelname)
        if color:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional logging level override (DEBUG/INFO/WARNING/ERROR/CRITICAL)

    Returns:
        Configured Logger instance
    """
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(getattr(logging, level.upper()))

    return logger


def get_sql_logger() -> logging.Logger:
    """Get the logger used to echo executed SQL batches (DEBUG level)."""
    return logging.getLogger(SQL_LOGGER_NAME)


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True,
    echo_sql: bool = False
) -> None:
    """Setup centralized logging configuration.

    Configures the root logger with console and/or file handlers.
    Should be called once at application startup.

    Args:
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name (e.g., 'provisioning.log')
        log_dir: Optional log directory path (defaults to 'logs/')
        console_output: If True, output to console (stdout)
        use_colors: If True, use colored output when stdout is a terminal
        echo_sql: If True, every executed SQL batch is logged whatever log_level
            is; if False, SQL batches are never logged

    Example:
        >>> setup_logging(log_level='DEBUG', log_file='provisioning.log', log_dir='logs')
    """
    level = getattr(logging, log_level.upper())
    # Handlers must let the SQL logger's DEBUG records through; other
    # loggers are still filtered by the root level
    handler_level = logging.DEBUG if echo_sql else level

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(handler_level)
        if use_colors and sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        else:
            console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir) if log_dir else Path('logs')
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(handler_level)
        file_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    sql_logger = get_sql_logger()
    sql_logger.setLevel(logging.DEBUG if echo_sql else max(level, logging.INFO))


def _init_default_logging():
    """Initialize default logging if the application has not configured any.

    Called on import so provisioning progress is visible from test runs that
    never call setup_logging() explicitly.
    """
    if not logging.getLogger().handlers:
        setup_logging(log_level='INFO', console_output=True, use_colors=True)


# Auto-initialize on import
_init_default_logging()
