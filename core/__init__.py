"""
=========================================================
Core infrastructure package for test-database provisioning.
=========================================================

This package provides centralized configuration management and logging
infrastructure used throughout the provisioning modules.

Modules:
    config: Configuration management from environment variables
    logger: Centralized logging configuration and utilities

Example:
    >>> from core.config import config
    >>> from core.logger import get_logger
    >>>
    >>> logger = get_logger(__name__)
    >>> logger.info(f"Setup timeout is {config.options.setup_timeout}s")
"""

__version__ = "0.1.0"
__all__ = ['get_logger', 'get_sql_logger', 'setup_logging', 'config', 'Config', 'ProvisioningOptions']

from core.config import Config, ProvisioningOptions, config
from core.logger import get_logger, get_sql_logger, setup_logging
