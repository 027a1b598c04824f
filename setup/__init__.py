"""
========================================================
Setup package for disposable test-database provisioning.
========================================================

This package provisions throwaway relational databases for integration
tests: it drops any database left by a previous run, recreates it, applies
the engine's schema-setup script and hands back a session bound to it.

Modules:
    registry: Engine identifier to provisioner factory mapping
    create_database: Dialect-specific exists/create/drop/batch execution
    session: Immutable ProvisioningSession
    setup_orchestrator: Provisioning workflow, teardown and scoped helper

Architecture:
    - Configuration: Centralized in core/config.py (loads from .env)
    - SQL: Dialect templates and batch splitters in the sql/ package
    - Execution: Async RelationalStorage in utils/database_utils.py

Example:
    >>> from setup import setup_instance
    >>>
    >>> session = await setup_instance('mysql', 'OrleansTest')
    >>> session.current_connection_string
    'Server=127.0.0.1;Port=3306;Database=OrleansTest;Uid=root;Pwd=root'

Requirements:
    - SQLAlchemy >= 2.0.0 (asyncio extension)
    - An async driver for each engine used (asyncpg, aiomysql, aioodbc)
    - python-dotenv >= 1.0.0
"""

__version__ = "0.1.0"
__all__ = [
    'setup_instance',
    'teardown_instance',
    'provisioned_instance',
    'SetupOrchestrator',
    'ProvisioningState',
    'ProvisioningSession',
    'DatabaseCreator',
    'ProvisioningError',
    'SchemaSetupError',
    'UnsupportedEngine',
    'resolve',
    'split_script',
    'supported_engines'
]

from .create_database import DatabaseCreator, ProvisioningError, SchemaSetupError
from .registry import UnsupportedEngine, resolve, split_script, supported_engines
from .session import ProvisioningSession
from .setup_orchestrator import (
    ProvisioningState,
    SetupOrchestrator,
    provisioned_instance,
    setup_instance,
    teardown_instance,
)
