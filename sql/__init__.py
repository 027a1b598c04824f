"""
==================================================
SQL utilities package for test-database provisioning.
==================================================

This package holds everything that differs between database engines:
DDL templates, script batch splitting rules and the setup scripts.

The package follows a clear organization:
    - dialects.py: Engine enum and per-engine template providers
    - splitter.py: Per-engine script batch splitters
    - scripts/: Schema-setup script per engine

Example:
    >>> from sql.dialects import PostgreSqlDialect
    >>>
    >>> dialect = PostgreSqlDialect()
    >>> dialect.exists_database_sql('OrleansTest')
    "SELECT EXISTS (SELECT 1 FROM pg_database WHERE datname = 'OrleansTest')"
"""

__version__ = "1.0.0"
__all__ = [
    # Dialects
    'Engine', 'Dialect', 'SqlServerDialect', 'MySqlDialect', 'PostgreSqlDialect',
    # Splitting
    'ScriptParseError', 'DATABASE_NAME_PLACEHOLDER',
    'SqlServerBatchSplitter', 'MySqlBatchSplitter', 'PostgreSqlBatchSplitter'
]

from .dialects import Dialect, Engine, MySqlDialect, PostgreSqlDialect, SqlServerDialect
from .splitter import (
    DATABASE_NAME_PLACEHOLDER,
    MySqlBatchSplitter,
    PostgreSqlBatchSplitter,
    ScriptParseError,
    SqlServerBatchSplitter,
)
