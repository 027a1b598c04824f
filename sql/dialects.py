"""
=============================================================
Dialect templates for database provisioning per engine.
=============================================================

Each supported engine exposes the same small capability set:

    - default_connection_string: admin connection used before the test
      database exists
    - setup_script_path: schema-setup script for the engine
    - exists_database_sql / create_database_sql / drop_database_sql:
      templates with one substitution point, the database name
    - split_batches: the engine's script batch splitter

Templates are plain format strings. Database names are controlled by the
test suite and are substituted verbatim; names containing the template's
own quoting characters are not supported.

Example:
    >>> from sql.dialects import MySqlDialect
    >>>
    >>> dialect = MySqlDialect()
    >>> dialect.create_database_sql('OrleansTest')
    'CREATE DATABASE IF NOT EXISTS `OrleansTest`'
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol

from core.config import config
from sql.splitter import MySqlBatchSplitter, PostgreSqlBatchSplitter, SqlServerBatchSplitter


class Engine(str, Enum):
    """Closed set of supported database engines."""

    SQL_SERVER = 'sqlserver'
    MYSQL = 'mysql'
    POSTGRESQL = 'postgresql'

    def __str__(self) -> str:
        return self.value


class Dialect(Protocol):
    """Capability interface implemented once per engine."""

    engine: Engine

    @property
    def default_connection_string(self) -> str: ...

    @property
    def setup_script_path(self) -> Path: ...

    def exists_database_sql(self, database_name: str) -> str: ...

    def create_database_sql(self, database_name: str) -> str: ...

    def drop_database_sql(self, database_name: str) -> str: ...

    def split_batches(self, script: str, database_name: str) -> List[str]: ...


def _scripts_dir(override: Optional[Path]) -> Path:
    return Path(override) if override is not None else config.scripts_dir


@dataclass(frozen=True)
class SqlServerDialect:
    """Microsoft SQL Server templates and ``GO`` batch splitting."""

    scripts_dir: Optional[Path] = None
    connection_string: Optional[str] = None
    engine: Engine = field(default=Engine.SQL_SERVER, init=False)

    EXISTS_TEMPLATE = "SELECT CAST(COUNT(1) AS BIT) FROM sys.databases WHERE name = N'{database_name}'"
    CREATE_TEMPLATE = "IF DB_ID(N'{database_name}') IS NULL CREATE DATABASE [{database_name}]"
    DROP_TEMPLATE = (
        "ALTER DATABASE [{database_name}] SET SINGLE_USER WITH ROLLBACK IMMEDIATE; "
        "DROP DATABASE [{database_name}]"
    )
    SCRIPT_NAME = 'CreateMembershipTables_SqlServer.sql'

    @property
    def default_connection_string(self) -> str:
        return self.connection_string or config.get_default_connection_string(self.engine)

    @property
    def setup_script_path(self) -> Path:
        return _scripts_dir(self.scripts_dir) / self.SCRIPT_NAME

    def exists_database_sql(self, database_name: str) -> str:
        return self.EXISTS_TEMPLATE.format(database_name=database_name)

    def create_database_sql(self, database_name: str) -> str:
        return self.CREATE_TEMPLATE.format(database_name=database_name)

    def drop_database_sql(self, database_name: str) -> str:
        return self.DROP_TEMPLATE.format(database_name=database_name)

    def split_batches(self, script: str, database_name: str) -> List[str]:
        return SqlServerBatchSplitter().split(script, database_name)


@dataclass(frozen=True)
class MySqlDialect:
    """MySQL templates and ``DELIMITER``-aware statement splitting."""

    scripts_dir: Optional[Path] = None
    connection_string: Optional[str] = None
    engine: Engine = field(default=Engine.MYSQL, init=False)

    EXISTS_TEMPLATE = (
        "SELECT COUNT(1) > 0 FROM INFORMATION_SCHEMA.SCHEMATA "
        "WHERE SCHEMA_NAME = '{database_name}'"
    )
    CREATE_TEMPLATE = "CREATE DATABASE IF NOT EXISTS `{database_name}`"
    DROP_TEMPLATE = "DROP DATABASE `{database_name}`"
    SCRIPT_NAME = 'CreateMembershipTables_MySql.sql'

    @property
    def default_connection_string(self) -> str:
        return self.connection_string or config.get_default_connection_string(self.engine)

    @property
    def setup_script_path(self) -> Path:
        return _scripts_dir(self.scripts_dir) / self.SCRIPT_NAME

    def exists_database_sql(self, database_name: str) -> str:
        return self.EXISTS_TEMPLATE.format(database_name=database_name)

    def create_database_sql(self, database_name: str) -> str:
        return self.CREATE_TEMPLATE.format(database_name=database_name)

    def drop_database_sql(self, database_name: str) -> str:
        return self.DROP_TEMPLATE.format(database_name=database_name)

    def split_batches(self, script: str, database_name: str) -> List[str]:
        return MySqlBatchSplitter().split(script, database_name)


@dataclass(frozen=True)
class PostgreSqlDialect:
    """PostgreSQL templates and ``;`` statement splitting.

    PostgreSQL has no CREATE DATABASE IF NOT EXISTS; the existence check
    that precedes creation covers it. Drop uses WITH (FORCE) (PostgreSQL 13+)
    to terminate sessions still attached to the test database.
    """

    scripts_dir: Optional[Path] = None
    connection_string: Optional[str] = None
    engine: Engine = field(default=Engine.POSTGRESQL, init=False)

    EXISTS_TEMPLATE = "SELECT EXISTS (SELECT 1 FROM pg_database WHERE datname = '{database_name}')"
    CREATE_TEMPLATE = 'CREATE DATABASE "{database_name}"'
    DROP_TEMPLATE = 'DROP DATABASE "{database_name}" WITH (FORCE)'
    SCRIPT_NAME = 'CreateMembershipTables_PostgreSql.sql'

    @property
    def default_connection_string(self) -> str:
        return self.connection_string or config.get_default_connection_string(self.engine)

    @property
    def setup_script_path(self) -> Path:
        return _scripts_dir(self.scripts_dir) / self.SCRIPT_NAME

    def exists_database_sql(self, database_name: str) -> str:
        return self.EXISTS_TEMPLATE.format(database_name=database_name)

    def create_database_sql(self, database_name: str) -> str:
        return self.CREATE_TEMPLATE.format(database_name=database_name)

    def drop_database_sql(self, database_name: str) -> str:
        return self.DROP_TEMPLATE.format(database_name=database_name)

    def split_batches(self, script: str, database_name: str) -> List[str]:
        return PostgreSqlBatchSplitter().split(script, database_name)
