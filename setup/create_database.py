"""
=====================================================
Database creation module for test provisioning.
=====================================================

Provides the dialect-specific provisioner: the low-level existence check,
create, drop and batch execution operations for one engine, executed through
a RelationalStorage handle. Orchestration (ordering, rebinding, timeouts) is
handled by setup_orchestrator.py.

Key Features:
    - Database existence checking with the dialect's exists template
    - Database creation and dropping with the dialect's DDL templates
    - Sequential batch execution that stops at the first failing batch
    - Copying the provisioner onto a new database (fresh storage handle)

Prerequisites:
    - A reachable database server for the engine
    - A login with CREATE DATABASE / DROP DATABASE privileges
    - A connection string to an admin database (NOT the target database)

Example:
    >>> from setup.registry import resolve
    >>>
    >>> factory = resolve('postgresql')
    >>> creator = factory(factory.dialect.default_connection_string)
    >>>
    >>> if await creator.check_database_exists('OrleansTest'):
    ...     await creator.drop_database('OrleansTest')
    >>> await creator.create_database('OrleansTest')
"""

import logging
from typing import Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from sql.dialects import Dialect
from utils.connection_string import with_database
from utils.database_utils import RelationalStorage

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Exception raised when an existence check or database DDL fails.

    Fatal for the current run; callers may retry the whole provisioning
    call from scratch.
    """
    pass


class SchemaSetupError(Exception):
    """Exception raised when a setup script batch fails.

    Attributes:
        batch_index: 0-based index of the failing batch
        error: Underlying driver error
    """

    def __init__(self, batch_index: int, error: Exception):
        self.batch_index = batch_index
        self.error = error
        super().__init__(f"Setup script batch {batch_index} failed: {error}")


class DatabaseCreator:
    """Dialect-specific provisioner bound to one storage handle.

    Attributes:
        engine_identifier: Engine the provisioner was resolved for
        dialect: Dialect supplying templates and the batch splitter
        storage: RelationalStorage executing the statements

    Example:
        >>> creator = DatabaseCreator('mysql', MySqlDialect(), storage)
        >>> exists = await creator.check_database_exists('OrleansTest')
    """

    def __init__(
        self,
        engine_identifier: str,
        dialect: Dialect,
        storage: RelationalStorage,
        storage_factory: Callable[[str, str], RelationalStorage] = None
    ):
        """Initialize the provisioner.

        Args:
            engine_identifier: Engine identifier
            dialect: Dialect for the engine
            storage: Handle bound to the connection string to operate on
            storage_factory: Builds handles for copy_instance(); defaults to
                RelationalStorage.create_instance
        """
        self.engine_identifier = engine_identifier
        self.dialect = dialect
        self.storage = storage
        self._storage_factory = storage_factory or RelationalStorage.create_instance

    @property
    def connection_string(self) -> str:
        """Get the connection string of the bound storage handle."""
        return self.storage.connection_string

    async def check_database_exists(self, database_name: str) -> bool:
        """
        Check if a database exists.

        Args:
            database_name: Database to look for

        Returns:
            True if the database exists, False otherwise

        Raises:
            ProvisioningError: If the query fails or the server cannot be reached
        """
        sql = self.dialect.exists_database_sql(database_name)
        try:
            rows = await self.storage.read(sql, row_mapper=lambda row: bool(row[0]))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error checking existence of database {database_name}: {e}")
            raise ProvisioningError(f"Failed to check existence of database {database_name}: {e}") from e
        return bool(rows) and rows[0]

    async def drop_database(self, database_name: str) -> None:
        """
        Drop a database.

        Raises:
            ProvisioningError: If the DDL fails or the server cannot be reached
        """
        logger.info(f"Dropping database {database_name}")
        try:
            await self.storage.execute(self.dialect.drop_database_sql(database_name))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error dropping database {database_name}: {e}")
            raise ProvisioningError(f"Failed to drop database {database_name}: {e}") from e
        logger.info(f"Successfully dropped database {database_name}")

    async def create_database(self, database_name: str) -> None:
        """
        Create a database.

        Raises:
            ProvisioningError: If the DDL fails or the server cannot be reached
        """
        logger.info(f"Creating database {database_name}")
        try:
            await self.storage.execute(self.dialect.create_database_sql(database_name))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error creating database {database_name}: {e}")
            raise ProvisioningError(f"Failed to create database {database_name}: {e}") from e
        logger.info(f"Successfully created database {database_name}")

    async def execute_batches(self, batches: Sequence[str]) -> int:
        """
        Execute script batches one after another.

        Execution stops at the first failing batch; later batches are not sent.

        Args:
            batches: Batches in execution order

        Returns:
            Number of batches executed

        Raises:
            SchemaSetupError: If a batch fails, carrying its 0-based index
        """
        for index, batch in enumerate(batches):
            try:
                await self.storage.execute(batch)
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Setup script batch {index} failed: {e}")
                raise SchemaSetupError(index, e) from e
        return len(batches)

    def copy_instance(self, database_name: str) -> 'DatabaseCreator':
        """
        Create a provisioner for the same server targeting another database.

        The current storage handle is left untouched; callers dispose it.

        Args:
            database_name: Database the new handle should be bound to

        Returns:
            New DatabaseCreator with a fresh storage handle
        """
        connection_string = with_database(self.connection_string, database_name)
        storage = self._storage_factory(self.engine_identifier, connection_string)
        return DatabaseCreator(self.engine_identifier, self.dialect, storage, self._storage_factory)

    async def close_connections(self) -> None:
        """Dispose the storage handle's connections."""
        await self.storage.dispose()
