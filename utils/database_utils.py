"""
==================================================
Relational storage execution layer (asyncio).
==================================================

Provides the thin execution layer the provisioning workflow calls into:
an async handle bound to one connection string that executes statements and
reads rows. Built on SQLAlchemy's asyncio extension so that every database
round trip is a suspension point.

Key Features:
    - One handle per connection string (AUTOCOMMIT, suitable for DDL)
    - Raw statement execution (script text is not reinterpreted as bind syntax)
    - Row mapping through a caller-supplied callable
    - Explicit disposal of the underlying connection pool

Example:
    >>> from utils.database_utils import RelationalStorage
    >>>
    >>> storage = RelationalStorage.create_instance('mysql', 'Server=127.0.0.1;Database=sys;Uid=root;Pwd=root')
    >>> rows = await storage.read('SELECT 1', row_mapper=lambda row: row[0])
    >>> await storage.dispose()
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from core.logger import get_sql_logger
from utils.connection_string import to_sqlalchemy_url

logger = logging.getLogger(__name__)
sql_logger = get_sql_logger()

T = TypeVar('T')

# SQLAlchemy async driver per engine identifier
ASYNC_DRIVERS = {
    'sqlserver': 'mssql+aioodbc',
    'mysql': 'mysql+aiomysql',
    'postgresql': 'postgresql+asyncpg',
}


class DatabaseConnectionError(Exception):
    """Exception raised when a storage handle cannot be created."""
    pass


class RelationalStorage:
    """Async statement execution bound to a single connection string.

    Attributes:
        engine_identifier: Engine identifier the handle was created for
        connection_string: Connection string the handle is bound to
    """

    def __init__(self, engine_identifier: str, connection_string: str, engine: AsyncEngine):
        self._engine_identifier = engine_identifier
        self._connection_string = connection_string
        self._engine = engine

    @classmethod
    def create_instance(
        cls,
        engine_identifier: str,
        connection_string: str,
        echo: bool = False
    ) -> 'RelationalStorage':
        """
        Create a storage handle for an engine and connection string.

        No connection is opened until the first statement runs.

        Args:
            engine_identifier: One of the keys of ASYNC_DRIVERS
            connection_string: ``key=value;`` connection string
            echo: Enable SQLAlchemy statement logging

        Returns:
            New RelationalStorage

        Raises:
            DatabaseConnectionError: If no async driver is known for the engine
            MalformedConnectionString: If the connection string cannot be parsed
        """
        drivername = ASYNC_DRIVERS.get(str(engine_identifier))
        if drivername is None:
            raise DatabaseConnectionError(f"No async driver configured for engine '{engine_identifier}'")

        url = to_sqlalchemy_url(connection_string, drivername)
        engine = create_async_engine(url, isolation_level='AUTOCOMMIT', echo=echo)
        logger.debug(f"Created storage for {engine_identifier} database '{url.database}'")
        return cls(str(engine_identifier), connection_string, engine)

    @property
    def engine_identifier(self) -> str:
        """Get the engine identifier."""
        return self._engine_identifier

    @property
    def connection_string(self) -> str:
        """Get the connection string this handle is bound to."""
        return self._connection_string

    async def execute(self, sql: str, parameters: Optional[Dict[str, Any]] = None) -> int:
        """
        Execute a statement that returns no rows.

        Args:
            sql: Statement text, passed to the driver as-is
            parameters: Optional driver-level parameters

        Returns:
            Number of rows affected as reported by the driver

        Raises:
            SQLAlchemyError: If the driver rejects the statement
        """
        sql_logger.debug(sql)
        async with self._engine.connect() as conn:
            if parameters:
                result = await conn.exec_driver_sql(sql, parameters)
            else:
                result = await conn.exec_driver_sql(sql)
            return result.rowcount

    async def read(
        self,
        sql: str,
        parameters: Optional[Dict[str, Any]] = None,
        row_mapper: Callable[[Any], T] = tuple
    ) -> List[T]:
        """
        Execute a query and map every returned row.

        Args:
            sql: Query text, passed to the driver as-is
            parameters: Optional driver-level parameters
            row_mapper: Callable applied to each row

        Returns:
            List of mapped rows in result order

        Raises:
            SQLAlchemyError: If the driver rejects the query
        """
        sql_logger.debug(sql)
        async with self._engine.connect() as conn:
            if parameters:
                result = await conn.exec_driver_sql(sql, parameters)
            else:
                result = await conn.exec_driver_sql(sql)
            return [row_mapper(row) for row in result.fetchall()]

    async def dispose(self) -> None:
        """Close all pooled connections of this handle."""
        await self._engine.dispose()
