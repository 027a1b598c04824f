"""
=======================================
Engine registry for test provisioning.
=======================================

Maps an engine identifier to the factory that builds its dialect-specific
provisioner. The set of engines is closed: the mapping is read-only and new
engines are added by extending ENGINE_DIALECTS, not by runtime registration.

Example:
    >>> from setup.registry import resolve, supported_engines
    >>>
    >>> supported_engines()
    ('sqlserver', 'mysql', 'postgresql')
    >>> factory = resolve('mysql')
    >>> creator = factory(factory.dialect.default_connection_string)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Optional, Tuple

from setup.create_database import DatabaseCreator
from sql.dialects import Dialect, Engine, MySqlDialect, PostgreSqlDialect, SqlServerDialect
from utils.database_utils import RelationalStorage

logger = logging.getLogger(__name__)

StorageFactory = Callable[[str, str], RelationalStorage]

ENGINE_DIALECTS = MappingProxyType({
    Engine.SQL_SERVER: SqlServerDialect,
    Engine.MYSQL: MySqlDialect,
    Engine.POSTGRESQL: PostgreSqlDialect,
})


class UnsupportedEngine(Exception):
    """Exception raised for a blank or unregistered engine identifier.

    A configuration error; never retried.
    """
    pass


@dataclass(frozen=True)
class ProvisionerFactory:
    """Builds DatabaseCreator instances for one engine.

    Attributes:
        engine: Resolved engine
        dialect: Dialect instance shared by every provisioner built
        storage_factory: Callable building a storage handle from an engine
            identifier and a connection string
    """

    engine: Engine
    dialect: Dialect
    storage_factory: Optional[StorageFactory] = None

    def __call__(self, connection_string: str) -> DatabaseCreator:
        """Build a provisioner bound to a new handle on connection_string."""
        storage_factory = self.storage_factory or RelationalStorage.create_instance
        storage = storage_factory(self.engine.value, connection_string)
        return DatabaseCreator(self.engine.value, self.dialect, storage, storage_factory)


def supported_engines() -> Tuple[str, ...]:
    """Get the identifiers of all registered engines."""
    return tuple(engine.value for engine in ENGINE_DIALECTS)


def resolve(
    engine_identifier: str,
    scripts_dir: Optional[Path] = None,
    storage_factory: Optional[StorageFactory] = None
) -> ProvisionerFactory:
    """
    Resolve an engine identifier to its provisioner factory.

    Args:
        engine_identifier: Engine identifier (see supported_engines())
        scripts_dir: Optional override of the setup scripts directory
        storage_factory: Optional storage handle factory

    Returns:
        ProvisionerFactory for the engine

    Raises:
        UnsupportedEngine: If the identifier is blank or not registered
    """
    if not engine_identifier or not str(engine_identifier).strip():
        raise UnsupportedEngine("The engine identifier must contain characters")

    try:
        engine = Engine(str(engine_identifier))
    except ValueError:
        raise UnsupportedEngine(
            f"Unsupported engine '{engine_identifier}'. "
            f"Supported engines: {', '.join(supported_engines())}"
        )

    dialect = ENGINE_DIALECTS[engine](scripts_dir=scripts_dir)
    logger.debug(f"Resolved engine {engine.value} to {type(dialect).__name__}")
    return ProvisionerFactory(engine, dialect, storage_factory)


def split_script(script: str, database_name: Optional[str], engine_identifier: str) -> List[str]:
    """
    Split a setup script into executable batches using the engine's rules.

    Args:
        script: Raw setup script text
        database_name: Replaces every ``[DATABASENAME]`` token; None leaves
            tokens untouched
        engine_identifier: Engine identifier (see supported_engines())

    Returns:
        Ordered list of non-empty batches

    Raises:
        UnsupportedEngine: If the identifier is blank or not registered
        ScriptParseError: If the script is empty or cannot be tokenized
    """
    dialect = resolve(engine_identifier).dialect
    batches = dialect.split_batches(script, database_name)
    logger.debug(f"Split {dialect.engine.value} script into {len(batches)} batches")
    return batches
