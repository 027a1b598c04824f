"""
=====================================================
Setup orchestrator for disposable test databases.
=====================================================

Coordinates the provisioning of one test database: resolve the engine,
drop any database left by a previous run, create it again, rebind to it and
apply the engine's schema-setup script.

This orchestrator manages:
    - Engine resolution through the registry
    - Existence check, drop and create through the dialect templates
    - Rebinding to a fresh storage handle on the new database
    - Splitting and sequential execution of the setup script
    - Step tracking and a summary log for diagnostics
    - Bounded setup and teardown (explicit ProvisioningOptions)

Every database round trip is awaited in order; no step starts before the
previous one has completed. A timeout or cancellation leaves the database in
an indeterminate state and the whole call must be retried from the start.

Example:
    >>> from setup.setup_orchestrator import setup_instance, provisioned_instance
    >>>
    >>> session = await setup_instance('mysql', 'OrleansTest')
    >>> connection_string = session.current_connection_string
    >>>
    >>> # Scoped: the database is dropped when the block exits
    >>> async with provisioned_instance('postgresql', 'OrleansTest') as session:
    ...     run_membership_tests(session.current_connection_string)
"""

import asyncio
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional

from core.config import ProvisioningOptions, config
from core.logger import get_logger
from setup.create_database import DatabaseCreator
from setup.registry import ProvisionerFactory, StorageFactory, resolve
from setup.session import ProvisioningSession
from sql.dialects import Engine
from sql.splitter import ScriptParseError

logger = get_logger(__name__)


class ProvisioningState(Enum):
    """States of one provisioning run, in workflow order."""

    UNINITIALIZED = 'uninitialized'
    RESOLVED = 'resolved'
    CHECKED = 'checked'
    DROPPED = 'dropped'
    CREATED = 'created'
    REBOUND = 'rebound'
    SCHEMA_APPLIED = 'schema_applied'
    FAILED = 'failed'


def read_setup_script(path: Path) -> str:
    """
    Read a setup script as UTF-8 text.

    Raises:
        ScriptParseError: If the file is missing, unreadable or not UTF-8
    """
    try:
        return Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ScriptParseError(f"Cannot read setup script {path}: {e}") from e


class SetupOrchestrator:
    """Orchestrate the drop/create/schema-apply cycle for one test database.

    Attributes:
        engine_identifier: Engine to provision on
        database_name: Name of the test database
        options: ProvisioningOptions for this run
        state: Current ProvisioningState
        setup_steps: Completed steps with their duration
        session: ProvisioningSession once the schema is applied
        failed_after: Last state reached before a failure, or None

    Example:
        >>> orchestrator = SetupOrchestrator('sqlserver', 'OrleansTest')
        >>> session = await orchestrator.run()
        >>> orchestrator.state
        <ProvisioningState.SCHEMA_APPLIED: 'schema_applied'>
    """

    def __init__(
        self,
        engine_identifier: str,
        database_name: str,
        options: Optional[ProvisioningOptions] = None,
        storage_factory: Optional[StorageFactory] = None
    ):
        """Initialize the orchestrator.

        Does not touch the database until run() is awaited.

        Raises:
            ValueError: If database_name is blank
        """
        if not database_name or not database_name.strip():
            raise ValueError("The test database name must contain characters")

        self.engine_identifier = engine_identifier
        self.database_name = database_name
        self.options = options or config.default_options()
        self._storage_factory = storage_factory

        self.state = ProvisioningState.UNINITIALIZED
        self.setup_steps = []
        self.session: Optional[ProvisioningSession] = None
        self.failed_after: Optional[ProvisioningState] = None
        self._step_started = None

    def _start_step(self) -> None:
        self._step_started = time.perf_counter()

    def _advance(self, state: ProvisioningState) -> None:
        """Record the completion of a step and move to state."""
        duration = time.perf_counter() - self._step_started if self._step_started else 0.0
        self.setup_steps.append({
            'step_name': state.value,
            'duration': duration
        })
        self.state = state
        logger.debug(f"Provisioning of {self.database_name} reached {state.name}")

    async def run(self) -> ProvisioningSession:
        """Run the complete provisioning workflow.

        Returns:
            ProvisioningSession bound to the new database

        Raises:
            UnsupportedEngine: If the engine identifier is not registered
            ProvisioningError: If the existence check, drop or create fails
            MalformedConnectionString: If the connection string cannot be rewritten
            ScriptParseError: If the setup script cannot be read or split
            SchemaSetupError: If a script batch fails
        """
        logger.info("Initializing relational database...")
        creator: Optional[DatabaseCreator] = None

        try:
            self._start_step()
            factory = resolve(
                self.engine_identifier,
                scripts_dir=self.options.scripts_dir,
                storage_factory=self._storage_factory
            )
            dialect = factory.dialect
            creator = factory(dialect.default_connection_string)
            self._advance(ProvisioningState.RESOLVED)

            logger.info(f"Dropping and recreating database '{self.database_name}' on {factory.engine.value}")

            self._start_step()
            exists = await creator.check_database_exists(self.database_name)
            self._advance(ProvisioningState.CHECKED)

            if exists:
                self._start_step()
                await creator.drop_database(self.database_name)
                self._advance(ProvisioningState.DROPPED)

            self._start_step()
            await creator.create_database(self.database_name)
            self._advance(ProvisioningState.CREATED)

            # Most engines need a new connection to target the new database
            self._start_step()
            previous, creator = creator, creator.copy_instance(self.database_name)
            await previous.close_connections()
            self._advance(ProvisioningState.REBOUND)

            logger.info("Creating database tables...")
            self._start_step()
            script = read_setup_script(dialect.setup_script_path)
            batches = dialect.split_batches(script, self.database_name)
            executed = await creator.execute_batches(batches)
            self._advance(ProvisioningState.SCHEMA_APPLIED)
            logger.info(f"Applied {executed} setup batches to {self.database_name}")

            self.session = ProvisioningSession(
                engine_identifier=factory.engine.value,
                connection_string=creator.connection_string,
                dialect=dialect
            )

        except (Exception, asyncio.CancelledError):
            self.failed_after = self.state
            self.state = ProvisioningState.FAILED
            logger.error(f"Provisioning of {self.database_name} failed after {self.failed_after.name}")
            raise
        finally:
            if creator is not None:
                await creator.close_connections()
            self._log_setup_summary()

        logger.info("Initializing relational database done.")
        return self.session

    def _log_setup_summary(self) -> None:
        if not self.setup_steps:
            return
        logger.debug("Provisioning step timings:")
        for step in self.setup_steps:
            logger.debug(f"  {step['step_name'].ljust(16)}: {step['duration']:.3f}s")


async def setup_instance(
    engine_identifier: str,
    database_name: str,
    options: Optional[ProvisioningOptions] = None,
    storage_factory: Optional[StorageFactory] = None
) -> ProvisioningSession:
    """
    Provision a fresh test database and return its session.

    Drops the database if it exists, creates it, and applies the engine's
    setup script. Safe to rerun with the same name.

    Args:
        engine_identifier: Engine identifier (e.g. 'mysql')
        database_name: Test database name, owned by the caller's test class
        options: ProvisioningOptions; defaults to config.default_options()
        storage_factory: Optional storage handle factory

    Returns:
        ProvisioningSession exposing current_connection_string

    Raises:
        asyncio.TimeoutError: If options.setup_timeout elapses
        UnsupportedEngine, ProvisioningError, MalformedConnectionString,
        ScriptParseError, SchemaSetupError: See SetupOrchestrator.run()
    """
    options = options or config.default_options()
    orchestrator = SetupOrchestrator(engine_identifier, database_name, options, storage_factory)

    if options.setup_timeout is None:
        return await orchestrator.run()

    try:
        return await asyncio.wait_for(orchestrator.run(), timeout=options.setup_timeout)
    except asyncio.TimeoutError:
        logger.error(
            f"Provisioning of {database_name} timed out after {options.setup_timeout}s "
            f"(last state {orchestrator.failed_after.name})"
        )
        raise


async def teardown_instance(
    session: ProvisioningSession,
    options: Optional[ProvisioningOptions] = None,
    storage_factory: Optional[StorageFactory] = None
) -> bool:
    """
    Drop the database of a provisioning session.

    Connects through the engine's default connection string, never through
    the session's own database.

    Args:
        session: Session returned by setup_instance()
        options: ProvisioningOptions; teardown_timeout bounds the call
        storage_factory: Optional storage handle factory

    Returns:
        True if a database was dropped, False if it no longer existed

    Raises:
        asyncio.TimeoutError: If options.teardown_timeout elapses
        ProvisioningError: If the existence check or drop fails
    """
    options = options or config.default_options()
    database_name = session.database_name
    factory = ProvisionerFactory(Engine(session.engine_identifier), session.dialect, storage_factory)

    async def _drop() -> bool:
        creator = factory(session.dialect.default_connection_string)
        try:
            if not await creator.check_database_exists(database_name):
                logger.info(f"Database {database_name} does not exist")
                return False
            await creator.drop_database(database_name)
            return True
        finally:
            await creator.close_connections()

    if options.teardown_timeout is None:
        return await _drop()
    return await asyncio.wait_for(_drop(), timeout=options.teardown_timeout)


@asynccontextmanager
async def provisioned_instance(
    engine_identifier: str,
    database_name: str,
    options: Optional[ProvisioningOptions] = None,
    storage_factory: Optional[StorageFactory] = None
) -> AsyncIterator[ProvisioningSession]:
    """
    Provision a test database for the duration of an ``async with`` block.

    The teardown is awaited on exit, including when the block raises, and
    is bounded by options.teardown_timeout. It is skipped when
    options.drop_on_teardown is False.

    Example:
        >>> async with provisioned_instance('mysql', 'OrleansTest') as session:
        ...     await run_tests(session.current_connection_string)
    """
    options = options or config.default_options()
    session = await setup_instance(engine_identifier, database_name, options, storage_factory)
    try:
        yield session
    finally:
        if options.drop_on_teardown:
            await teardown_instance(session, options, storage_factory)
