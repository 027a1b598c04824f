"""
Shared fakes and fixtures for the provisioning tests.

Key fixtures:
- fake_server: in-memory stand-in for a database server.
- storage_factory: builds FakeStorage handles bound to fake_server.
- options: ProvisioningOptions without timeouts, using the packaged scripts.
"""

import asyncio
import re

import pytest
from sqlalchemy.exc import OperationalError

from core.config import ProvisioningOptions
from utils.connection_string import get_database

CREATE_DATABASE = re.compile(r"CREATE DATABASE (IF NOT EXISTS )?[\[`\"]?(\w+)", re.IGNORECASE)
DROP_DATABASE = re.compile(r"DROP DATABASE [\[`\"]?(\w+)", re.IGNORECASE)
QUOTED_NAME = re.compile(r"'(\w+)'")


class FakeServer:
    """
    In-memory database server shared by every FakeStorage handle.

    Attributes:
        databases (set): Names of existing databases.
        executed (list): (database, sql) for every statement or query received,
            where database is the one the handle was bound to.
        disposed (list): Connection strings of disposed handles.
        fail_on (dict): SQL substring -> error message or exception; matching
            statements raise OperationalError(message), or the exception itself.
        delay (float): Seconds every round trip sleeps before answering.
    """

    def __init__(self, databases=(), fail_on=None, delay=0.0):
        self.databases = set(databases)
        self.executed = []
        self.disposed = []
        self.fail_on = dict(fail_on or {})
        self.delay = delay

    def storage_factory(self, engine_identifier, connection_string):
        return FakeStorage(self, engine_identifier, connection_string)

    def statements(self, database=None):
        """Executed SQL, optionally restricted to handles bound to database."""
        return [sql for db, sql in self.executed if database is None or db == database]

    async def _round_trip(self, storage, sql):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.executed.append((get_database(storage.connection_string), sql))
        for fragment, failure in self.fail_on.items():
            if fragment in sql:
                if isinstance(failure, BaseException):
                    raise failure
                raise OperationalError(sql, None, Exception(failure))

    async def execute(self, storage, sql):
        await self._round_trip(storage, sql)

        drop = DROP_DATABASE.search(sql)
        if drop:
            name = drop.group(1)
            if name not in self.databases:
                raise OperationalError(sql, None, Exception(f"database {name} does not exist"))
            self.databases.discard(name)
            return 0

        create = CREATE_DATABASE.search(sql)
        if create:
            if_not_exists, name = create.group(1), create.group(2)
            guarded = if_not_exists or 'IS NULL' in sql
            if name in self.databases and not guarded:
                raise OperationalError(sql, None, Exception(f"database {name} already exists"))
            self.databases.add(name)
            return 1

        return 0

    async def read(self, storage, sql, row_mapper):
        await self._round_trip(storage, sql)
        match = QUOTED_NAME.search(sql)
        exists = bool(match) and match.group(1) in self.databases
        return [row_mapper((exists,))]


class FakeStorage:
    """RelationalStorage stand-in forwarding every call to a FakeServer."""

    def __init__(self, server, engine_identifier, connection_string):
        self.server = server
        self._engine_identifier = engine_identifier
        self._connection_string = connection_string

    @property
    def engine_identifier(self):
        return self._engine_identifier

    @property
    def connection_string(self):
        return self._connection_string

    async def execute(self, sql, parameters=None):
        return await self.server.execute(self, sql)

    async def read(self, sql, parameters=None, row_mapper=tuple):
        return await self.server.read(self, sql, row_mapper)

    async def dispose(self):
        self.server.disposed.append(self._connection_string)


@pytest.fixture
def fake_server():
    """Fresh in-memory server with no databases."""
    return FakeServer()


@pytest.fixture
def storage_factory(fake_server):
    """Storage factory bound to fake_server."""
    return fake_server.storage_factory


@pytest.fixture
def options():
    """Options without timeouts, using the packaged setup scripts."""
    return ProvisioningOptions(setup_timeout=None, teardown_timeout=None)
