"""Provisioning session handed back to test fixtures."""

from dataclasses import dataclass, replace
from typing import Optional

from sql.dialects import Dialect
from utils.connection_string import get_database, with_database
from utils.database_utils import RelationalStorage


@dataclass(frozen=True)
class ProvisioningSession:
    """Immutable pairing of engine, connection string and dialect.

    A session is never edited in place: pointing it at another database
    produces a new session.

    Attributes:
        engine_identifier: Engine the database was provisioned on
        connection_string: Connection string bound to the provisioned database
        dialect: Dialect used for provisioning
    """

    engine_identifier: str
    connection_string: str
    dialect: Dialect

    @property
    def current_connection_string(self) -> str:
        """Get the live connection string for tests."""
        return self.connection_string

    @property
    def database_name(self) -> Optional[str]:
        """Get the database the session is bound to."""
        return get_database(self.connection_string)

    def with_database(self, database_name: str) -> 'ProvisioningSession':
        """Return a new session bound to another database on the same server."""
        return replace(self, connection_string=with_database(self.connection_string, database_name))

    def open_storage(self) -> RelationalStorage:
        """Open a storage handle on the provisioned database.

        The caller owns the handle and must dispose it.
        """
        return RelationalStorage.create_instance(self.engine_identifier, self.connection_string)
