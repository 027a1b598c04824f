"""
==========================
Utility Functions Package.
==========================

Connection string handling and the async storage execution layer used by
the provisioning workflow.

Modules:
    connection_string: Parse, rewrite and convert connection strings
    database_utils: RelationalStorage async execution handle
"""

__version__ = "1.0.0"
__all__ = [
    'MalformedConnectionString',
    'parse_connection_string',
    'build_connection_string',
    'get_database',
    'with_database',
    'to_sqlalchemy_url',
    'RelationalStorage',
    'DatabaseConnectionError'
]

from .connection_string import (
    MalformedConnectionString,
    build_connection_string,
    get_database,
    parse_connection_string,
    to_sqlalchemy_url,
    with_database,
)
from .database_utils import DatabaseConnectionError, RelationalStorage
