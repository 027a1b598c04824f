"""
=================================================
Connection string parsing and rewriting helpers.
=================================================

Connection strings use the ``key=value;key=value`` format shared by ADO.NET,
ODBC and most database tooling. They are parsed into an ordered mapping,
rewritten, and serialized back without losing any parameter.

Key Features:
    - Reversible parse/build of ``key=value`` pairs
    - Quoted values (``'...'`` or ``"..."``) so values may contain ``;`` or ``=``
    - Case-insensitive key lookup that keeps the caller's key spelling
    - Database rewrite used after a test database has been (re)created
    - Conversion to a SQLAlchemy URL for the storage layer

Example:
    >>> from utils.connection_string import with_database
    >>>
    >>> cs = 'Server=127.0.0.1;Database=sys;Uid=root;Pwd=root'
    >>> with_database(cs, 'OrleansTest')
    'Server=127.0.0.1;Database=OrleansTest;Uid=root;Pwd=root'
"""

from typing import Dict, Iterable, Mapping, Optional

from sqlalchemy.engine import URL

DATABASE_KEYS = ('database', 'initial catalog')
HOST_KEYS = ('server', 'host', 'data source', 'address', 'addr')
PORT_KEYS = ('port',)
USER_KEYS = ('user id', 'user', 'uid', 'username', 'user name')
PASSWORD_KEYS = ('password', 'pwd')

# Keys that SQLAlchemy dialects read from the URL query in lower case
LOWERCASE_QUERY_KEYS = ('driver',)


class MalformedConnectionString(Exception):
    """Exception raised when a connection string cannot be parsed."""
    pass


def _find_key(params: Mapping[str, str], names: Iterable[str]) -> Optional[str]:
    """Return the key in params matching any of names, case-insensitively."""
    wanted = {name.lower() for name in names}
    for key in params:
        if key.lower() in wanted:
            return key
    return None


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """
    Parse a connection string into an ordered parameter mapping.

    Args:
        connection_string: ``key=value`` pairs separated by ``;``

    Returns:
        Dict of parameters in source order. A repeated key (matched
        case-insensitively) keeps its first position and its last value.

    Raises:
        MalformedConnectionString: If the input is not a string, a segment
            has no ``=``, a key is empty, or a quoted value is unterminated
            or followed by stray text
    """
    if not isinstance(connection_string, str):
        raise MalformedConnectionString(
            f"Connection string must be a string, got {type(connection_string).__name__}"
        )

    text = connection_string
    length = len(text)
    params: Dict[str, str] = {}
    pos = 0

    while pos < length:
        while pos < length and (text[pos].isspace() or text[pos] == ';'):
            pos += 1
        if pos >= length:
            break

        eq = text.find('=', pos)
        semi = text.find(';', pos)
        if eq == -1 or (semi != -1 and semi < eq):
            segment = text[pos:semi] if semi != -1 else text[pos:]
            raise MalformedConnectionString(f"Missing '=' in segment '{segment.strip()}'")

        key = text[pos:eq].strip()
        if not key:
            raise MalformedConnectionString(f"Empty key at position {pos}")
        pos = eq + 1

        while pos < length and text[pos] in ' \t':
            pos += 1

        if pos < length and text[pos] in ('"', "'"):
            quote = text[pos]
            pos += 1
            chars = []
            while True:
                if pos >= length:
                    raise MalformedConnectionString(f"Unterminated quoted value for key '{key}'")
                ch = text[pos]
                if ch == quote:
                    # Doubled quote is an escaped quote character
                    if pos + 1 < length and text[pos + 1] == quote:
                        chars.append(quote)
                        pos += 2
                        continue
                    pos += 1
                    break
                chars.append(ch)
                pos += 1
            value = ''.join(chars)

            while pos < length and text[pos].isspace():
                pos += 1
            if pos < length and text[pos] != ';':
                raise MalformedConnectionString(f"Unexpected text after quoted value for key '{key}'")
        else:
            end = text.find(';', pos)
            if end == -1:
                end = length
            value = text[pos:end].strip()
            pos = end

        existing = _find_key(params, (key,))
        params[existing if existing is not None else key] = value

    return params


def _quote_value(value: str) -> str:
    needs_quotes = (
        any(ch in value for ch in ';="\'')
        or value != value.strip()
    )
    if not needs_quotes:
        return value
    if '"' not in value:
        return f'"{value}"'
    return "'" + value.replace("'", "''") + "'"


def build_connection_string(params: Mapping[str, str]) -> str:
    """
    Serialize a parameter mapping back into a connection string.

    Values containing separators, quotes or surrounding whitespace are quoted
    so that parse_connection_string() returns the same mapping.

    Args:
        params: Ordered mapping of parameter names to values

    Returns:
        Connection string with pairs joined by ``;``
    """
    return ';'.join(f"{key}={_quote_value(str(value))}" for key, value in params.items())


def get_database(connection_string: str) -> Optional[str]:
    """
    Get the database named by a connection string.

    Returns:
        Database name, or None if the connection string has none
    """
    params = parse_connection_string(connection_string)
    key = _find_key(params, DATABASE_KEYS)
    return params[key] if key is not None else None


def with_database(connection_string: str, database_name: str) -> str:
    """
    Return a connection string identical to the given one except for the database.

    The existing database parameter (``Database`` or ``Initial Catalog``) is
    overwritten in place; if there is none, ``Database`` is appended. All
    other parameters keep their value and order.

    Args:
        connection_string: Source connection string
        database_name: Database the new connection string should target

    Returns:
        Rewritten connection string

    Raises:
        MalformedConnectionString: If the source cannot be parsed
        ValueError: If database_name is blank

    Example:
        >>> with_database('Server=db;Database=master', 'TestDb1')
        'Server=db;Database=TestDb1'
    """
    if not database_name or not database_name.strip():
        raise ValueError("Database name must contain characters")

    params = parse_connection_string(connection_string)
    key = _find_key(params, DATABASE_KEYS) or 'Database'
    params[key] = database_name
    return build_connection_string(params)


def to_sqlalchemy_url(connection_string: str, drivername: str) -> URL:
    """
    Convert a connection string into a SQLAlchemy URL.

    Known parameters (server, port, database, user, password and their
    synonyms) map onto URL components. A ``host,port`` server value is split.
    Every other parameter is carried over as a URL query option.

    Args:
        connection_string: Source connection string
        drivername: SQLAlchemy driver name (e.g. 'postgresql+asyncpg')

    Returns:
        SQLAlchemy URL

    Raises:
        MalformedConnectionString: If the string cannot be parsed or the
            port is not an integer
    """
    params = parse_connection_string(connection_string)
    remaining = dict(params)

    def take(names) -> Optional[str]:
        key = _find_key(remaining, names)
        return remaining.pop(key) if key is not None else None

    host = take(HOST_KEYS)
    port_text = take(PORT_KEYS)
    database = take(DATABASE_KEYS)
    username = take(USER_KEYS)
    password = take(PASSWORD_KEYS)

    if host:
        if host.lower().startswith('tcp:'):
            host = host[4:]
        if ',' in host:
            host, host_port = (part.strip() for part in host.split(',', 1))
            port_text = port_text or host_port

    port = None
    if port_text:
        try:
            port = int(port_text)
        except ValueError:
            raise MalformedConnectionString(f"Port must be an integer, got '{port_text}'")

    query = {}
    for key, value in remaining.items():
        query[key.lower() if key.lower() in LOWERCASE_QUERY_KEYS else key] = value

    return URL.create(
        drivername=drivername,
        username=username or None,
        password=password or None,
        host=host or None,
        port=port,
        database=database or None,
        query=query
    )
