"""
===============================================
Configuration management for test provisioning.
===============================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for application-wide access.

The configuration system ensures:
- Single source of truth for engine default connection strings
- Type conversion and validation of timeouts and flags
- Explicit ProvisioningOptions passed to the orchestrator (no global state)

Example:
    >>> from core.config import config
    >>>
    >>> # Default connection string used before the test database exists
    >>> admin_cs = config.get_default_connection_string('mysql')
    >>>
    >>> # Options handed to setup_instance()
    >>> options = config.default_options()
    >>> print(f"Setup timeout: {options.setup_timeout}s")
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

DEFAULT_SCRIPTS_DIR = Path(__file__).parent.parent / 'sql' / 'scripts'


def _get_float(name: str, default: Optional[float]) -> Optional[float]:
    """Read a float from the environment; empty or 'none' disables the value."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    if not raw or raw.lower() == 'none':
        return None
    return float(raw)


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class ProvisioningOptions:
    """Options controlling one provisioning run.

    Attributes:
        setup_timeout: Upper bound in seconds for the whole setup_instance()
            call, or None for no bound
        teardown_timeout: Upper bound in seconds for dropping the test
            database on teardown, or None for no bound
        drop_on_teardown: If True, provisioned_instance() drops the database
            when its scope exits
        scripts_dir: Directory holding the engine setup scripts
    """

    setup_timeout: Optional[float] = 120.0
    teardown_timeout: Optional[float] = 30.0
    drop_on_teardown: bool = True
    scripts_dir: Path = DEFAULT_SCRIPTS_DIR

    def with_overrides(self, **changes) -> 'ProvisioningOptions':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class EngineConfig:
    """Default connection strings per database engine.

    Attributes:
        sqlserver: Connection string to the SQL Server admin database
        mysql: Connection string to the MySQL admin database
        postgresql: Connection string to the PostgreSQL admin database
    """

    sqlserver: str
    mysql: str
    postgresql: str

    def as_dict(self) -> Dict[str, str]:
        """Get connection strings keyed by engine identifier."""
        return {
            'sqlserver': self.sqlserver,
            'mysql': self.mysql,
            'postgresql': self.postgresql
        }


class Config:
    """Centralized configuration manager.

    Provides access to all configuration settings loaded from environment
    variables (.env file).

    Attributes:
        engines: EngineConfig with per-engine default connection strings
        options: ProvisioningOptions built from the environment

    Example:
        >>> config = Config()
        >>> cs = config.get_default_connection_string('postgresql')
        >>> options = config.default_options()
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.engines = EngineConfig(
            sqlserver=os.getenv(
                'SQLSERVER_CONNECTION_STRING',
                'Server=localhost,1433;Database=master;User Id=sa;'
                'Password=yourStrong(!)Password;Driver=ODBC Driver 18 for SQL Server;'
                'TrustServerCertificate=yes'
            ),
            mysql=os.getenv(
                'MYSQL_CONNECTION_STRING',
                'Server=127.0.0.1;Port=3306;Database=sys;Uid=root;Pwd=root'
            ),
            postgresql=os.getenv(
                'POSTGRES_CONNECTION_STRING',
                'Server=127.0.0.1;Port=5432;Database=postgres;User Id=postgres;Password=postgres'
            )
        )

        scripts_dir = os.getenv('PROVISION_SCRIPTS_DIR')
        self.options = ProvisioningOptions(
            setup_timeout=_get_float('PROVISION_SETUP_TIMEOUT', 120.0),
            teardown_timeout=_get_float('PROVISION_TEARDOWN_TIMEOUT', 30.0),
            drop_on_teardown=_get_bool('PROVISION_DROP_ON_TEARDOWN', True),
            scripts_dir=Path(scripts_dir) if scripts_dir else DEFAULT_SCRIPTS_DIR
        )

    @property
    def scripts_dir(self) -> Path:
        """Get directory holding the engine setup scripts."""
        return self.options.scripts_dir

    def get_default_connection_string(self, engine: str) -> str:
        """Get the default (admin) connection string for an engine.

        Args:
            engine: Engine identifier ('sqlserver', 'mysql', 'postgresql')

        Returns:
            Connection string usable before any test database exists

        Raises:
            KeyError: If no connection string is configured for the engine
        """
        return self.engines.as_dict()[str(engine)]

    def default_options(self) -> ProvisioningOptions:
        """Get ProvisioningOptions built from the environment."""
        return self.options


# Global configuration instance
config = Config()
