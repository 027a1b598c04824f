"""
==========================================
Pytest suite for setup/session.py
==========================================

How to Execute:
---------------
All tests:          python -m pytest tests/tests_setup/test_session.py -v
"""

from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from setup.session import ProvisioningSession
from sql.dialects import PostgreSqlDialect

CS = 'Server=127.0.0.1;Port=5432;Database=OrleansTest;User Id=postgres;Password=postgres'


@pytest.fixture
def session():
    return ProvisioningSession(engine_identifier='postgresql', connection_string=CS, dialect=PostgreSqlDialect())


@pytest.mark.unit
def test_session_exposes_connection_string(session):
    assert session.current_connection_string == CS
    assert session.database_name == 'OrleansTest'


@pytest.mark.unit
def test_with_database_returns_new_session(session):
    """Rebinding produces a new session and leaves the original untouched."""
    other = session.with_database('OrleansTest2')

    assert other is not session
    assert other.database_name == 'OrleansTest2'
    assert other.dialect is session.dialect
    assert session.current_connection_string == CS


@pytest.mark.unit
def test_session_is_immutable(session):
    with pytest.raises(FrozenInstanceError):
        session.connection_string = 'Server=elsewhere'


@pytest.mark.unit
def test_open_storage_binds_session_database(session):
    with patch('setup.session.RelationalStorage.create_instance') as mock_create:
        storage = session.open_storage()

    mock_create.assert_called_once_with('postgresql', CS)
    assert storage is mock_create.return_value
