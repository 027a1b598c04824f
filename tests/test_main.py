"""
===============================================
Comprehensive pytest suite for main.py
===============================================

Sections:
---------
1. CLI tests - Argument parsing
2. CLI tests - Commands
3. Edge case tests - Failures and exit codes

Available markers:
------------------
unit, integration, edge_case

Test Coverage:
--------------
main() CLI:
- Subcommands (provision, teardown, split) and their arguments
- Output of the split and provision commands
- Exit code handling (success=0, provisioning failure=1, usage error=2)

How to Execute:
---------------
All tests:          python -m pytest tests/test_main.py -v
By category:        python -m pytest tests/test_main.py -m unit

Note: setup_logging is patched in every test so the root logger is left alone.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from main import build_parser, main
from setup.create_database import SchemaSetupError
from setup.registry import UnsupportedEngine
from setup.session import ProvisioningSession
from sql.dialects import MySqlDialect


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('main.setup_logging') as mock_setup_logging:
        yield mock_setup_logging


# ===============================
# 1. CLI TESTS - ARGUMENT PARSING
# ===============================

@pytest.mark.unit
def test_parser_provision_arguments():
    args = build_parser().parse_args(['provision', '--engine', 'mysql', '--database', 'OrleansTest'])

    assert args.command == 'provision'
    assert args.engine == 'mysql'
    assert args.database == 'OrleansTest'
    assert args.timeout is None
    assert args.verbose is False


@pytest.mark.unit
def test_parser_rejects_unknown_engine(capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(['provision', '--engine', 'oracle', '--database', 'OrleansTest'])

    assert exc_info.value.code == 2
    assert 'invalid choice' in capsys.readouterr().err


@pytest.mark.unit
def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.unit
def test_verbose_enables_debug_and_sql_echo(quiet_logging, capsys):
    assert main(['--verbose', 'split', '--engine', 'postgresql']) == 0

    quiet_logging.assert_called_once_with(log_level='DEBUG', log_file=None, echo_sql=True)


# =========================
# 2. CLI TESTS - COMMANDS
# =========================

@pytest.mark.integration
def test_split_prints_batches(tmp_path, capsys):
    script = tmp_path / 'setup.sql'
    script.write_text("USE [DATABASENAME];\nGO\nSELECT 1;\nGO\n", encoding='utf-8')

    exit_code = main(['split', '--engine', 'sqlserver', '--database', 'OrleansTest', str(script)])

    assert exit_code == 0
    assert capsys.readouterr().out == "-- batch 0\nUSE OrleansTest;\n-- batch 1\nSELECT 1;\n"


@pytest.mark.integration
def test_split_defaults_to_packaged_script(capsys):
    assert main(['split', '--engine', 'mysql', '--database', 'OrleansTest']) == 0

    out = capsys.readouterr().out
    assert out.count('-- batch ') == 8
    assert 'USE `OrleansTest`;' in out


@pytest.mark.integration
def test_provision_prints_connection_string(capsys):
    session = ProvisioningSession(
        engine_identifier='mysql',
        connection_string='Server=127.0.0.1;Database=OrleansTest',
        dialect=MySqlDialect()
    )

    with patch('main.setup_instance', new=AsyncMock(return_value=session)) as mock_setup:
        exit_code = main(['provision', '--engine', 'mysql', '--database', 'OrleansTest', '--timeout', '5'])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == 'Server=127.0.0.1;Database=OrleansTest'
    engine, database, options = mock_setup.await_args.args
    assert (engine, database, options.setup_timeout) == ('mysql', 'OrleansTest', 5.0)


@pytest.mark.integration
def test_teardown_builds_session_for_database():
    with patch('main.teardown_instance', new=AsyncMock(return_value=True)) as mock_teardown:
        exit_code = main(['teardown', '--engine', 'postgresql', '--database', 'OrleansTest'])

    assert exit_code == 0
    session, options = mock_teardown.await_args.args
    assert session.engine_identifier == 'postgresql'
    assert session.database_name == 'OrleansTest'


# ============================================
# 3. EDGE CASE TESTS - FAILURES AND EXIT CODES
# ============================================

@pytest.mark.edge_case
@pytest.mark.parametrize("error", [
    SchemaSetupError(2, RuntimeError('syntax error')),
    UnsupportedEngine('oracle'),
    asyncio.TimeoutError(),
])
def test_provision_failure_exit_code(error):
    with patch('main.setup_instance', new=AsyncMock(side_effect=error)):
        assert main(['provision', '--engine', 'mysql', '--database', 'OrleansTest']) == 1


@pytest.mark.edge_case
def test_split_missing_script(tmp_path):
    assert main(['split', '--engine', 'postgresql', str(tmp_path / 'missing.sql')]) == 1


class RefusingStorage:
    """Storage handle whose server refuses every connection."""
    def __init__(self, engine_identifier, connection_string):
        self.engine_identifier = engine_identifier
        self.connection_string = connection_string

    async def execute(self, sql, parameters=None):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    async def read(self, sql, parameters=None, row_mapper=tuple):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    async def dispose(self):
        pass


@pytest.mark.edge_case
@pytest.mark.parametrize("command", ['provision', 'teardown'])
def test_unreachable_server_exit_code(command):
    """A refused connection is reported with exit code 1 instead of a traceback."""
    with patch('utils.database_utils.RelationalStorage.create_instance', side_effect=RefusingStorage):
        assert main([command, '--engine', 'postgresql', '--database', 'OrleansTest']) == 1
