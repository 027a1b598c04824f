"""
=========================================================
Command-line entry point for test-database provisioning.
=========================================================

Thin CLI wrapper over setup.setup_orchestrator for preparing or removing a
test database by hand, and for inspecting how a setup script is split.

Usage:
    # Drop, recreate and apply the setup script
    python main.py provision --engine mysql --database OrleansTest

    # Drop the test database
    python main.py teardown --engine mysql --database OrleansTest

    # Show the batches a script is split into
    python main.py split --engine sqlserver --database OrleansTest sql/scripts/CreateMembershipTables_SqlServer.sql

    # Verbose output, including executed SQL
    python main.py --verbose provision --engine postgresql --database OrleansTest
"""

import argparse
import asyncio
import sys

from core.config import config
from core.logger import get_logger, setup_logging
from setup.create_database import ProvisioningError, SchemaSetupError
from setup.registry import UnsupportedEngine, resolve, split_script, supported_engines
from setup.session import ProvisioningSession
from setup.setup_orchestrator import read_setup_script, setup_instance, teardown_instance
from sql.splitter import ScriptParseError
from utils.connection_string import MalformedConnectionString, with_database
from utils.database_utils import DatabaseConnectionError

logger = get_logger(__name__)

FAILURES = (
    UnsupportedEngine,
    ProvisioningError,
    SchemaSetupError,
    ScriptParseError,
    MalformedConnectionString,
    DatabaseConnectionError,
    asyncio.TimeoutError,
    ValueError
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Provision disposable databases for integration tests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Example: python main.py provision --engine mysql --database OrleansTest"
    )
    parser.add_argument('--verbose', action='store_true', help='Enable DEBUG logging and SQL echo')
    parser.add_argument('--log-file', help='Also write logs to this file under logs/')

    commands = parser.add_subparsers(dest='command', required=True)

    for name, help_text in (
        ('provision', 'Drop, recreate and set up a test database'),
        ('teardown', 'Drop a test database')
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument('--engine', required=True, choices=supported_engines())
        command.add_argument('--database', required=True, help='Test database name')
        command.add_argument(
            '--timeout',
            type=float,
            default=None,
            help='Override the configured timeout in seconds'
        )

    split = commands.add_parser('split', help='Print the batches of a setup script')
    split.add_argument('--engine', required=True, choices=supported_engines())
    split.add_argument('--database', default=None, help='Value substituted for [DATABASENAME]')
    split.add_argument('script', nargs='?', help="Script path (defaults to the engine's setup script)")

    return parser


async def _provision(args) -> int:
    options = config.default_options()
    if args.timeout is not None:
        options = options.with_overrides(setup_timeout=args.timeout)

    session = await setup_instance(args.engine, args.database, options)
    print(session.current_connection_string)
    return 0


async def _teardown(args) -> int:
    options = config.default_options()
    if args.timeout is not None:
        options = options.with_overrides(teardown_timeout=args.timeout)

    dialect = resolve(args.engine).dialect
    session = ProvisioningSession(
        engine_identifier=args.engine,
        connection_string=with_database(dialect.default_connection_string, args.database),
        dialect=dialect
    )
    dropped = await teardown_instance(session, options)
    logger.info(f"Database {args.database} {'dropped' if dropped else 'was not present'}")
    return 0


def _split(args) -> int:
    dialect = resolve(args.engine).dialect
    script = read_setup_script(args.script or dialect.setup_script_path)
    batches = split_script(script, args.database, args.engine)
    for index, batch in enumerate(batches):
        print(f"-- batch {index}")
        print(batch)
    return 0


def main(argv=None) -> int:
    """Run the CLI.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    args = build_parser().parse_args(argv)

    setup_logging(
        log_level='DEBUG' if args.verbose else 'INFO',
        log_file=args.log_file,
        echo_sql=args.verbose
    )

    try:
        if args.command == 'provision':
            return asyncio.run(_provision(args))
        if args.command == 'teardown':
            return asyncio.run(_teardown(args))
        return _split(args)
    except FAILURES as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
