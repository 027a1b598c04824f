"""
==========================================
Pytest suite for core/logger.py
==========================================

How to Execute:
---------------
All tests:          python -m pytest tests/tests_core/test_logger.py -v
"""

import logging

import pytest

from core.logger import SQL_LOGGER_NAME, ColoredFormatter, get_logger, get_sql_logger, setup_logging


@pytest.fixture
def restore_logging():
    """Restore root handlers and levels changed by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    sql_level = get_sql_logger().level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    get_sql_logger().setLevel(sql_level)


@pytest.mark.unit
def test_get_logger_level_override():
    logger = get_logger('tests.logger.override', level='warning')

    assert logger.name == 'tests.logger.override'
    assert logger.level == logging.WARNING


@pytest.mark.unit
def test_sql_logger_name():
    assert get_sql_logger().name == SQL_LOGGER_NAME


@pytest.mark.unit
def test_setup_logging_writes_file(tmp_path, restore_logging):
    setup_logging(log_level='DEBUG', log_file='provisioning.log', log_dir=str(tmp_path), console_output=False)

    get_logger('tests.logger.file').info("database created")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = (tmp_path / 'provisioning.log').read_text(encoding='utf-8')
    assert 'tests.logger.file - INFO - database created' in content


SQL_BATCH = 'CREATE TABLE membership_table (id int)'


def _log_and_read(tmp_path, **settings):
    """Configure file logging, log one SQL batch and one module DEBUG line, return the file."""
    setup_logging(log_file='provisioning.log', log_dir=str(tmp_path), console_output=False, **settings)
    get_sql_logger().debug(SQL_BATCH)
    get_logger('tests.logger.echo').debug("module detail")
    for handler in logging.getLogger().handlers:
        handler.flush()
    return (tmp_path / 'provisioning.log').read_text(encoding='utf-8')


@pytest.mark.unit
def test_echo_sql_off_hides_batches_at_debug(tmp_path, restore_logging):
    """Without echo_sql, SQL batches stay hidden even at DEBUG."""
    content = _log_and_read(tmp_path, log_level='DEBUG', echo_sql=False)

    assert SQL_BATCH not in content
    assert 'module detail' in content


@pytest.mark.unit
def test_echo_sql_on_shows_batches_at_info(tmp_path, restore_logging):
    """With echo_sql, SQL batches are logged at INFO while other DEBUG lines stay hidden."""
    content = _log_and_read(tmp_path, log_level='INFO', echo_sql=True)

    assert f"{SQL_LOGGER_NAME} - DEBUG - {SQL_BATCH}" in content
    assert 'module detail' not in content


@pytest.mark.unit
def test_colored_formatter_leaves_record_untouched():
    """Coloring applies to a copy so other handlers see the plain level name."""
    record = logging.LogRecord('x', logging.ERROR, __file__, 1, 'boom', None, None)

    output = ColoredFormatter('%(levelname)s %(message)s').format(record)

    assert output == f"{ColoredFormatter.COLORS['ERROR']}ERROR{ColoredFormatter.RESET} boom"
    assert record.levelname == 'ERROR'
