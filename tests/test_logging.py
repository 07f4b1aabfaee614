"""Unit tests for sqlweave.utils.logging."""

import logging

import pytest

from sqlweave.config.schema import EngineConfig, LoggingConfig
from sqlweave.engines.template import SqlTemplateEngine
from sqlweave.utils.logging import SQL_LOGGER_NAME, configure_logging, log_sql_section


@pytest.fixture(autouse=True)
def reset_loggers():
    yield
    for name in ('sqlweave', SQL_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    logging.getLogger(SQL_LOGGER_NAME).propagate = True


def test_log_files_written(tmp_path):
    cfg = LoggingConfig(
        level='INFO',
        file=str(tmp_path / 'run.log'),
        debug_file=str(tmp_path / 'debug.log'),
        sql_file=str(tmp_path / 'sql' / 'rendered.sql'),
    )
    configure_logging(cfg)

    engine = SqlTemplateEngine(EngineConfig())
    engine.process("SELECT * FROM t WHERE id = /*% p 'id' / %*/", {'id': 1})
    logging.getLogger('sqlweave.test').info('hello from test')

    for handler in logging.getLogger('sqlweave').handlers + logging.getLogger(SQL_LOGGER_NAME).handlers:
        handler.flush()

    run_log = (tmp_path / 'run.log').read_text(encoding='utf-8')
    assert 'hello from test' in run_log
    assert 'SQLWEAVE RUN START' not in run_log  # header is DEBUG

    debug_log = (tmp_path / 'debug.log').read_text(encoding='utf-8')
    assert 'SQLWEAVE RUN START' in debug_log
    assert "p 'id' (parameter) -> #{id}" in debug_log
    assert 'custom bind variable' in debug_log

    sql_log = (tmp_path / 'sql' / 'rendered.sql').read_text(encoding='utf-8')
    assert '# INLINE SQL' in sql_log
    assert 'SELECT * FROM t WHERE id = #{id}' in sql_log


def test_sql_section_noop_without_handler():
    # nothing configured: must not raise or emit
    log_sql_section('inline', 'SELECT 1')
    assert not logging.getLogger(SQL_LOGGER_NAME).handlers


def test_verbose_uses_rich_handler():
    from rich.logging import RichHandler

    logger = configure_logging(LoggingConfig(), verbose=True)
    assert any(isinstance(h, RichHandler) for h in logger.handlers)
