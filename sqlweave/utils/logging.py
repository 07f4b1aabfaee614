"""
Configure project-wide logging.
"""
import logging
import os
from datetime import datetime

from rich.logging import RichHandler
from rich.text import Text

# Prefixed to level names in console and file output
LEVEL_EMOJI = {
    "DEBUG":    "🐛",
    "INFO":     "ℹ️",
    "WARNING":  "⚠️",
    "ERROR":    "❌",
    "CRITICAL": "🔥",
}

SQL_LOGGER_NAME = 'sqlweave.sql'


class EmojiFormatter(logging.Formatter):
    """
    Logging Formatter that injects an emoji based on the log level.
    """
    def format(self, record):
        record.emoji = LEVEL_EMOJI.get(record.levelname, "")
        return super().format(record)


class EmojiRichHandler(RichHandler):
    """RichHandler that prefixes level names with the matching emoji."""
    def get_level_text(self, record):
        level = record.levelname
        style = f"logging.level.{level.lower()}"
        emoji = LEVEL_EMOJI.get(level, "")
        # pad level name to width 8
        return Text.assemble((emoji + ' ' + level.ljust(8), style))


def configure_logging(cfg, verbose=False):
    """
    Configure the ``sqlweave`` logger:
      - Rich console handler at DEBUG if verbose
      - file handler at cfg.level if cfg.file
      - debug file handler at DEBUG if cfg.debug_file
      - plain SQL file handler on ``sqlweave.sql`` if cfg.sql_file
    Returns the package logger.
    """
    logger = logging.getLogger('sqlweave')
    logger.setLevel(logging.DEBUG)

    fmt_str = "%(emoji)s %(asctime)s %(name)s %(levelname)s: %(message)s"
    fmt = EmojiFormatter(fmt_str, datefmt="[%X]")

    if verbose:
        logger.addHandler(EmojiRichHandler(
            level=logging.DEBUG,
            markup=False,
            show_time=True,
            show_level=True,
            show_path=False,
        ))
    else:
        # keep warnings visible on stderr even without -v
        ch = logging.StreamHandler()
        ch.setLevel(logging.WARNING)
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    if getattr(cfg, 'file', None):
        fh = logging.FileHandler(cfg.file)
        fh.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    if getattr(cfg, 'debug_file', None):
        dfh = logging.FileHandler(cfg.debug_file)
        dfh.setLevel(logging.DEBUG)
        dfh.setFormatter(fmt)
        logger.addHandler(dfh)

    if getattr(cfg, 'sql_file', None):
        sql_dir = os.path.dirname(cfg.sql_file)
        if sql_dir:
            os.makedirs(sql_dir, exist_ok=True)

        sql_logger = logging.getLogger(SQL_LOGGER_NAME)
        sql_logger.setLevel(logging.INFO)
        # rendered SQL goes to sql_file only
        sql_logger.propagate = False
        sql_fh = logging.FileHandler(cfg.sql_file)
        sql_fh.setFormatter(logging.Formatter('%(message)s'))
        sql_logger.addHandler(sql_fh)

    run_header = (
        "=" * 80 +
        f"\nSQLWEAVE RUN START {datetime.now():%Y-%m-%d %H:%M:%S}\n" +
        "=" * 80
    )
    logger.debug(run_header)
    sql_logger = logging.getLogger(SQL_LOGGER_NAME)
    if sql_logger.handlers:
        sql_logger.info(run_header)

    return logger


def log_sql_section(section: str, sql_text: str):
    """Write rendered SQL to the dedicated SQL log (if configured).

    Parameters
    ----------
    section : str
        Logical section name, usually the template name.
    sql_text : str
        Raw SQL text to be logged.
    """
    logger = logging.getLogger(SQL_LOGGER_NAME)
    if not logger.handlers:
        # no sql_file configured
        return
    header_line = '#' * 80
    logger.info(header_line)
    logger.info(f"# {section.upper()} SQL")
    logger.info(header_line)
    logger.info(sql_text.strip())
    logger.info('')


def get_logger(name: str):
    return logging.getLogger(f"sqlweave.{name}")
