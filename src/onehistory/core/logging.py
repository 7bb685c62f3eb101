from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache
from typing import Union

import colorlog
import enlighten

DEFAULT_LEVEL = 'INFO'
FORMAT = '{start}[%(levelname)-7s %(asctime)s %(name)s %(filename)s:%(lineno)-4d]{end} %(message)s'
FORMAT_NOCOLOR = FORMAT.format(start='', end='')

# set by the CLI when --verbose is passed, overrides whatever default a module asks for
GLOBAL_LEVEL_ENV = 'LOGGING_LEVEL_ONEHISTORY'


Level = int
LevelIsh = Union[Level, str, None]


def mklevel(level: LevelIsh) -> Level:
    if level is None:
        return logging.NOTSET
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper())


def get_env_level(name: str) -> Level | None:
    PREFIX = 'LOGGING_LEVEL_'  # e.g. LOGGING_LEVEL_onehistory.store=debug
    # shell doesn't allow using dots in var names without escaping, so also support underscore syntax
    lvl = os.environ.get(PREFIX + name, None) or os.environ.get(PREFIX + name.replace('.', '_'), None)
    if lvl is not None:
        return mklevel(lvl)
    # checked after the per-logger variable since that one is more specific
    if GLOBAL_LEVEL_ENV in os.environ:
        return mklevel(os.environ[GLOBAL_LEVEL_ENV])
    return None


def setup_logger(logger: str | logging.Logger, *, level: LevelIsh = None) -> None:
    """
    Wrapper to simplify logging setup.
    """
    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    if level is None:
        level = DEFAULT_LEVEL

    # env level always takes precedence
    env_level = get_env_level(logger.name)
    lvl = env_level if env_level is not None else mklevel(level)

    if logger.level == logging.NOTSET or env_level is not None:
        logger.setLevel(lvl)

    _setup_handlers_and_formatters(name=logger.name)


# cached since this should only be done once per logger instance
@lru_cache(None)
def _setup_handlers_and_formatters(name: str) -> None:
    logger = logging.getLogger(name)

    logger.addFilter(AddExceptionTraceback())

    # default level for handler is NOTSET, which will make it process all messages
    # we rely on the logger to actually accept/reject log msgs
    handler = logging.StreamHandler()
    logger.addHandler(handler)

    # otherwise entries get printed twice if someone calls basicConfig
    logger.propagate = False

    # colorlog should detect tty in principle, but doesn't handle everything
    # see https://github.com/borntyping/python-colorlog/issues/71
    formatter: logging.Formatter
    if handler.stream.isatty():
        # log_color/reset are specific to colorlog
        formatter = colorlog.ColoredFormatter(FORMAT.format(start='%(log_color)s', end='%(reset)s'))
    else:
        formatter = logging.Formatter(FORMAT_NOCOLOR)

    handler.setFormatter(formatter)


# by default, logging.exception isn't logging traceback unless called inside of the exception handler
class AddExceptionTraceback(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelname == 'ERROR':
            exc = record.msg
            if isinstance(exc, BaseException):
                if record.exc_info is None or record.exc_info == (None, None, None):
                    exc_info = (type(exc), exc, exc.__traceback__)
                    record.exc_info = exc_info
        return True


def make_logger(name: str, *, level: LevelIsh = None) -> logging.Logger:
    logger = logging.getLogger(name)
    setup_logger(logger, level=level)
    return logger


# set to anything to hide progress bars even on a terminal
PROGRESS_DISABLE_ENV = 'ONEHISTORY_NO_PROGRESS'


def get_enlighten() -> enlighten.Manager:
    """
    Progress bars go to stderr, so they never mix with csv or summaries on stdout.

    When stderr is not a tty (piped, redirected, under tests) enlighten doesn't draw anything.
    """
    enabled = os.environ.get(PROGRESS_DISABLE_ENV, None) is None
    return enlighten.get_manager(stream=sys.stderr, enabled=enabled)
