"""
Error taxonomy

Source errors are recorded against the source they came from and never abort a backup run,
StoreIO and InvalidArgument are fatal to the current command
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from .common import PathIsh


class OneHistoryError(Exception):
    """Base exception for everything onehistory raises on purpose."""


class SourceError(OneHistoryError):
    """Something is wrong with a browser history file."""

    # one line shown to the user next to the path
    diagnosis = 'failed to read history'

    def __init__(self, path: PathIsh, detail: str = '') -> None:
        self.path = Path(path)
        self.detail = detail
        msg = f'{self.path}: {self.diagnosis}'
        if detail:
            msg += f' ({detail})'
        super().__init__(msg)


class SourceMissing(SourceError):
    diagnosis = 'file does not exist or is not readable'


class SourceBusy(SourceError):
    diagnosis = 'database is locked by the browser, try again after closing it'


class SourceMalformed(SourceError):
    diagnosis = 'not a recognizable browser history database'


class UnknownSource(SourceError):
    diagnosis = 'unknown history file, expected History, places.sqlite or History.db'


class StoreIO(OneHistoryError):
    """The consolidated database is unreachable, corrupted or a write failed."""


class InvalidArgument(OneHistoryError):
    """Conflicting or malformed user input."""


def is_locked(e: sqlite3.Error) -> bool:
    # sqlite reports both SQLITE_BUSY and SQLITE_LOCKED through OperationalError
    msg = str(e).lower()
    return 'locked' in msg or 'busy' in msg


def source_error(path: PathIsh, e: sqlite3.Error) -> SourceError:
    """
    Maps an sqlite error raised while reading a browser database to the matching source error
    """
    msg = str(e)
    if is_locked(e):
        return SourceBusy(path, msg)
    if 'unable to open' in msg.lower():
        return SourceMissing(path, msg)
    return SourceMalformed(path, msg)
