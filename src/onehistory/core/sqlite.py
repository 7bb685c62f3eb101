from __future__ import annotations

import shutil
import sqlite3
from pathlib import Path
from tempfile import TemporaryDirectory

from .common import PathIsh

# how long a reader waits for the browser to release its lock before giving up
READONLY_BUSY_TIMEOUT = 1.0


def sqlite_connect_readonly(db: PathIsh, *, timeout: float = READONLY_BUSY_TIMEOUT) -> sqlite3.Connection:
    """
    Opens the database without ever writing to it, while still seeing a concurrent writer's committed data.

    Unlike immutable=1 this respects locks, so a running browser is noticed rather than read mid-write.
    """
    # https://www.sqlite.org/uri.html#urimode
    uri = Path(db).absolute().as_uri() + '?mode=ro'
    return sqlite3.connect(uri, uri=True, timeout=timeout)


# NOTE: this is tested by core/tests/test_sqlite.py::test_sqlite_read_with_wal
class SqliteSnapshot:
    """
    'Snapshots' database by making a deep copy of it including journal/WAL files

    The copy lives in a temporary directory on disk until close(), so reading it doesn't take memory
    proportional to the database.
    """

    def __init__(self, db: PathIsh) -> None:
        dp = Path(db)
        self._tdir = TemporaryDirectory()
        try:
            tdir = Path(self._tdir.name)
            # shm should be recreated from scratch -- safer not to copy perhaps
            tocopy = [dp] + [p for p in dp.parent.glob(dp.name + '-*') if not p.name.endswith('-shm')]
            for p in tocopy:
                shutil.copy(p, tdir / p.name)
            self.path = tdir / dp.name
            # not read-only: it's our own copy, and sqlite may need to recover the journal/WAL into it
            self.conn = sqlite3.connect(str(self.path))
        except BaseException:
            self._tdir.cleanup()
            raise

    def close(self) -> None:
        try:
            self.conn.close()
        finally:
            # after closing, otherwise windows can't clean up the temporary directory
            self._tdir.cleanup()
