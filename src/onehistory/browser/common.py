"""
Bits shared by the browser history readers
"""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import NamedTuple, Protocol

from ..core.common import PathIsh
from ..core.error import SourceBusy, SourceMalformed, SourceMissing, is_locked, source_error
from ..core.logging import make_logger
from ..core.sqlite import SqliteSnapshot, sqlite_connect_readonly
from ..core.time import Browser, is_valid_ms, to_epoch_ms

logger = make_logger(__name__)


class Visit(NamedTuple):
    url: str
    title: str
    timestamp_ms: int
    visit_type: int


class Reader(Protocol):
    browser: Browser
    path: Path

    def visits(self) -> Iterator[Visit]: ...

    def close(self) -> None: ...


# table -> columns that have to be present
Schema = Mapping[str, frozenset[str]]
Columns = dict[str, set[str]]


def _table_columns(conn: sqlite3.Connection, schema: Schema) -> Columns:
    return {
        table: {row[1] for row in conn.execute(f'PRAGMA table_info({table})')}
        for table in schema
    }


class SourceDb:
    """
    Connection for reading a browser database, or a snapshot copy of it if the browser holds a lock
    """

    def __init__(self, conn: sqlite3.Connection, columns: Columns, snapshot: SqliteSnapshot | None = None) -> None:
        self.conn = conn
        self.columns = columns
        self.snapshot = snapshot

    def close(self) -> None:
        if self.snapshot is not None:
            # also removes the copy
            self.snapshot.close()
        else:
            self.conn.close()


def _open_snapshot(p: Path, schema: Schema) -> SourceDb:
    try:
        snapshot = SqliteSnapshot(p)
    except OSError as e:
        raise SourceBusy(p, str(e)) from e
    except sqlite3.Error as e:
        raise source_error(p, e) from e
    try:
        columns = _table_columns(snapshot.conn, schema)
    except sqlite3.Error as e:
        snapshot.close()
        raise source_error(p, e) from e
    return SourceDb(snapshot.conn, columns, snapshot)


def open_source(path: PathIsh, schema: Schema) -> SourceDb:
    """
    Opens a browser database read-only and checks it has the tables/columns the reader needs.

    If the browser holds a lock on it, falls back to reading a snapshot copy.
    """
    p = Path(path)
    if not p.is_file() or not os.access(p, os.R_OK):
        raise SourceMissing(p)

    try:
        conn = sqlite_connect_readonly(p)
    except sqlite3.Error as e:
        raise source_error(p, e) from e

    try:
        db = SourceDb(conn, _table_columns(conn, schema))
    except sqlite3.Error as e:
        conn.close()
        if not is_locked(e):
            raise source_error(p, e) from e
        logger.debug('%s is locked (%s), reading from a snapshot copy', p, e)
        db = _open_snapshot(p, schema)

    for table, required in schema.items():
        missing = required - db.columns[table]
        if len(missing) > 0:
            db.close()
            detail = f'no table {table}' if len(db.columns[table]) == 0 else f'{table} lacks {", ".join(sorted(missing))}'
            raise SourceMalformed(p, detail)
    return db


def iter_visits(path: Path, conn: sqlite3.Connection, query: str, *, browser: Browser) -> Iterator[Visit]:
    """
    Streams (url, title, raw_time, visit_type) rows of the query as visits.

    Rows without url or time are skipped, as well as rows with a time outside of the sane window.
    """
    dropped = 0
    try:
        cursor = conn.execute(query)
        for url, title, raw_time, visit_type in cursor:
            if url is None or raw_time is None:
                continue
            try:
                ts = to_epoch_ms(browser, raw_time)
            except (TypeError, ValueError, OverflowError):
                logger.debug('%s: unparseable visit time %r for %s', path, raw_time, url)
                dropped += 1
                continue
            if not is_valid_ms(ts):
                logger.debug('%s: visit time %r out of range for %s', path, raw_time, url)
                dropped += 1
                continue
            yield Visit(
                url=str(url),
                title='' if title is None else str(title),
                timestamp_ms=ts,
                visit_type=0 if visit_type is None else int(visit_type),
            )
    except sqlite3.Error as e:
        raise source_error(path, e) from e

    if dropped > 0:
        logger.warning('%s: skipped %d visits with invalid timestamps', path, dropped)
