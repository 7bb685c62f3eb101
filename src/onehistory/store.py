"""
The consolidated history database: one row per page, one row per visit
"""

from __future__ import annotations

import os
import sqlite3
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, NamedTuple
from urllib.parse import urlsplit

from .core.common import PathIsh
from .core.error import StoreIO
from .core.logging import make_logger
from .core.time import Tz, day_start_ms, next_day_start_ms

logger = make_logger(__name__)


SCHEMA = '''
CREATE TABLE IF NOT EXISTS pages (
    id     INTEGER PRIMARY KEY,
    url    TEXT NOT NULL UNIQUE,
    title  TEXT NOT NULL,
    domain TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS visits (
    page_id    INTEGER NOT NULL REFERENCES pages(id),
    visit_time INTEGER NOT NULL,
    visit_type INTEGER NOT NULL,
    PRIMARY KEY (page_id, visit_time)
);

CREATE INDEX IF NOT EXISTS visits_visit_time ON visits(visit_time);
CREATE INDEX IF NOT EXISTS pages_domain ON pages(domain);
'''

# seconds to wait for another process (e.g. a running dashboard) to release the write lock
BUSY_TIMEOUT = 10.0


class VisitRow(NamedTuple):
    url: str
    title: str
    domain: str
    visit_time: int  # epoch ms, UTC
    visit_type: int


def domain_of(url: str) -> str:
    """Lowercased host of the url, empty if it has none (e.g. data: or file: urls)."""
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        # e.g. broken IPv6 literals
        return ''
    return host or ''


def _escape_like(s: str) -> str:
    return s.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _keyword_filter(keyword: str | None) -> tuple[str, dict[str, Any]]:
    if not keyword:
        return '', {}
    # NOTE: LIKE is case insensitive for ASCII only
    clause = "AND (p.url LIKE :kw ESCAPE '\\' OR p.title LIKE :kw ESCAPE '\\')"
    return clause, {'kw': f'%{_escape_like(keyword)}%'}


def _create_private(path: Path) -> None:
    # sqlite creates journal/WAL files with the same permissions as the database itself
    if os.name != 'posix' or path.exists():
        return
    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
    os.close(fd)


class Store:
    def __init__(self, path: PathIsh) -> None:
        self.path = Path(path).expanduser()
        try:
            _create_private(self.path)
            # autocommit, transactions are managed explicitly in transaction()
            self.conn = sqlite3.connect(str(self.path), isolation_level=None, timeout=BUSY_TIMEOUT)
        except (OSError, sqlite3.Error) as e:
            raise StoreIO(f'{self.path}: cannot open database ({e})') from e
        with self._io('initialize'):
            self.conn.execute('PRAGMA journal_mode = WAL')
            self.conn.execute('PRAGMA synchronous = NORMAL')
            self.conn.execute('PRAGMA foreign_keys = ON')
            self.conn.executescript(SCHEMA)
        logger.debug('opened %s', self.path)

    @contextmanager
    def _io(self, what: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise StoreIO(f'{self.path}: {what} failed ({e})') from e

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Everything written inside is committed together, or rolled back if an exception escapes.
        """
        with self._io('begin'):
            self.conn.execute('BEGIN')
        try:
            yield
        except BaseException:
            with self._io('rollback'):
                self.conn.execute('ROLLBACK')
            raise
        with self._io('commit'):
            self.conn.execute('COMMIT')

    ## writes

    def upsert_page(self, url: str, title: str, domain: str) -> int:
        url = url.strip()
        with self._io('upsert page'):
            # an empty title never overwrites what we already know
            self.conn.execute(
                '''
INSERT INTO pages (url, title, domain) VALUES (?, ?, ?)
ON CONFLICT (url) DO UPDATE SET title = excluded.title WHERE excluded.title != ''
''',
                (url, title, domain),
            )
            (page_id,) = self.conn.execute('SELECT id FROM pages WHERE url = ?', (url,)).fetchone()
        return page_id

    def insert_visit(self, page_id: int, ts_ms: int, visit_type: int) -> bool:
        """Returns False if the visit was already there."""
        with self._io('insert visit'):
            cur = self.conn.execute(
                'INSERT OR IGNORE INTO visits (page_id, visit_time, visit_type) VALUES (?, ?, ?)',
                (page_id, ts_ms, visit_type),
            )
        return cur.rowcount == 1

    ## reads

    def _select(self, what: str, sql: str, params: dict[str, Any]) -> Iterator[tuple]:
        # generator, so errors during iteration are translated too
        with self._io(what):
            yield from self.conn.execute(sql, params)

    def range(self, start_ms: int, end_ms: int, keyword: str = '') -> Iterator[VisitRow]:
        """Visits with start_ms <= visit_time < end_ms, newest first."""
        kw_sql, kw_params = _keyword_filter(keyword)
        sql = f'''
SELECT p.url, p.title, p.domain, v.visit_time, v.visit_type
FROM visits AS v
JOIN pages AS p ON p.id = v.page_id
WHERE v.visit_time >= :start AND v.visit_time < :end {kw_sql}
ORDER BY v.visit_time DESC, p.url
'''
        for row in self._select('range', sql, {'start': start_ms, 'end': end_ms, **kw_params}):
            yield VisitRow(*row)

    def iter_all(self) -> Iterator[VisitRow]:
        """Every visit, oldest first."""
        sql = '''
SELECT p.url, p.title, p.domain, v.visit_time, v.visit_type
FROM visits AS v
JOIN pages AS p ON p.id = v.page_id
ORDER BY v.visit_time, p.url
'''
        for row in self._select('export', sql, {}):
            yield VisitRow(*row)

    def daily_counts(self, start_ms: int, end_ms: int, keyword: str = '', tz: Tz = None) -> list[tuple[int, int]]:
        """
        Number of visits per calendar day, as (midnight of the day in epoch ms, count), oldest day first.

        tz=None groups by the local timezone of the machine.
        """
        kw_sql, kw_params = _keyword_filter(keyword)
        sql = f'''
SELECT v.visit_time
FROM visits AS v
JOIN pages AS p ON p.id = v.page_id
WHERE v.visit_time >= :start AND v.visit_time < :end {kw_sql}
ORDER BY v.visit_time
'''
        counts: Counter[int] = Counter()
        # day boundaries in the given tz, cached so we don't do tz math for every visit
        day_from, day_until = 0, 0
        for (visit_time,) in self._select('daily counts', sql, {'start': start_ms, 'end': end_ms, **kw_params}):
            if not (day_from <= visit_time < day_until):
                day_from = day_start_ms(visit_time, tz)
                day_until = next_day_start_ms(visit_time, tz)
            counts[day_from] += 1
        return sorted(counts.items())

    def _top_n(self, column: str, start_ms: int, end_ms: int, n: int, keyword: str) -> list[tuple[str, int]]:
        kw_sql, kw_params = _keyword_filter(keyword)
        sql = f'''
SELECT p.{column}, count(*) AS cnt
FROM visits AS v
JOIN pages AS p ON p.id = v.page_id
WHERE v.visit_time >= :start AND v.visit_time < :end AND p.{column} != '' {kw_sql}
GROUP BY p.{column}
ORDER BY cnt DESC, p.{column} ASC
LIMIT :n
'''
        params = {'start': start_ms, 'end': end_ms, 'n': n, **kw_params}
        return [(key, cnt) for key, cnt in self._select(f'top {column}', sql, params)]

    def top_n_by_title(self, start_ms: int, end_ms: int, n: int, keyword: str = '') -> list[tuple[str, int]]:
        return self._top_n('title', start_ms, end_ms, n, keyword)

    def top_n_by_domain(self, start_ms: int, end_ms: int, n: int, keyword: str = '') -> list[tuple[str, int]]:
        return self._top_n('domain', start_ms, end_ms, n, keyword)

    def time_range(self) -> tuple[int, int] | None:
        with self._io('time range'):
            lo, hi = self.conn.execute('SELECT min(visit_time), max(visit_time) FROM visits').fetchone()
        if lo is None:
            return None
        return lo, hi

    def counts(self) -> tuple[int, int]:
        """(pages, visits)"""
        with self._io('count'):
            (pages,) = self.conn.execute('SELECT count(*) FROM pages').fetchone()
            (visits,) = self.conn.execute('SELECT count(*) FROM visits').fetchone()
        return pages, visits
