"""
Helpers to build minimal browser history databases for tests

Only the tables/columns the readers care about (plus a few realistic extras) are created.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from contextlib import closing
from pathlib import Path
from typing import Any, Optional

from ..store import Store, domain_of

Row = Sequence[Any]

# 2024-01-17T00:00:00Z
DAY = 1705449600000
HOUR = 3600 * 1000

# 2024-01-17T21:20:00Z, as chrome stores it
CHROME_RAW = 13350000000000000
CHROME_MS = 1705526400000


def _make(path: Path, schema: str, inserts: Sequence[tuple[str, Sequence[Row]]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(str(path))) as conn:
        conn.executescript(schema)
        for sql, rows in inserts:
            conn.executemany(sql, rows)
        conn.commit()
    return path


def make_chrome(path: Path, *, urls: Sequence[Row], visits: Sequence[Row]) -> Path:
    '''
    urls: (id, url, title), visits: (url_id, visit_time, transition)
    '''
    schema = '''
CREATE TABLE urls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url LONGVARCHAR,
    title LONGVARCHAR,
    visit_count INTEGER DEFAULT 0 NOT NULL,
    last_visit_time INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE visits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url INTEGER NOT NULL,
    visit_time INTEGER NOT NULL,
    from_visit INTEGER,
    transition INTEGER DEFAULT 0 NOT NULL
);
'''
    return _make(path, schema, [
        ('INSERT INTO urls (id, url, title) VALUES (?, ?, ?)', urls),
        ('INSERT INTO visits (url, visit_time, transition) VALUES (?, ?, ?)', visits),
    ])


def make_firefox(path: Path, *, places: Sequence[Row], visits: Sequence[Row]) -> Path:
    '''
    places: (id, url, title), visits: (place_id, visit_date, visit_type)
    '''
    schema = '''
CREATE TABLE moz_places (
    id INTEGER PRIMARY KEY,
    url LONGVARCHAR,
    title LONGVARCHAR,
    rev_host LONGVARCHAR,
    visit_count INTEGER DEFAULT 0
);
CREATE TABLE moz_historyvisits (
    id INTEGER PRIMARY KEY,
    from_visit INTEGER,
    place_id INTEGER,
    visit_date INTEGER,
    visit_type INTEGER,
    session INTEGER
);
'''
    return _make(path, schema, [
        ('INSERT INTO moz_places (id, url, title) VALUES (?, ?, ?)', places),
        ('INSERT INTO moz_historyvisits (place_id, visit_date, visit_type) VALUES (?, ?, ?)', visits),
    ])


def make_safari(path: Path, *, items: Sequence[Row], visits: Sequence[Row], item_titles: Optional[Sequence[Optional[str]]] = None) -> Path:
    '''
    items: (id, url), visits: (history_item, visit_time, title, origin)
    item_titles: if passed, history_items gets a title column (older Safari versions)
    '''
    item_title_col = ',\n    title TEXT' if item_titles is not None else ''
    schema = f'''
CREATE TABLE history_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    domain_expansion TEXT NULL,
    visit_count INTEGER NOT NULL DEFAULT 0{item_title_col}
);
CREATE TABLE history_visits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    history_item INTEGER NOT NULL REFERENCES history_items(id),
    visit_time REAL NOT NULL,
    title TEXT NULL,
    load_successful BOOLEAN NOT NULL DEFAULT 1,
    origin INTEGER NOT NULL DEFAULT 0
);
'''
    if item_titles is not None:
        item_rows: Sequence[Row] = [(*item, t) for item, t in zip(items, item_titles)]
        item_sql = 'INSERT INTO history_items (id, url, title) VALUES (?, ?, ?)'
    else:
        item_rows = items
        item_sql = 'INSERT INTO history_items (id, url) VALUES (?, ?)'
    return _make(path, schema, [
        (item_sql, item_rows),
        ('INSERT INTO history_visits (history_item, visit_time, title, origin) VALUES (?, ?, ?, ?)', visits),
    ])


def table_rows(db: Path, table: str) -> list[tuple]:
    with closing(sqlite3.connect(str(db))) as conn:
        return sorted(conn.execute(f'SELECT * FROM {table}').fetchall())


def add_visits(store: Store, url: str, title: str, *times: int, visit_type: int = 1) -> None:
    with store.transaction():
        page_id = store.upsert_page(url, title, domain_of(url))
        for t in times:
            store.insert_visit(page_id, t, visit_type)
