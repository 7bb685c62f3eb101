"""
Firefox: places.sqlite of a profile
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from ..core.common import PathIsh
from ..core.time import Browser
from .common import Schema, Visit, iter_visits, open_source

SCHEMA: Schema = {
    'moz_places': frozenset({'id', 'url', 'title'}),
    'moz_historyvisits': frozenset({'place_id', 'visit_date', 'visit_type'}),
}

QUERY = '''
SELECT p.url, p.title, h.visit_date, h.visit_type
FROM moz_historyvisits AS h
JOIN moz_places AS p ON p.id = h.place_id
'''


class FirefoxReader:
    browser: Browser = 'firefox'

    def __init__(self, path: PathIsh) -> None:
        self.path = Path(path)
        self.db = open_source(self.path, SCHEMA)

    def visits(self) -> Iterator[Visit]:
        return iter_visits(self.path, self.db.conn, QUERY, browser=self.browser)

    def close(self) -> None:
        self.db.close()
