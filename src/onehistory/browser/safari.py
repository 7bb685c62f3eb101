"""
Safari: ~/Library/Safari/History.db

Reading it usually requires Full Disk Access for the terminal on recent macOS.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from ..core.common import PathIsh
from ..core.time import Browser
from .common import Schema, Visit, iter_visits, open_source

SCHEMA: Schema = {
    'history_items': frozenset({'id', 'url'}),
    'history_visits': frozenset({'history_item', 'visit_time', 'title', 'origin'}),
}


def _query(*, item_has_title: bool) -> str:
    # the visit's title wins, older databases only have it on the item
    item_title = "COALESCE(hi.title, '')" if item_has_title else "''"
    return f'''
SELECT
    hi.url,
    CASE WHEN COALESCE(hv.title, '') != '' THEN hv.title ELSE {item_title} END,
    hv.visit_time,
    hv.origin
FROM history_visits AS hv
JOIN history_items AS hi ON hi.id = hv.history_item
'''


class SafariReader:
    browser: Browser = 'safari'

    def __init__(self, path: PathIsh) -> None:
        self.path = Path(path)
        self.db = open_source(self.path, SCHEMA)
        self._query = _query(item_has_title='title' in self.db.columns['history_items'])

    def visits(self) -> Iterator[Visit]:
        return iter_visits(self.path, self.db.conn, self._query, browser=self.browser)

    def close(self) -> None:
        self.db.close()
