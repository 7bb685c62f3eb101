"""
Chrome and other Chromium based browsers (Brave, Chromium, Edge): the 'History' file of a profile
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from ..core.common import PathIsh
from ..core.time import Browser
from .common import Schema, Visit, iter_visits, open_source

SCHEMA: Schema = {
    'urls': frozenset({'id', 'url', 'title'}),
    'visits': frozenset({'url', 'visit_time', 'transition'}),
}

# the low byte of transition is the core type (link, typed, reload...), the rest are qualifier flags
QUERY = '''
SELECT u.url, u.title, v.visit_time, v.transition & 255
FROM visits AS v
JOIN urls AS u ON u.id = v.url
'''


class ChromeReader:
    browser: Browser = 'chrome'

    def __init__(self, path: PathIsh) -> None:
        self.path = Path(path)
        self.db = open_source(self.path, SCHEMA)

    def visits(self) -> Iterator[Visit]:
        return iter_visits(self.path, self.db.conn, QUERY, browser=self.browser)

    def close(self) -> None:
        self.db.close()
