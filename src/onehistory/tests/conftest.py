from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from ..core.time import from_epoch_ms
from ..store import Store
from .common import CHROME_RAW, make_chrome, make_firefox, make_safari


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / 'onehistory.db'


@pytest.fixture
def store(db_path: Path) -> Iterator[Store]:
    with Store(db_path) as s:
        yield s


@pytest.fixture
def chrome_history(tmp_path: Path) -> Path:
    return make_chrome(
        tmp_path / 'chrome' / 'Default' / 'History',
        urls=[(1, 'https://example.com/', 'Example')],
        visits=[(1, CHROME_RAW, 0)],
    )


@pytest.fixture
def firefox_history(tmp_path: Path) -> Path:
    base = 1700000000000
    return make_firefox(
        tmp_path / 'firefox' / 'abcd.default' / 'places.sqlite',
        places=[
            (1, 'https://www.mozilla.org/', 'Mozilla'),
            (2, 'https://rust-lang.org/', 'Rust'),
        ],
        visits=[
            (1, from_epoch_ms('firefox', base), 1),
            (1, from_epoch_ms('firefox', base + 60_000), 2),
            (2, from_epoch_ms('firefox', base + 120_000), 1),
        ],
    )


@pytest.fixture
def safari_history(tmp_path: Path) -> Path:
    return make_safari(
        tmp_path / 'safari' / 'History.db',
        items=[(1, 'https://www.apple.com/')],
        visits=[(1, 700000000.5, 'Apple', 1)],
    )
