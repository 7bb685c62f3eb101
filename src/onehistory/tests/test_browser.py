import sqlite3
from collections.abc import Iterator
from contextlib import closing
from pathlib import Path

import pytest

from ..browser import ChromeReader, FirefoxReader, SafariReader, Visit, open_reader
from ..core.error import SourceBusy, SourceMalformed, SourceMissing
from ..core.time import VALID_FROM_MS, from_epoch_ms
from .common import CHROME_MS, CHROME_RAW, make_chrome, make_firefox, make_safari


def _read(reader) -> list[Visit]:
    with closing(reader):
        return list(reader.visits())


def test_chrome(chrome_history: Path) -> None:
    assert _read(ChromeReader(chrome_history)) == [
        Visit(url='https://example.com/', title='Example', timestamp_ms=CHROME_MS, visit_type=0),
    ]


def test_chrome_messy(tmp_path: Path) -> None:
    history = make_chrome(
        tmp_path / 'History',
        urls=[
            (1, 'https://example.com/', None),
            (2, None, 'no url'),
            (3, 'https://typed.example.com/', 'Typed'),
        ],
        visits=[
            (1, CHROME_RAW, 0),
            (2, CHROME_RAW + 1000, 0),
            # zeroed timestamp, ends up in 1601
            (3, 0, 1),
            # qualifier bits on top of 'typed'
            (3, CHROME_RAW + 2000, 0x30000001),
        ],
    )
    visits = sorted(_read(ChromeReader(history)))
    assert visits == [
        Visit('https://example.com/', '', CHROME_MS, 0),
        Visit('https://typed.example.com/', 'Typed', CHROME_MS + 2, 1),
    ]


def test_firefox(firefox_history: Path) -> None:
    visits = _read(FirefoxReader(firefox_history))
    assert len(visits) == 3
    assert sorted(v.timestamp_ms for v in visits) == [1700000000000, 1700000060000, 1700000120000]
    assert {(v.url, v.title) for v in visits} == {
        ('https://www.mozilla.org/', 'Mozilla'),
        ('https://rust-lang.org/', 'Rust'),
    }
    assert sorted(v.visit_type for v in visits) == [1, 1, 2]


def test_firefox_out_of_range(tmp_path: Path) -> None:
    places = make_firefox(
        tmp_path / 'places.sqlite',
        places=[(1, 'https://a.example/', 'A')],
        visits=[
            (1, 0, 1),
            (1, from_epoch_ms('firefox', VALID_FROM_MS), None),
            (1, None, 1),
        ],
    )
    assert _read(FirefoxReader(places)) == [Visit('https://a.example/', 'A', VALID_FROM_MS, 0)]


def test_safari(safari_history: Path) -> None:
    assert _read(SafariReader(safari_history)) == [
        Visit('https://www.apple.com/', 'Apple', 1678307200500, 1),
    ]


def test_safari_titles(tmp_path: Path) -> None:
    items = [(1, 'https://one.example/'), (2, 'https://two.example/')]
    visits = [
        (1, 700000000.0, '', 0),
        (2, 700000001.0, 'Visit title', 0),
    ]
    old = make_safari(tmp_path / 'old' / 'History.db', items=items, visits=visits, item_titles=['Item one', 'Item two'])
    assert sorted(_read(SafariReader(old))) == [
        Visit('https://one.example/', 'Item one', 1678307200000, 0),
        Visit('https://two.example/', 'Visit title', 1678307201000, 0),
    ]

    new = make_safari(tmp_path / 'new' / 'History.db', items=items, visits=visits)
    assert sorted(_read(SafariReader(new))) == [
        Visit('https://one.example/', '', 1678307200000, 0),
        Visit('https://two.example/', 'Visit title', 1678307201000, 0),
    ]


def test_visits_are_lazy(firefox_history: Path) -> None:
    with closing(open_reader('firefox', firefox_history)) as reader:
        visits = reader.visits()
        assert isinstance(visits, Iterator)
        assert isinstance(next(visits), Visit)


def test_missing(tmp_path: Path) -> None:
    with pytest.raises(SourceMissing):
        ChromeReader(tmp_path / 'History')
    # a directory isn't a history file either
    (tmp_path / 'places.sqlite').mkdir()
    with pytest.raises(SourceMissing):
        FirefoxReader(tmp_path / 'places.sqlite')


def test_not_a_database(tmp_path: Path) -> None:
    junk = tmp_path / 'History'
    junk.write_text('definitely not sqlite ' * 100)
    with pytest.raises(SourceMalformed):
        _read(ChromeReader(junk))


def test_wrong_schema(firefox_history: Path, tmp_path: Path) -> None:
    # a firefox database under a chrome name
    with pytest.raises(SourceMalformed, match='no table urls'):
        ChromeReader(firefox_history)

    partial = tmp_path / 'History.db'
    with closing(sqlite3.connect(str(partial))) as conn:
        conn.execute('CREATE TABLE history_items (id INTEGER PRIMARY KEY, url TEXT)')
        conn.execute('CREATE TABLE history_visits (id INTEGER PRIMARY KEY, history_item INTEGER)')
        conn.commit()
    with pytest.raises(SourceMalformed, match='history_visits lacks origin, title, visit_time'):
        SafariReader(partial)


def _lock(db: Path) -> sqlite3.Connection:
    # what a browser in the middle of writing looks like
    conn = sqlite3.connect(str(db), isolation_level=None)
    conn.execute('BEGIN EXCLUSIVE')
    return conn


def test_locked_reads_snapshot(chrome_history: Path) -> None:
    with closing(_lock(chrome_history)):
        reader = ChromeReader(chrome_history)
        try:
            assert [v.url for v in reader.visits()] == ['https://example.com/']
            # reads a copy on disk, not one in memory
            [(_, _, filename)] = reader.db.conn.execute('PRAGMA database_list').fetchall()
            assert filename != ''
            copy = Path(filename)
            assert copy.is_file()
            assert copy.resolve() != chrome_history.resolve()
        finally:
            reader.close()
        assert not copy.exists()


def test_locked_busy(chrome_history: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from ..browser import common

    def copy_fails(db):
        raise PermissionError(13, 'Permission denied', str(db))

    monkeypatch.setattr(common, 'SqliteSnapshot', copy_fails)
    with closing(_lock(chrome_history)):
        with pytest.raises(SourceBusy):
            ChromeReader(chrome_history)
