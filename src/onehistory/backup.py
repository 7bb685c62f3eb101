"""
Imports visits from browser history files into the consolidated store
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from more_itertools import chunked, unique_everseen

from .browser import open_reader
from .browser.detect import FILENAMES, Candidate, classify
from .core.common import PathIsh
from .core.error import SourceError
from .core.logging import get_enlighten, make_logger
from .core.time import Browser
from .store import Store, domain_of

if TYPE_CHECKING:
    import enlighten

logger = make_logger(__name__)

# how often progress is ticked and logged, everything from one source is a single transaction
BATCH_SIZE = 1000


class Source(NamedTuple):
    browser: Browser | None  # None if the filename isn't one we know
    path: Path


@dataclass
class SourceReport:
    browser: str
    path: Path
    read: int = 0
    inserted: int = 0
    error: SourceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def gather_sources(detected: Iterable[Candidate], files: Iterable[PathIsh]) -> list[Source]:
    """
    Detected files first, then the user supplied ones in the order given.

    The same file (by absolute path) is only backed up once.
    """
    sources = [Source(c.browser, c.path) for c in detected]
    for f in files:
        p = Path(f).expanduser()
        sources.append(Source(FILENAMES.get(p.name), p))
    return list(unique_everseen(sources, key=lambda s: str(s.path.absolute())))


def _backup_one(store: Store, source: Source, report: SourceReport, *, dry_run: bool, pbar: enlighten.Counter) -> None:
    browser = source.browser or classify(source.path)
    report.browser = browser
    with closing(open_reader(browser, source.path)) as reader:
        if dry_run:
            for batch in chunked(reader.visits(), BATCH_SIZE):
                report.read += len(batch)
                pbar.update(len(batch))
            return

        with store.transaction():
            for batch in chunked(reader.visits(), BATCH_SIZE):
                for visit in batch:
                    url = visit.url.strip()
                    if url == '':
                        continue
                    page_id = store.upsert_page(url, visit.title, domain_of(url))
                    if store.insert_visit(page_id, visit.timestamp_ms, visit.visit_type):
                        report.inserted += 1
                report.read += len(batch)
                pbar.update(len(batch))
                logger.debug('%s: %d visits read so far', source.path, report.read)


def iter_backup(store: Store, sources: Sequence[Source], *, dry_run: bool = False) -> Iterator[SourceReport]:
    """
    Backs up the sources one after another, yielding a report as each one is done.

    A broken source is recorded in its report and doesn't stop the others,
    errors of the store itself (StoreIO) propagate.
    """
    manager = get_enlighten()
    try:
        for source in sources:
            report = SourceReport(browser=source.browser or 'unknown', path=source.path)
            logger.info('backing up %s%s', source.path, ' (dry run)' if dry_run else '')
            pbar = manager.counter(desc=f'{report.browser} {source.path}', unit='visits', leave=False)
            try:
                _backup_one(store, source, report, dry_run=dry_run, pbar=pbar)
            except SourceError as e:
                # the transaction got rolled back, so nothing from this source made it
                report.inserted = 0
                report.error = e
                logger.error('%s', e)
            else:
                logger.info('%s: read %d visits, %d new', source.path, report.read, report.inserted)
            finally:
                pbar.close()
            yield report
    finally:
        manager.stop()


def backup(store: Store, sources: Sequence[Source], *, dry_run: bool = False) -> list[SourceReport]:
    return list(iter_backup(store, sources, dry_run=dry_run))
