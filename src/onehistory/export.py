from __future__ import annotations

import csv
from typing import TextIO

from .core.logging import make_logger
from .store import Store

logger = make_logger(__name__)

HEADER = ('url', 'title', 'domain', 'visit_time_ms', 'visit_type')


def export_csv(store: Store, out: TextIO) -> int:
    """
    Writes every visit, oldest first, as RFC 4180 csv. Returns the number of visits written.

    out should be opened with newline='' so the csv module controls line endings.
    """
    writer = csv.writer(out, lineterminator='\r\n')
    writer.writerow(HEADER)
    count = 0
    for row in store.iter_all():
        # timestamps stay integers, no locale dependent formatting
        writer.writerow((row.url, row.title, row.domain, row.visit_time, row.visit_type))
        count += 1
    logger.debug('exported %d visits', count)
    return count
