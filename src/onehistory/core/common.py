from __future__ import annotations

import tempfile
from collections.abc import Iterable
from glob import glob as do_glob
from pathlib import Path
from typing import Union

PathIsh = Union[Path, str]


def _default_location(filename: str) -> Path:
    try:
        base = Path.home()
    except RuntimeError:
        # no home directory, e.g. stripped down containers
        base = Path(tempfile.gettempdir())
    return base / filename


DEFAULT_DB_FILE = str(_default_location('onehistory.db'))
DEFAULT_ADDR = '127.0.0.1:9960'

DB_FILE_ENV = 'OH_DB_FILE'
EXPORT_CSV_FILE_ENV = 'OH_EXPORT_CSV_FILE'
TIMEZONE_ENV = 'OH_TIMEZONE'


def expand_globs(patterns: Iterable[PathIsh]) -> list[Path]:
    """
    Expands each pattern (which may contain '*') into the matching existing files.

    Results of a single pattern are sorted, patterns keep their relative order.
    """
    paths: list[Path] = []
    for p in patterns:
        gs = str(p)
        if gs.startswith('~'):
            gs = str(Path(gs).expanduser())
        # note: glob handled first, because e.g. on Windows asterisk makes is_file unhappy
        if '*' in gs:
            paths.extend(sorted(Path(m) for m in do_glob(gs) if Path(m).is_file()))
        elif Path(gs).is_file():
            paths.append(Path(gs))
    return paths
