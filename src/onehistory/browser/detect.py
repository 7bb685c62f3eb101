"""
Finds the history files browsers keep in their default profile locations
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Literal, NamedTuple

from ..core.common import PathIsh, expand_globs
from ..core.error import UnknownSource
from ..core.logging import make_logger
from ..core.time import Browser

logger = make_logger(__name__)

System = Literal['macos', 'linux', 'windows']


class Candidate(NamedTuple):
    browser: Browser
    path: Path


# filename -> browser, that's all we go by for user supplied files
FILENAMES: dict[str, Browser] = {
    'History': 'chrome',
    'places.sqlite': 'firefox',
    'History.db': 'safari',
}


def current_system() -> System | None:
    if sys.platform == 'darwin':
        return 'macos'
    if sys.platform.startswith('linux'):
        return 'linux'
    if sys.platform in {'win32', 'cygwin'}:
        return 'windows'
    return None


def _patterns(system: System, home: Path, environ: Mapping[str, str]) -> list[tuple[Browser, Path]]:
    if system == 'macos':
        support = home / 'Library' / 'Application Support'
        return [
            ('chrome', support / 'Google' / 'Chrome' / '*' / 'History'),
            ('chrome', support / 'BraveSoftware' / 'Brave-Browser' / '*' / 'History'),
            ('firefox', support / 'Firefox' / 'Profiles' / '*' / 'places.sqlite'),
            ('safari', home / 'Library' / 'Safari' / 'History.db'),
        ]
    if system == 'linux':
        config = home / '.config'
        return [
            ('chrome', config / 'google-chrome' / '*' / 'History'),
            ('chrome', config / 'chromium' / '*' / 'History'),
            ('chrome', config / 'BraveSoftware' / 'Brave-Browser' / '*' / 'History'),
            ('firefox', home / '.mozilla' / 'firefox' / '*' / 'places.sqlite'),
        ]
    if system == 'windows':
        local = Path(environ.get('LOCALAPPDATA') or home / 'AppData' / 'Local')
        roaming = Path(environ.get('APPDATA') or home / 'AppData' / 'Roaming')
        return [
            ('chrome', local / 'Google' / 'Chrome' / 'User Data' / '*' / 'History'),
            ('chrome', local / 'BraveSoftware' / 'Brave-Browser' / 'User Data' / '*' / 'History'),
            ('firefox', roaming / 'Mozilla' / 'Firefox' / 'Profiles' / '*' / 'places.sqlite'),
        ]
    raise ValueError(system)


def candidates(
    system: System | None = None,
    *,
    home: PathIsh | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[Candidate]:
    """
    History files present in the well-known locations, sorted by path
    """
    if system is None:
        system = current_system()
    if system is None:
        logger.warning('unsupported platform %s, nothing to detect', sys.platform)
        return []
    home = Path.home() if home is None else Path(home)
    if environ is None:
        environ = os.environ

    found: list[Candidate] = []
    for browser, pattern in _patterns(system, home, environ):
        logger.debug('looking for %s history in %s', browser, pattern)
        found.extend(Candidate(browser, p) for p in expand_globs([pattern]))
    return sorted(found, key=lambda c: str(c.path))


def classify(path: PathIsh) -> Browser:
    p = Path(path)
    browser = FILENAMES.get(p.name)
    if browser is None:
        raise UnknownSource(p)
    return browser
