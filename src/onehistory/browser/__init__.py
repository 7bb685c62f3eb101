"""
Readers for the native history databases of Chrome, Firefox and Safari
"""

from __future__ import annotations

from ..core.common import PathIsh
from ..core.time import Browser
from .chrome import ChromeReader
from .common import Reader, Visit
from .firefox import FirefoxReader
from .safari import SafariReader

READERS = {
    'chrome': ChromeReader,
    'firefox': FirefoxReader,
    'safari': SafariReader,
}


def open_reader(browser: Browser, path: PathIsh) -> Reader:
    return READERS[browser](path)


__all__ = [
    'ChromeReader',
    'FirefoxReader',
    'Reader',
    'SafariReader',
    'Visit',
    'open_reader',
]
