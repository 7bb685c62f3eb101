# this file only keeps the most common & critical types/utility functions

from .common import PathIsh
from .error import (
    InvalidArgument,
    OneHistoryError,
    SourceBusy,
    SourceError,
    SourceMalformed,
    SourceMissing,
    StoreIO,
    UnknownSource,
)
from .logging import make_logger

__all__ = [
    'InvalidArgument',
    'OneHistoryError',
    'PathIsh',
    'SourceBusy',
    'SourceError',
    'SourceMalformed',
    'SourceMissing',
    'StoreIO',
    'UnknownSource',
    'make_logger',
]
