"""
Timestamps: every browser's native representation <-> epoch milliseconds (UTC)

Chrome:  microseconds since 1601-01-01 UTC
Firefox: microseconds since 1970-01-01 UTC (PRTime)
Safari:  seconds since 2001-01-01 UTC, as a float (NSDate)
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from functools import lru_cache
from typing import Literal, Union

import pytz

Browser = Literal['chrome', 'firefox', 'safari']
BROWSERS: tuple[Browser, ...] = ('chrome', 'firefox', 'safari')

Raw = Union[int, float]

# seconds from 1601-01-01 to 1970-01-01
CHROME_EPOCH_OFFSET = 11644473600
# seconds from 1970-01-01 to 2001-01-01
SAFARI_EPOCH_OFFSET = 978307200

# visits outside of [VALID_FROM_MS, VALID_UNTIL_MS) are garbage (zeroed or corrupted rows)
VALID_FROM_MS = 631152000000  # 1990-01-01T00:00:00Z
VALID_UNTIL_MS = 4102444800000  # 2100-01-01T00:00:00Z

DAY_MS = 24 * 3600 * 1000


def to_epoch_ms(browser: Browser, raw: Raw) -> int:
    if browser == 'chrome':
        return (int(raw) - CHROME_EPOCH_OFFSET * 1_000_000) // 1000
    if browser == 'firefox':
        return int(raw) // 1000
    if browser == 'safari':
        # int() truncates, so 700000000.5 -> ...500 exactly
        return int((float(raw) + SAFARI_EPOCH_OFFSET) * 1000)
    raise ValueError(f'unknown browser: {browser}')


def from_epoch_ms(browser: Browser, ms: int) -> Raw:
    if browser == 'chrome':
        return ms * 1000 + CHROME_EPOCH_OFFSET * 1_000_000
    if browser == 'firefox':
        return ms * 1000
    if browser == 'safari':
        return ms / 1000 - SAFARI_EPOCH_OFFSET
    raise ValueError(f'unknown browser: {browser}')


def is_valid_ms(ms: int) -> bool:
    return VALID_FROM_MS <= ms < VALID_UNTIL_MS


## calendar days

# None means the machine's local timezone
Tz = Union[tzinfo, None]


@lru_cache(None)
def get_tz(name: str | None) -> Tz:
    if name is None or name == '' or name.lower() == 'local':
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as e:
        raise ValueError(f'unknown timezone: {name}') from e


def _as_date(ms: int, tz: Tz) -> date:
    return datetime.fromtimestamp(ms / 1000, tz=tz).date()


def _midnight_ms(d: date, tz: Tz) -> int:
    naive = datetime(d.year, d.month, d.day)
    if tz is None:
        dt = naive.astimezone()
    elif isinstance(tz, pytz.BaseTzInfo):
        # pytz zones need localize(), replace(tzinfo=...) picks LMT offsets
        dt = tz.localize(naive)
    else:
        dt = naive.replace(tzinfo=tz)
    return int(dt.timestamp()) * 1000


def day_start_ms(ms: int, tz: Tz = None) -> int:
    """Midnight of the calendar day ms falls into."""
    return _midnight_ms(_as_date(ms, tz), tz)


def next_day_start_ms(ms: int, tz: Tz = None) -> int:
    """Midnight of the day after; days aren't always 24h long because of DST."""
    return _midnight_ms(_as_date(ms, tz) + timedelta(days=1), tz)


def now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


def tomorrow_midnight_ms(tz: Tz = None) -> int:
    return next_day_start_ms(now_ms(), tz)


def format_ms(ms: int, fmt: str = '%Y-%m-%d %H:%M:%S', tz: Tz = None) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=tz).strftime(fmt)
