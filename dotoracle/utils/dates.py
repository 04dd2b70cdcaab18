"""Calendar helpers.

Day keys are `YYYY-MM-DD` in the device's local timezone; month keys are
`YYYY-MM`. Day differences are computed on the calendar dates themselves so
DST shifts never produce a 23 or 25 hour "day".
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

DATE_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


def now_ms() -> int:
    return int(time.time() * 1000)


def local_date_key(when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return when.strftime("%Y-%m-%d")


def month_key(when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return when.strftime("%Y-%m")


def parse_date_key(date_key: str) -> Optional[date]:
    """Parse a `YYYY-MM-DD` key; returns None for malformed or impossible dates."""
    if not date_key:
        return None
    match = DATE_KEY_RE.match(date_key)
    if not match:
        return None
    year, month, day = (int(x) for x in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_date_key(value: str) -> bool:
    return parse_date_key(value) is not None


def parse_month_key(key: str) -> Optional[tuple]:
    match = MONTH_KEY_RE.match(key or "")
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if month < 1 or month > 12:
        return None
    return year, month


def day_difference(earlier: str, later: str) -> Optional[int]:
    """Whole calendar days from `earlier` to `later`, or None if either key is invalid."""
    a = parse_date_key(earlier)
    b = parse_date_key(later)
    if a is None or b is None:
        return None
    return (b - a).days


def previous_month_key(key: str) -> str:
    parsed = parse_month_key(key)
    if not parsed:
        return key
    year, month = parsed
    month -= 1
    if month < 1:
        month, year = 12, year - 1
    return f"{year}-{month:02d}"


def next_month_key(key: str) -> str:
    parsed = parse_month_key(key)
    if not parsed:
        return key
    year, month = parsed
    month += 1
    if month > 12:
        month, year = 1, year + 1
    return f"{year}-{month:02d}"


def dates_in_month(date_keys: Iterable[str], target_month: str) -> List[str]:
    prefix = f"{target_month}-"
    return sorted({k for k in date_keys if k.startswith(prefix)})


def next_utc_midnight_ms(now: Optional[int] = None) -> int:
    """Epoch milliseconds of the next UTC midnight after `now`."""
    now = now_ms() if now is None else now
    current = datetime.fromtimestamp(now / 1000, tz=timezone.utc)
    midnight = datetime(current.year, current.month, current.day, tzinfo=timezone.utc) + timedelta(days=1)
    return int(midnight.timestamp() * 1000)
