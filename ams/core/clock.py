from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from ams import config


def now() -> datetime:
    """Wall-clock time in the warehouse timezone, as a naive datetime.

    Arrival timestamps are stored naive in local time, so comparisons must be too.
    """
    return datetime.now(ZoneInfo(config.TIMEZONE)).replace(tzinfo=None)


def today() -> date:
    return now().date()


def previous_month(ref: date | None = None) -> tuple[int, int]:
    ref = ref or today()
    if ref.month == 1:
        return 12, ref.year - 1
    return ref.month - 1, ref.year
