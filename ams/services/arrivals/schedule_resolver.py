from __future__ import annotations

import re
from datetime import date, datetime, time

from dateutil import parser as dateparser

from ams.db.models.arrival import ArrivalSchedule, ArrivalTransaction

_TIME_ONLY = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")
_HAS_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

TimeLike = time | datetime | str


def resolve_scheduled_date(arrival: ArrivalTransaction, schedule: ArrivalSchedule | None = None) -> date | None:
    """Day the arrival is committed to.

    Additional arrivals use their one-off schedule date; everything else uses the
    planned delivery date, falling back to the day of the warehouse check-in.
    """
    if arrival.is_additional and schedule is not None and schedule.schedule_date:
        return schedule.schedule_date
    if arrival.plan_delivery_date:
        return arrival.plan_delivery_date
    if arrival.warehouse_checkin_time:
        return arrival.warehouse_checkin_time.date()
    return None


def resolve_scheduled_time(arrival: ArrivalTransaction, schedule: ArrivalSchedule | None = None) -> TimeLike | None:
    if schedule is not None and schedule.arrival_time:
        return schedule.arrival_time
    return arrival.plan_delivery_time


def combine(on: date, value: TimeLike) -> datetime | None:
    """Place a time-of-day, a full timestamp or a loose string onto `on`.

    A timestamp keeps its clock time but its own date is discarded. Returns None
    when a string cannot be parsed at all.
    """
    if isinstance(value, datetime):
        return value.replace(year=on.year, month=on.month, day=on.day, tzinfo=None)
    if isinstance(value, time):
        return datetime.combine(on, value.replace(tzinfo=None))

    raw = str(value).strip()
    if not raw:
        return None
    try:
        if _TIME_ONLY.match(raw):
            return datetime.combine(on, _parse_clock(raw))
        if _HAS_DATE.search(raw):
            parsed = dateparser.parse(raw)
            return parsed.replace(year=on.year, month=on.month, day=on.day, tzinfo=None)
        # Unknown shape: treat it as a clock time appended to the date.
        parsed = dateparser.parse(f"{on.isoformat()} {raw}")
        return parsed.replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None


def _parse_clock(raw: str) -> time:
    parts = [int(p) for p in raw.split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def resolve_scheduled_at(arrival: ArrivalTransaction, schedule: ArrivalSchedule | None = None) -> datetime | None:
    """Single scheduled instant for an arrival, or None when it cannot be resolved.

    Callers treat None as `pending`; it is not an error.
    """
    if schedule is None:
        schedule = arrival.schedule
    scheduled_date = resolve_scheduled_date(arrival, schedule)
    if scheduled_date is None:
        return None
    scheduled_time = resolve_scheduled_time(arrival, schedule)
    if scheduled_time is None or (isinstance(scheduled_time, str) and not scheduled_time.strip()):
        return None
    return combine(scheduled_date, scheduled_time)
