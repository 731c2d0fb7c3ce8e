from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from ams.db.models.arrival import ArrivalKind, ArrivalSchedule, ArrivalStatus, ArrivalTransaction
from ams.services.arrivals.schedule_resolver import resolve_scheduled_at

logger = logging.getLogger(__name__)

ON_TIME_WINDOW = timedelta(hours=1)


def classify_arrival_status(scheduled_at: datetime | None, actual_at: datetime | None) -> ArrivalStatus:
    """Punctuality of one arrival.

    advance: before the slot; on_time: within the slot hour; delay: an hour or more late.
    """
    if scheduled_at is None or actual_at is None:
        return ArrivalStatus.PENDING
    if actual_at < scheduled_at:
        return ArrivalStatus.ADVANCE
    if actual_at >= scheduled_at + ON_TIME_WINDOW:
        return ArrivalStatus.DELAY
    return ArrivalStatus.ON_TIME


def calculate_arrival_status(arrival: ArrivalTransaction) -> ArrivalStatus:
    # Only the warehouse check-in counts as arrival; the security gate is not enough.
    if not arrival.warehouse_checkin_time:
        return ArrivalStatus.PENDING
    return classify_arrival_status(resolve_scheduled_at(arrival), arrival.warehouse_checkin_time)


def arrivals_for_day(db: Session, day: date) -> list[ArrivalTransaction]:
    """Regular arrivals planned on `day` plus additional arrivals rebooked onto `day`."""
    regular = (db.query(ArrivalTransaction)
               .filter(ArrivalTransaction.kind == ArrivalKind.REGULAR,
                       ArrivalTransaction.plan_delivery_date == day)
               .order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())
               .all())
    additional = (db.query(ArrivalTransaction)
                  .join(ArrivalSchedule, ArrivalSchedule.id == ArrivalTransaction.schedule_id)
                  .filter(ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
                          ArrivalSchedule.schedule_date == day)
                  .order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())
                  .all())
    return regular + additional


def update_arrival_statuses(db: Session, day: date) -> dict:
    """Recompute `status` for every arrival due on `day`.

    Only rows whose status actually changes are written, so a second run over
    unchanged data writes nothing. One failing row is logged and skipped.
    """
    counts: Counter = Counter()
    for arrival in arrivals_for_day(db, day):
        if arrival.status == ArrivalStatus.CANCELLED:
            continue
        arrival_id = arrival.id
        try:
            status = calculate_arrival_status(arrival)
            if arrival.status == status:
                continue
            arrival.status = status
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to update arrival status for arrival %s", arrival_id)
            counts["errors"] += 1
            continue
        counts["updated"] += 1
        counts[status.value] += 1

    result = {
        "updated": counts["updated"],
        "on_time": counts[ArrivalStatus.ON_TIME.value],
        "delay": counts[ArrivalStatus.DELAY.value],
        "advance": counts[ArrivalStatus.ADVANCE.value],
        "errors": counts["errors"],
    }
    logger.info("Arrival status for %s: %s", day.isoformat(), result)
    return result
