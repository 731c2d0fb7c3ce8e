from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session

from ams.db.external.visitor import Visitor
from ams.db.models.arrival import ArrivalKind, ArrivalSchedule, ArrivalTransaction

logger = logging.getLogger(__name__)

CHECKIN = "checkin"
CHECKOUT = "checkout"


# Blanks removed from plates on both sides of the match, so the SQL and Python
# normalisations agree.
PLATE_BLANKS = (" ", "\t", "\n", "\r", "\v", "\f", "\u00a0", "\u3000")
_PLATE_TABLE = str.maketrans("", "", "".join(PLATE_BLANKS))


def normalize_name(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed.lower() if trimmed else None


def normalize_plate(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.translate(_PLATE_TABLE).upper()
    return normalized or None


def plate_sql(column):
    """SQL counterpart of `normalize_plate`."""
    expr = column
    for blank in PLATE_BLANKS:
        expr = func.replace(expr, blank, "")
    return func.upper(expr)


def _event_time(event: Visitor, direction: str):
    return event.visitor_checkin if direction == CHECKIN else event.visitor_checkout


def _events_for_day(visitor_db: Session, day: date, direction: str) -> list[Visitor]:
    column = Visitor.visitor_checkin if direction == CHECKIN else Visitor.visitor_checkout
    return (visitor_db.query(Visitor)
            .filter(Visitor.visitor_date == day, column.isnot(None))
            .order_by(column.asc(), Visitor.visitor_id.asc())
            .all())


def _is_usable(event: Visitor) -> bool:
    return bool(
        (event.bp_code or "").strip()
        and normalize_name(event.visitor_name)
        and normalize_plate(event.visitor_vehicle)
    )


def candidate_query(db: Session, event: Visitor, day: date, direction: str) -> Query:
    """Arrivals on `day` for the event's supplier, driver and plate still missing this checkpoint."""
    name = event.visitor_name
    plate = event.visitor_vehicle
    q = (db.query(ArrivalTransaction)
         .outerjoin(ArrivalSchedule, ArrivalSchedule.id == ArrivalTransaction.schedule_id)
         .filter(
             ArrivalTransaction.bp_code == event.bp_code.strip(),
             or_(
                 and_(ArrivalTransaction.kind == ArrivalKind.REGULAR,
                      ArrivalTransaction.plan_delivery_date == day),
                 and_(ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
                      ArrivalSchedule.schedule_date == day),
             ),
             or_(ArrivalTransaction.driver_name == name,
                 func.lower(func.trim(ArrivalTransaction.driver_name)) == normalize_name(name)),
             or_(ArrivalTransaction.vehicle_plate == plate,
                 plate_sql(ArrivalTransaction.vehicle_plate) == normalize_plate(plate)),
         ))
    if direction == CHECKIN:
        q = q.filter(ArrivalTransaction.security_checkin_time.is_(None))
    else:
        q = q.filter(ArrivalTransaction.security_checkin_time.isnot(None),
                     ArrivalTransaction.security_checkout_time.is_(None))
    return q.order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())


def find_matching_arrivals(db: Session, event: Visitor, day: date, direction: str) -> list[ArrivalTransaction]:
    """Strict match including the planned slot time, then the same match without it.

    Every arrival satisfying the filters is returned; one gate visit may cover
    several DN rows sharing a slot.
    """
    q = candidate_query(db, event, day, direction)
    if event.plan_delivery_time is not None:
        strict = q.filter(ArrivalTransaction.plan_delivery_time == event.plan_delivery_time).all()
        if strict:
            return strict
    return q.all()


def apply_event(arrival: ArrivalTransaction, event: Visitor, direction: str) -> bool:
    changed = False
    reference = event.reference
    if arrival.visitor_id is None and reference:
        arrival.visitor_id = reference
        changed = True
    if direction == CHECKIN and arrival.security_checkin_time is None:
        arrival.security_checkin_time = event.visitor_checkin
        changed = True
    if direction == CHECKOUT and arrival.security_checkout_time is None:
        arrival.security_checkout_time = event.visitor_checkout
        arrival.calculate_security_duration()
        changed = True
    return changed


def sync_security_checkpoint(db: Session, visitor_db: Session, day: date, direction: str) -> dict:
    if direction not in (CHECKIN, CHECKOUT):
        raise ValueError(f"Unknown sync direction '{direction}'")

    counts: Counter = Counter()
    for event in _events_for_day(visitor_db, day, direction):
        if not _is_usable(event):
            counts["ignored"] += 1
            continue
        matches = find_matching_arrivals(db, event, day, direction)
        if not matches:
            counts["unmatched"] += 1
            logger.debug("No arrival for visitor %s (%s / %s)", event.visitor_id, event.visitor_name, event.visitor_vehicle)
            continue
        for arrival in matches:
            arrival_id = arrival.id
            counts["processed"] += 1
            try:
                if not apply_event(arrival, event, direction):
                    counts["skipped"] += 1
                    continue
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Failed to sync security %s for arrival %s from visitor %s", direction, arrival_id, event.visitor_id)
                counts["errors"] += 1
                continue
            counts["updated"] += 1

    result = {
        "processed": counts["processed"],
        "updated": counts["updated"],
        "skipped": counts["skipped"],
        "unmatched": counts["unmatched"],
        "ignored": counts["ignored"],
        "errors": counts["errors"],
    }
    logger.info("Visitor %s sync for %s: %s", direction, day.isoformat(), result)
    return result


def sync_security_checkin(db: Session, visitor_db: Session, day: date) -> dict:
    return sync_security_checkpoint(db, visitor_db, day, CHECKIN)


def sync_security_checkout(db: Session, visitor_db: Session, day: date) -> dict:
    return sync_security_checkpoint(db, visitor_db, day, CHECKOUT)
