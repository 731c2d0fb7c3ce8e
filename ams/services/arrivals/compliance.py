from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime

from sqlalchemy.orm import Session

from ams.core import clock
from ams.db.models.arrival import ArrivalKind, ArrivalSchedule, ArrivalTransaction, DeliveryCompliance
from ams.services._crud import get_arrival

logger = logging.getLogger(__name__)

# Worst outcome wins when two signals disagree.
COMPLIANCE_PRIORITY = {
    DeliveryCompliance.PENDING: 0,
    DeliveryCompliance.ON_COMMITMENT: 1,
    DeliveryCompliance.INCOMPLETE: 2,
    DeliveryCompliance.PARTIAL: 3,
    DeliveryCompliance.DELAY: 4,
    DeliveryCompliance.NO_SHOW: 5,
}

# States a late catch-up delivery turns into a documented delay.
CATCH_UP_STATES = (DeliveryCompliance.NO_SHOW, DeliveryCompliance.INCOMPLETE)


def apply_compliance(arrival: ArrivalTransaction, state: DeliveryCompliance) -> bool:
    """Move `arrival` to `state` unless it already holds a worse outcome.

    Returns True when the stored value changed.
    """
    current = arrival.delivery_compliance or DeliveryCompliance.PENDING
    if state == current:
        return False
    if current == DeliveryCompliance.PENDING or COMPLIANCE_PRIORITY[state] >= COMPLIANCE_PRIORITY[current]:
        arrival.delivery_compliance = state
        return True
    return False


def _override(arrival: ArrivalTransaction, state: DeliveryCompliance) -> bool:
    if arrival.delivery_compliance == state:
        return False
    arrival.delivery_compliance = state
    return True


def commitment_date(arrival: ArrivalTransaction) -> date | None:
    """Day the supplier committed to deliver this DN."""
    schedule = arrival.schedule
    if arrival.is_additional and schedule is not None and schedule.schedule_date:
        return schedule.schedule_date
    return arrival.plan_delivery_date


def delivery_reference_time(arrival: ArrivalTransaction) -> datetime | None:
    """Most conclusive timestamp showing the goods reached us."""
    return (arrival.completed_at
            or arrival.warehouse_checkout_time
            or arrival.warehouse_checkin_time
            or arrival.security_checkin_time)


def timeline_compliance(arrival: ArrivalTransaction) -> DeliveryCompliance | None:
    committed = commitment_date(arrival)
    reference = delivery_reference_time(arrival)
    if committed is None or reference is None:
        return None
    if reference.date() > committed:
        return DeliveryCompliance.DELAY
    return DeliveryCompliance.ON_COMMITMENT


def refresh_compliance_from_timeline(arrival: ArrivalTransaction) -> bool:
    outcome = timeline_compliance(arrival)
    if outcome is None:
        return False
    if outcome == DeliveryCompliance.DELAY:
        return apply_compliance(arrival, DeliveryCompliance.DELAY)
    if arrival.delivery_compliance == DeliveryCompliance.PENDING:
        arrival.delivery_compliance = DeliveryCompliance.ON_COMMITMENT
        return True
    return False


def _has_delivered_follow_up(db: Session, arrival: ArrivalTransaction) -> bool:
    return db.query(ArrivalTransaction.id).filter(
        ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
        ArrivalTransaction.related_arrival_id == arrival.id,
        ArrivalTransaction.warehouse_checkin_time.isnot(None),
    ).first() is not None


def evaluate_regular(db: Session, arrival: ArrivalTransaction, day: date) -> bool:
    has_delivery = bool(arrival.warehouse_checkin_time or arrival.completed_at)
    has_follow_up = _has_delivered_follow_up(db, arrival)

    if not has_delivery and not has_follow_up:
        if arrival.plan_delivery_date and day >= arrival.plan_delivery_date:
            return apply_compliance(arrival, DeliveryCompliance.NO_SHOW)
        return False
    if has_follow_up and not has_delivery:
        # Goods came in through the rebooked slot: late, not missing.
        return _override(arrival, DeliveryCompliance.DELAY)
    return refresh_compliance_from_timeline(arrival)


def _regular_for_day(db: Session, day: date) -> list[ArrivalTransaction]:
    return (db.query(ArrivalTransaction)
            .filter(ArrivalTransaction.kind == ArrivalKind.REGULAR,
                    ArrivalTransaction.plan_delivery_date == day)
            .order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())
            .all())


def _additional_for_day(db: Session, day: date) -> list[ArrivalTransaction]:
    return (db.query(ArrivalTransaction)
            .join(ArrivalSchedule, ArrivalSchedule.id == ArrivalTransaction.schedule_id)
            .filter(ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
                    ArrivalSchedule.schedule_date == day)
            .order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())
            .all())


def update_delivery_compliance(db: Session, day: date) -> dict:
    """End-of-day compliance pass for `day`.

    Pass 1 classifies every regular arrival planned on `day` and every additional
    arrival rebooked onto `day` from its own data. Pass 2 applies the catch-up
    correction to the regular arrivals those additional deliveries replace, once
    per regular arrival, so the result does not depend on row order.
    """
    counts: Counter = Counter()

    def _commit(arrival_id: str, changed: bool) -> bool:
        if not changed:
            return True
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to save delivery compliance for arrival %s", arrival_id)
            counts["errors"] += 1
            return False
        counts["updated"] += 1
        return True

    regular = _regular_for_day(db, day)
    additional = _additional_for_day(db, day)

    for arrival in regular + additional:
        arrival_id = arrival.id
        try:
            if arrival.is_regular:
                changed = evaluate_regular(db, arrival, day)
            else:
                changed = refresh_compliance_from_timeline(arrival)
            state = arrival.delivery_compliance
        except Exception:
            db.rollback()
            logger.exception("Failed to evaluate delivery compliance for arrival %s", arrival_id)
            counts["errors"] += 1
            continue
        if _commit(arrival_id, changed) and arrival.is_regular:
            counts[state.value] += 1

    related_ids = sorted({a.related_arrival_id for a in additional
                          if a.related_arrival_id and a.warehouse_checkin_time})
    for related_id in related_ids:
        try:
            related = db.get(ArrivalTransaction, related_id)
            if related is None or not related.is_regular:
                continue
            if related.delivery_compliance not in CATCH_UP_STATES:
                continue
            changed = _override(related, DeliveryCompliance.DELAY)
        except Exception:
            db.rollback()
            logger.exception("Failed to apply catch-up delay to arrival %s", related_id)
            counts["errors"] += 1
            continue
        if _commit(related_id, changed):
            counts["caught_up"] += 1

    result = {
        "updated": counts["updated"],
        "no_show": counts[DeliveryCompliance.NO_SHOW.value],
        "delay": counts[DeliveryCompliance.DELAY.value] + counts["caught_up"],
        "on_commitment": counts[DeliveryCompliance.ON_COMMITMENT.value],
        "caught_up": counts["caught_up"],
        "errors": counts["errors"],
    }
    logger.info("Delivery compliance for %s: %s", day.isoformat(), result)
    return result


# ---- Item-verification overrides ----


def mark_incomplete(db: Session, arrival_id: str) -> ArrivalTransaction:
    """Scanned quantity fell short of the DN quantity."""
    arrival = get_arrival(db, arrival_id)
    if apply_compliance(arrival, DeliveryCompliance.INCOMPLETE):
        db.commit()
    return arrival


def mark_partial(db: Session, arrival_id: str) -> ArrivalTransaction:
    arrival = get_arrival(db, arrival_id)
    if apply_compliance(arrival, DeliveryCompliance.PARTIAL):
        db.commit()
    return arrival


def mark_completed(db: Session, arrival_id: str, at: datetime | None = None) -> ArrivalTransaction:
    arrival = get_arrival(db, arrival_id)
    arrival.completed_at = at or clock.now()
    committed = commitment_date(arrival)
    if committed and arrival.completed_at.date() > committed:
        apply_compliance(arrival, DeliveryCompliance.DELAY)
    elif arrival.delivery_compliance == DeliveryCompliance.PENDING:
        arrival.delivery_compliance = DeliveryCompliance.ON_COMMITMENT
    db.commit()
    return arrival
