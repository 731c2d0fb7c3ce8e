from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ams.core.errors import DuplicateArrivalError
from ams.db.models.arrival import (
    ArrivalKind,
    ArrivalSchedule,
    ArrivalStatus,
    ArrivalTransaction,
    DeliveryCompliance,
)
from ams.services._crud import commit_refresh, get_arrival

logger = logging.getLogger(__name__)


def create_arrival(db: Session, **fields) -> ArrivalTransaction:
    """Persist a new arrival; the store rejects a second DN/PO of the same scope."""
    fields.setdefault("status", ArrivalStatus.PENDING)
    fields.setdefault("delivery_compliance", DeliveryCompliance.PENDING)
    arrival = ArrivalTransaction(**fields)
    try:
        return commit_refresh(db, arrival)
    except IntegrityError as e:
        db.rollback()
        raise DuplicateArrivalError(
            f"An arrival for DN {fields.get('dn_number')} / PO {fields.get('po_number')} already exists"
        ) from e


def duplicate_for_additional_schedule(db: Session, schedule: ArrivalSchedule, arrival_ids: list[str]) -> list[ArrivalTransaction]:
    """Rebook late DNs onto a one-off additional schedule.

    Each copy keeps the original DN/PO and planned date (so the lateness stays
    visible) and points back to the original. Compliance is left to the nightly job.
    """
    if schedule.kind != ArrivalKind.ADDITIONAL:
        raise ValueError("Arrivals can only be duplicated onto an additional schedule")

    originals = (db.query(ArrivalTransaction)
                 .filter(ArrivalTransaction.id.in_(arrival_ids))
                 .order_by(ArrivalTransaction.created_at.asc())
                 .all())
    created: list[ArrivalTransaction] = []
    for original in originals:
        if not original.is_regular:
            logger.warning("Skipping %s: only regular arrivals can be rebooked", original.id)
            continue
        existing = db.query(ArrivalTransaction).filter(
            ArrivalTransaction.dn_number == original.dn_number,
            ArrivalTransaction.po_number == original.po_number,
            ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
            ArrivalTransaction.schedule_id == schedule.id,
        ).first()
        if existing:
            continue
        copy = ArrivalTransaction(
            dn_number=original.dn_number,
            po_number=original.po_number,
            kind=ArrivalKind.ADDITIONAL,
            plan_delivery_date=original.plan_delivery_date,
            plan_delivery_time=original.plan_delivery_time,
            bp_code=original.bp_code,
            driver_name=original.driver_name,
            vehicle_plate=original.vehicle_plate,
            schedule_id=schedule.id,
            related_arrival_id=original.id,
            status=ArrivalStatus.PENDING,
            delivery_compliance=DeliveryCompliance.PENDING,
        )
        db.add(copy)
        created.append(copy)
    db.commit()
    return created


def record_warehouse_checkin(db: Session, arrival_id: str, at: datetime) -> ArrivalTransaction:
    arrival = get_arrival(db, arrival_id)
    arrival.warehouse_checkin_time = at
    arrival.calculate_warehouse_duration()
    db.commit()
    return arrival


def record_warehouse_checkout(db: Session, arrival_id: str, at: datetime) -> ArrivalTransaction:
    arrival = get_arrival(db, arrival_id)
    if arrival.warehouse_checkin_time is None:
        raise ValueError("Arrival has not checked in at the warehouse")
    arrival.warehouse_checkout_time = at
    arrival.calculate_warehouse_duration()
    db.commit()
    return arrival
