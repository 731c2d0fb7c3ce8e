from datetime import date, datetime

import pytest

from ams.core.errors import DuplicateArrivalError
from ams.db.models.arrival import ArrivalKind, ArrivalStatus, ArrivalTransaction, DeliveryCompliance
from ams.services.arrivals.service import (
    create_arrival,
    duplicate_for_additional_schedule,
    record_warehouse_checkin,
    record_warehouse_checkout,
)


def new_arrival(db, **fields):
    fields.setdefault("dn_number", "DN-1")
    fields.setdefault("po_number", "PO-1")
    fields.setdefault("kind", ArrivalKind.REGULAR)
    fields.setdefault("bp_code", "SUP01")
    fields.setdefault("plan_delivery_date", date(2025, 1, 6))
    return create_arrival(db, **fields)


def test_new_arrival_starts_pending(db):
    arrival = new_arrival(db)

    assert arrival.status == ArrivalStatus.PENDING
    assert arrival.delivery_compliance == DeliveryCompliance.PENDING
    assert arrival.security_duration == 0


def test_second_regular_dn_po_is_rejected(db):
    new_arrival(db)

    with pytest.raises(DuplicateArrivalError):
        new_arrival(db)

    assert db.query(ArrivalTransaction).count() == 1


def test_rebooking_copies_onto_additional_schedule(db, make_schedule):
    original = new_arrival(db, driver_name="John Doe", vehicle_plate="B 1234 ABC")
    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=date(2025, 1, 8))

    [copy] = duplicate_for_additional_schedule(db, slot, [original.id])

    assert copy.kind == ArrivalKind.ADDITIONAL
    assert copy.related_arrival_id == original.id
    assert (copy.dn_number, copy.po_number) == (original.dn_number, original.po_number)
    assert copy.plan_delivery_date == original.plan_delivery_date
    assert copy.schedule_id == slot.id
    assert original.follow_up_arrivals == [copy]

    # same slot twice does not create a second copy
    assert duplicate_for_additional_schedule(db, slot, [original.id]) == []


def test_same_dn_po_on_two_additional_slots(db, make_schedule):
    original = new_arrival(db)
    first = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=date(2025, 1, 8))
    second = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=date(2025, 1, 9))

    duplicate_for_additional_schedule(db, first, [original.id])
    duplicate_for_additional_schedule(db, second, [original.id])

    assert db.query(ArrivalTransaction).filter(ArrivalTransaction.kind == ArrivalKind.ADDITIONAL).count() == 2


def test_rebooking_needs_additional_schedule(db, make_schedule):
    original = new_arrival(db)
    weekly = make_schedule(kind=ArrivalKind.REGULAR, day_name="monday")

    with pytest.raises(ValueError):
        duplicate_for_additional_schedule(db, weekly, [original.id])


def test_warehouse_timeline(db):
    arrival = new_arrival(db)

    with pytest.raises(ValueError):
        record_warehouse_checkout(db, arrival.id, datetime(2025, 1, 6, 9, 0))

    record_warehouse_checkin(db, arrival.id, datetime(2025, 1, 6, 8, 10))
    record_warehouse_checkout(db, arrival.id, datetime(2025, 1, 6, 9, 25))

    assert arrival.warehouse_duration == 75
