from datetime import date, datetime, time

import pytest

from ams.core.errors import ArrivalNotFoundError
from ams.db.models.arrival import ArrivalKind, ArrivalTransaction, DeliveryCompliance
from ams.services.arrivals import compliance
from ams.services.arrivals.compliance import (
    apply_compliance,
    mark_completed,
    mark_incomplete,
    update_delivery_compliance,
)

DAY = date(2025, 1, 6)
CATCH_UP_DAY = date(2025, 1, 8)


def test_worst_outcome_wins():
    arrival = ArrivalTransaction(delivery_compliance=DeliveryCompliance.PENDING)

    assert apply_compliance(arrival, DeliveryCompliance.ON_COMMITMENT)
    assert apply_compliance(arrival, DeliveryCompliance.DELAY)
    assert not apply_compliance(arrival, DeliveryCompliance.ON_COMMITMENT)
    assert arrival.delivery_compliance == DeliveryCompliance.DELAY


def test_day_end_classification(db, make_arrival):
    missing = make_arrival()
    delivered = make_arrival(warehouse_checkin_time=datetime(2025, 1, 6, 9, 0))
    late = make_arrival(warehouse_checkin_time=datetime(2025, 1, 7, 9, 0))

    result = update_delivery_compliance(db, DAY)

    assert missing.delivery_compliance == DeliveryCompliance.NO_SHOW
    assert delivered.delivery_compliance == DeliveryCompliance.ON_COMMITMENT
    assert late.delivery_compliance == DeliveryCompliance.DELAY
    assert result["updated"] == 3
    assert result["no_show"] == 1
    assert result["on_commitment"] == 1
    assert result["delay"] == 1
    assert result["errors"] == 0


def test_no_show_caught_up_by_additional_delivery(db, make_arrival, make_schedule):
    original = make_arrival(dn_number="DN-A", po_number="PO-A")
    update_delivery_compliance(db, DAY)
    assert original.delivery_compliance == DeliveryCompliance.NO_SHOW

    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=CATCH_UP_DAY, arrival_time=time(10, 0))
    follow_up = make_arrival(dn_number="DN-A", po_number="PO-A", kind=ArrivalKind.ADDITIONAL,
                             schedule_id=slot.id, related_arrival_id=original.id,
                             warehouse_checkin_time=datetime(2025, 1, 8, 10, 5))

    result = update_delivery_compliance(db, CATCH_UP_DAY)

    assert original.delivery_compliance == DeliveryCompliance.DELAY
    assert follow_up.delivery_compliance == DeliveryCompliance.ON_COMMITMENT
    assert result["caught_up"] == 1
    assert result["errors"] == 0


def test_rerun_of_original_day_after_catch_up_stays_delay(db, make_arrival, make_schedule):
    original = make_arrival(dn_number="DN-A", po_number="PO-A",
                            delivery_compliance=DeliveryCompliance.NO_SHOW)
    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=CATCH_UP_DAY)
    make_arrival(dn_number="DN-A", po_number="PO-A", kind=ArrivalKind.ADDITIONAL,
                 schedule_id=slot.id, related_arrival_id=original.id,
                 warehouse_checkin_time=datetime(2025, 1, 8, 10, 5))

    update_delivery_compliance(db, DAY)

    assert original.delivery_compliance == DeliveryCompliance.DELAY


def test_incomplete_is_caught_up(db, make_arrival, make_schedule):
    original = make_arrival(dn_number="DN-B", po_number="PO-B",
                            warehouse_checkin_time=datetime(2025, 1, 6, 9, 0),
                            delivery_compliance=DeliveryCompliance.INCOMPLETE)
    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=CATCH_UP_DAY)
    make_arrival(dn_number="DN-B", po_number="PO-B", kind=ArrivalKind.ADDITIONAL,
                 schedule_id=slot.id, related_arrival_id=original.id,
                 warehouse_checkin_time=datetime(2025, 1, 8, 9, 0))

    update_delivery_compliance(db, CATCH_UP_DAY)

    assert original.delivery_compliance == DeliveryCompliance.DELAY


def test_several_follow_ups_catch_up_once(db, make_arrival, make_schedule):
    original = make_arrival(dn_number="DN-C", po_number="PO-C",
                            delivery_compliance=DeliveryCompliance.NO_SHOW)
    for hour in (9, 14):
        slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=CATCH_UP_DAY, arrival_time=time(hour, 0))
        make_arrival(dn_number="DN-C", po_number="PO-C", kind=ArrivalKind.ADDITIONAL,
                     schedule_id=slot.id, related_arrival_id=original.id,
                     warehouse_checkin_time=datetime(2025, 1, 8, hour, 0))

    result = update_delivery_compliance(db, CATCH_UP_DAY)

    assert result["caught_up"] == 1
    assert original.delivery_compliance == DeliveryCompliance.DELAY


def test_additional_without_delivery_stays_pending(db, make_arrival, make_schedule):
    original = make_arrival(dn_number="DN-D", po_number="PO-D",
                            delivery_compliance=DeliveryCompliance.NO_SHOW)
    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=CATCH_UP_DAY)
    follow_up = make_arrival(dn_number="DN-D", po_number="PO-D", kind=ArrivalKind.ADDITIONAL,
                             schedule_id=slot.id, related_arrival_id=original.id)

    update_delivery_compliance(db, CATCH_UP_DAY)

    assert follow_up.delivery_compliance == DeliveryCompliance.PENDING
    assert original.delivery_compliance == DeliveryCompliance.NO_SHOW


def test_incomplete_override_survives_day_end(db, make_arrival):
    arrival = make_arrival(warehouse_checkin_time=datetime(2025, 1, 6, 9, 0))
    update_delivery_compliance(db, DAY)
    assert arrival.delivery_compliance == DeliveryCompliance.ON_COMMITMENT

    mark_incomplete(db, arrival.id)
    update_delivery_compliance(db, DAY)

    assert arrival.delivery_compliance == DeliveryCompliance.INCOMPLETE


def test_completed_late_is_delay(db, make_arrival):
    arrival = make_arrival(warehouse_checkin_time=datetime(2025, 1, 6, 22, 0))

    mark_completed(db, arrival.id, at=datetime(2025, 1, 7, 1, 0))

    assert arrival.delivery_compliance == DeliveryCompliance.DELAY
    assert arrival.completed_at == datetime(2025, 1, 7, 1, 0)


def test_override_on_missing_arrival(db):
    with pytest.raises(ArrivalNotFoundError):
        mark_incomplete(db, "missing")


def test_one_failing_arrival_does_not_stop_day_end(db, make_arrival, monkeypatch):
    broken = make_arrival()
    missing = make_arrival()
    broken_id = broken.id
    evaluate = compliance.evaluate_regular

    def fail_one(session, arrival, day):
        if arrival.id == broken_id:
            raise RuntimeError("lock timeout")
        return evaluate(session, arrival, day)

    monkeypatch.setattr(compliance, "evaluate_regular", fail_one)

    result = update_delivery_compliance(db, DAY)

    assert result["errors"] == 1
    assert result["no_show"] == 1
    assert missing.delivery_compliance == DeliveryCompliance.NO_SHOW
    assert broken.delivery_compliance == DeliveryCompliance.PENDING
