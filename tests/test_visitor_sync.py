from datetime import date, datetime, time

from ams.db.external.visitor import Visitor
from ams.db.models.arrival import ArrivalKind
from ams.services.visitor import sync
from ams.services.visitor.sync import (
    normalize_name,
    normalize_plate,
    sync_security_checkin,
    sync_security_checkout,
)

DAY = date(2025, 1, 6)


def add_visit(visitor_db, visitor_id="V001", **fields):
    fields.setdefault("visitor_date", DAY)
    fields.setdefault("bp_code", "SUP01")
    fields.setdefault("visitor_name", "John Doe")
    fields.setdefault("visitor_vehicle", "B 1234 ABC")
    visit = Visitor(visitor_id=visitor_id, **fields)
    visitor_db.add(visit)
    visitor_db.commit()
    return visit


def test_normalizers():
    assert normalize_name("  John Doe ") == "john doe"
    assert normalize_name("   ") is None
    assert normalize_plate("b 1234  abc") == "B1234ABC"
    assert normalize_plate("b\t1234\u3000abc\n") == "B1234ABC"
    assert normalize_plate(None) is None


def test_checkin_matches_on_normalized_driver_and_plate(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, visitor_name=" john doe ", visitor_vehicle="b1234abc",
              plan_delivery_time=time(8, 0), visitor_checkin=datetime(2025, 1, 6, 7, 55))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["updated"] == 1
    assert result["unmatched"] == 0
    assert arrival.security_checkin_time == datetime(2025, 1, 6, 7, 55)
    assert arrival.visitor_id == "V001"


def test_checkin_falls_back_when_slot_time_differs(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC", plan_delivery_time=time(8, 0))
    add_visit(visitor_db, plan_delivery_time=time(10, 0), visitor_checkin=datetime(2025, 1, 6, 9, 40))

    sync_security_checkin(db, visitor_db, DAY)

    assert arrival.security_checkin_time == datetime(2025, 1, 6, 9, 40)


def test_one_visit_covers_every_dn_of_the_truck(db, visitor_db, make_arrival):
    first = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    second = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 7, 55))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["updated"] == 2
    assert first.security_checkin_time == second.security_checkin_time == datetime(2025, 1, 6, 7, 55)


def test_rerun_does_not_overwrite(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 7, 55))
    sync_security_checkin(db, visitor_db, DAY)

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["updated"] == 0
    assert arrival.security_checkin_time == datetime(2025, 1, 6, 7, 55)


def test_additional_arrival_matches_on_schedule_date(db, visitor_db, make_arrival, make_schedule):
    slot = make_schedule(kind=ArrivalKind.ADDITIONAL, schedule_date=DAY)
    arrival = make_arrival(kind=ArrivalKind.ADDITIONAL, plan_delivery_date=date(2025, 1, 3), schedule_id=slot.id,
                           driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 11, 0))

    sync_security_checkin(db, visitor_db, DAY)

    assert arrival.security_checkin_time == datetime(2025, 1, 6, 11, 0)


def test_unmatched_and_unusable_visits(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, "V001", visitor_name="Someone Else", visitor_checkin=datetime(2025, 1, 6, 8, 0))
    add_visit(visitor_db, "V002", bp_code=None, visitor_checkin=datetime(2025, 1, 6, 8, 1))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["unmatched"] == 1
    assert result["ignored"] == 1
    assert result["updated"] == 0
    assert arrival.security_checkin_time is None


def test_zero_visitor_id_is_not_linked(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, "0", visitor_checkin=datetime(2025, 1, 6, 7, 55))

    sync_security_checkin(db, visitor_db, DAY)

    assert arrival.security_checkin_time == datetime(2025, 1, 6, 7, 55)
    assert arrival.visitor_id is None


def test_checkout_sets_duration(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC",
                           security_checkin_time=datetime(2025, 1, 6, 8, 5))
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 8, 5), visitor_checkout=datetime(2025, 1, 6, 9, 35))

    result = sync_security_checkout(db, visitor_db, DAY)

    assert result["updated"] == 1
    assert arrival.security_checkout_time == datetime(2025, 1, 6, 9, 35)
    assert arrival.security_duration == 90


def test_checkout_needs_checkin(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 8, 5), visitor_checkout=datetime(2025, 1, 6, 9, 35))

    result = sync_security_checkout(db, visitor_db, DAY)

    assert result["unmatched"] == 1
    assert arrival.security_checkout_time is None


def test_stored_plate_with_tabs_still_matches(db, visitor_db, make_arrival):
    arrival = make_arrival(driver_name="John Doe", vehicle_plate="B\t1234 ABC\n")
    add_visit(visitor_db, visitor_vehicle="B1234ABC", visitor_checkin=datetime(2025, 1, 6, 7, 55))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["updated"] == 1
    assert arrival.security_checkin_time == datetime(2025, 1, 6, 7, 55)


def test_slot_time_match_wins_over_relaxed_match(db, visitor_db, make_arrival):
    morning = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC", plan_delivery_time=time(8, 0))
    late_morning = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC", plan_delivery_time=time(10, 0))
    add_visit(visitor_db, plan_delivery_time=time(10, 0), visitor_checkin=datetime(2025, 1, 6, 9, 50))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["updated"] == 1
    assert late_morning.security_checkin_time == datetime(2025, 1, 6, 9, 50)
    assert morning.security_checkin_time is None


def test_one_failing_arrival_does_not_stop_the_sync(db, visitor_db, make_arrival, monkeypatch):
    broken = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    other = make_arrival(driver_name="John Doe", vehicle_plate="B 1234 ABC")
    broken_id = broken.id
    apply = sync.apply_event

    def fail_one(arrival, event, direction):
        if arrival.id == broken_id:
            raise RuntimeError("row locked")
        return apply(arrival, event, direction)

    monkeypatch.setattr(sync, "apply_event", fail_one)
    add_visit(visitor_db, visitor_checkin=datetime(2025, 1, 6, 7, 55))

    result = sync_security_checkin(db, visitor_db, DAY)

    assert result["processed"] == 2
    assert result["updated"] == 1
    assert result["errors"] == 1
    assert other.security_checkin_time == datetime(2025, 1, 6, 7, 55)
    assert broken.security_checkin_time is None
