from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from datetime import date, datetime

from ams.core.errors import ArrivalNotFoundError
from ams.db.models.arrival import ArrivalTransaction
from ams.db.session import get_db
from ams.services.arrivals.compliance import mark_completed, mark_incomplete, mark_partial
from ams.services.arrivals.status import arrivals_for_day

router = APIRouter(prefix="/arrivals", tags=["arrivals"])


class CompleteIn(BaseModel):
    completed_at: datetime | None = None


def _arrival_out(a: ArrivalTransaction) -> dict:
    return {
        "id": a.id,
        "dn_number": a.dn_number,
        "po_number": a.po_number,
        "kind": a.kind.value,
        "bp_code": a.bp_code,
        "plan_delivery_date": a.plan_delivery_date.isoformat() if a.plan_delivery_date else None,
        "status": a.status.value,
        "delivery_compliance": a.delivery_compliance.value,
        "related_arrival_id": a.related_arrival_id,
        "visitor_id": a.visitor_id,
        "security_checkin_time": a.security_checkin_time.isoformat() if a.security_checkin_time else None,
        "security_checkout_time": a.security_checkout_time.isoformat() if a.security_checkout_time else None,
        "security_duration": a.security_duration,
        "warehouse_checkin_time": a.warehouse_checkin_time.isoformat() if a.warehouse_checkin_time else None,
        "warehouse_checkout_time": a.warehouse_checkout_time.isoformat() if a.warehouse_checkout_time else None,
        "warehouse_duration": a.warehouse_duration,
    }


@router.get("")
def list_arrivals(day: date, db: Session = Depends(get_db)):
    return [_arrival_out(a) for a in arrivals_for_day(db, day)]


@router.post("/{arrival_id}/incomplete")
def flag_incomplete(arrival_id: str, db: Session = Depends(get_db)):
    try:
        return _arrival_out(mark_incomplete(db, arrival_id))
    except ArrivalNotFoundError as e:
        raise HTTPException(404, str(e))


@router.post("/{arrival_id}/partial")
def flag_partial(arrival_id: str, db: Session = Depends(get_db)):
    try:
        return _arrival_out(mark_partial(db, arrival_id))
    except ArrivalNotFoundError as e:
        raise HTTPException(404, str(e))


@router.post("/{arrival_id}/complete")
def complete(arrival_id: str, payload: CompleteIn | None = None, db: Session = Depends(get_db)):
    try:
        return _arrival_out(mark_completed(db, arrival_id, at=payload.completed_at if payload else None))
    except ArrivalNotFoundError as e:
        raise HTTPException(404, str(e))
