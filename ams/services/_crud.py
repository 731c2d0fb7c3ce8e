from __future__ import annotations
from sqlalchemy.orm import Session

from ams.core.errors import ArrivalNotFoundError
from ams.db.models.arrival import ArrivalTransaction

def commit_refresh(db: Session, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def get_arrival(db: Session, arrival_id: str) -> ArrivalTransaction:
    arrival = db.get(ArrivalTransaction, arrival_id)
    if arrival is None:
        raise ArrivalNotFoundError(f"Arrival {arrival_id} not found")
    return arrival
