"""
MODULE: ARRIVALS
Supplier delivery schedules and the per-DN arrival records that the batch jobs
reconcile (punctuality status, delivery compliance, security/warehouse timeline).
"""

from __future__ import annotations

import enum
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String, Time, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ams.db.base import Base
from ams.db.models.common import HasId, HasCreatedAt, HasUpdatedAt


def _values(enum_cls):
    return [m.value for m in enum_cls]


class ArrivalKind(str, enum.Enum):
    REGULAR = "regular"
    ADDITIONAL = "additional"


class ArrivalStatus(str, enum.Enum):
    """Punctuality of one arrival. Written only by the hourly status job."""
    PENDING = "pending"
    ON_TIME = "on_time"
    DELAY = "delay"
    ADVANCE = "advance"
    CANCELLED = "cancelled"


class DeliveryCompliance(str, enum.Enum):
    """Commitment outcome of one DN. Written only by the compliance job and its overrides."""
    PENDING = "pending"
    ON_COMMITMENT = "on_commitment"
    DELAY = "delay"
    NO_SHOW = "no_show"
    INCOMPLETE = "incomplete"
    PARTIAL = "partial"


def _kind_enum():
    return Enum(ArrivalKind, native_enum=False, length=16, values_callable=_values, validate_strings=True)


# ============= SCHEDULES =============

class ArrivalSchedule(Base, HasId, HasCreatedAt, HasUpdatedAt):
    """Expected arrival slot of a supplier.

    regular: recurring weekly slot (`day_name` + `arrival_time`)
    additional: one-off slot on `schedule_date`, booked when a late DN is rescheduled
    """
    __tablename__ = "arrival_schedule"

    bp_code: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    kind: Mapped[ArrivalKind] = mapped_column(_kind_enum(), default=ArrivalKind.REGULAR, nullable=False, index=True)
    day_name: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)  # monday..sunday
    schedule_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    arrival_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    departure_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    dock: Mapped[str | None] = mapped_column(String(25), nullable=True)


Index("ix_schedule_lookup", ArrivalSchedule.bp_code, ArrivalSchedule.day_name, ArrivalSchedule.kind)


# ============= ARRIVAL TRANSACTIONS =============

class ArrivalTransaction(Base, HasId, HasCreatedAt, HasUpdatedAt):
    """One delivery-note occurrence at the warehouse."""
    __tablename__ = "arrival_transaction"

    # DN & PO reference
    dn_number: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    po_number: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    kind: Mapped[ArrivalKind] = mapped_column(_kind_enum(), default=ArrivalKind.REGULAR, nullable=False, index=True)

    plan_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    plan_delivery_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    # SCM reference
    bp_code: Mapped[str | None] = mapped_column(String(25), nullable=True, index=True)
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vehicle_plate: Mapped[str | None] = mapped_column(String(50), nullable=True)

    schedule_id: Mapped[str | None] = mapped_column(ForeignKey("arrival_schedule.id", ondelete="SET NULL"), nullable=True, index=True)
    related_arrival_id: Mapped[str | None] = mapped_column(ForeignKey("arrival_transaction.id", ondelete="SET NULL"), nullable=True, index=True)

    # Security gate
    security_checkin_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    security_checkout_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    security_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # minutes

    # Warehouse
    warehouse_checkin_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    warehouse_checkout_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    warehouse_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # minutes
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Two independent state machines on one row
    status: Mapped[ArrivalStatus] = mapped_column(
        Enum(ArrivalStatus, native_enum=False, length=16, values_callable=_values, validate_strings=True),
        default=ArrivalStatus.PENDING, nullable=False, index=True,
    )
    delivery_compliance: Mapped[DeliveryCompliance] = mapped_column(
        Enum(DeliveryCompliance, native_enum=False, length=30, values_callable=_values, validate_strings=True),
        default=DeliveryCompliance.PENDING, nullable=False, index=True,
    )

    # Cross-database references
    pic_receiving: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    visitor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    schedule: Mapped[Optional[ArrivalSchedule]] = relationship(ArrivalSchedule, lazy="joined")
    related_arrival: Mapped[Optional["ArrivalTransaction"]] = relationship(
        "ArrivalTransaction", remote_side="ArrivalTransaction.id", backref="follow_up_arrivals",
    )

    @property
    def is_regular(self) -> bool:
        return self.kind == ArrivalKind.REGULAR

    @property
    def is_additional(self) -> bool:
        return self.kind == ArrivalKind.ADDITIONAL

    def calculate_security_duration(self) -> None:
        if self.security_checkin_time and self.security_checkout_time:
            self.security_duration = minutes_between(self.security_checkin_time, self.security_checkout_time)

    def calculate_warehouse_duration(self) -> None:
        if self.warehouse_checkin_time and self.warehouse_checkout_time:
            self.warehouse_duration = minutes_between(self.warehouse_checkin_time, self.warehouse_checkout_time)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, regardless of order."""
    return int(abs((end - start).total_seconds()) // 60)


Index("ix_arrival_supplier_delivery", ArrivalTransaction.bp_code, ArrivalTransaction.plan_delivery_date)

# A regular DN/PO exists once; additional copies reuse the DN/PO, one per rebooked schedule.
Index(
    "uq_arrival_regular_dn_po",
    ArrivalTransaction.dn_number, ArrivalTransaction.po_number,
    unique=True,
    sqlite_where=text("kind = 'regular'"),
    postgresql_where=text("kind = 'regular'"),
)
Index(
    "uq_arrival_additional_dn_po_schedule",
    ArrivalTransaction.dn_number, ArrivalTransaction.po_number, ArrivalTransaction.schedule_id,
    unique=True,
    sqlite_where=text("kind = 'additional'"),
    postgresql_where=text("kind = 'additional'"),
)
