from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from ams.db.base import ExternalBase


class Visitor(ExternalBase):
    """One security-gate visit recorded by the visitor system."""

    __tablename__ = "visitor"

    visitor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    visitor_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    plan_delivery_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    visitor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    visitor_from: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bp_code: Mapped[str | None] = mapped_column(String(25), nullable=True, index=True)
    visitor_vehicle: Mapped[str | None] = mapped_column(String(50), nullable=True)
    visitor_checkin: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    visitor_checkout: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def reference(self) -> str | None:
        """External identifier usable as a link, or None for null/0/blank ids."""
        if self.visitor_id is None:
            return None
        ref = str(self.visitor_id).strip()
        if ref in ("", "0"):
            return None
        return ref
