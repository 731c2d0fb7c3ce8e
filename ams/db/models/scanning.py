"""
MODULE: ITEM VERIFICATION
Scan sessions and scanned items recorded by the receiving operators. The scan
UI lives elsewhere; scoring only reads the received quantities from here.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ams.core import clock
from ams.db.base import Base
from ams.db.models.common import HasId, HasCreatedAt
from ams.db.models.arrival import ArrivalTransaction


class DnScanSession(Base, HasId, HasCreatedAt):
    __tablename__ = "dn_scan_session"

    arrival_id: Mapped[str] = mapped_column(ForeignKey("arrival_transaction.id", ondelete="CASCADE"), nullable=False, index=True)
    dn_number: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    operator_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    session_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    session_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="in_progress", nullable=False, index=True)
    # in_progress|completed

    arrival: Mapped[ArrivalTransaction] = relationship()


class ScannedItem(Base, HasId, HasCreatedAt):
    __tablename__ = "scanned_item"

    session_id: Mapped[str | None] = mapped_column(ForeignKey("dn_scan_session.id", ondelete="CASCADE"), nullable=True, index=True)
    arrival_id: Mapped[str] = mapped_column(ForeignKey("arrival_transaction.id", ondelete="CASCADE"), nullable=False, index=True)
    dn_number: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    part_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    scanned_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lot_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    qr_raw_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    scanned_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scanned_at: Mapped[datetime] = mapped_column(DateTime, default=clock.now, nullable=False)


Index("ix_scanned_item_session_part", ScannedItem.session_id, ScannedItem.part_no)
