"""
Read-only mappings of the SCM delivery-note database.

Column names follow the SCM schema; only the columns this service reads are mapped.
"""

from __future__ import annotations

from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ams.db.base import ExternalBase


class ScmDnHeader(ExternalBase):
    __tablename__ = "dn_header"

    no_dn: Mapped[str] = mapped_column(String(25), primary_key=True)
    po_no: Mapped[str | None] = mapped_column(String(25), nullable=True)
    supplier_code: Mapped[str | None] = mapped_column(String(25), nullable=True, index=True)
    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    plan_delivery_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    status_desc: Mapped[str | None] = mapped_column(String(32), nullable=True)  # Open|Closed|...
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plat_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    details: Mapped[list["ScmDnDetail"]] = relationship(back_populates="header")


class ScmDnDetail(ExternalBase):
    __tablename__ = "dn_detail"

    dn_detail_no: Mapped[int] = mapped_column(Integer, primary_key=True)
    no_dn: Mapped[str] = mapped_column(ForeignKey("dn_header.no_dn"), nullable=False, index=True)
    dn_line: Mapped[int | None] = mapped_column(Integer, nullable=True)
    part_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    dn_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    receipt_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dn_unit: Mapped[str | None] = mapped_column(String(16), nullable=True)

    header: Mapped[ScmDnHeader] = relationship(back_populates="details")


class ScmBusinessPartner(ExternalBase):
    __tablename__ = "business_partner"

    bp_code: Mapped[str] = mapped_column(String(25), primary_key=True)
    bp_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bp_role_desc: Mapped[str | None] = mapped_column(String(32), nullable=True)  # Supplier|Customer
    bp_status_desc: Mapped[str | None] = mapped_column(String(32), nullable=True)  # Active|Inactive
    bp_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    adr_line_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
