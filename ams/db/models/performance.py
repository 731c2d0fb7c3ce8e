"""
MODULE: DELIVERY PERFORMANCE
Monthly supplier scorecard. One row per (supplier, month, year), rewritten in
full on every calculation run.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ams.db.base import Base
from ams.db.models.common import HasId, HasCreatedAt, HasUpdatedAt


class DeliveryPerformance(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "delivery_performance"
    __table_args__ = (
        UniqueConstraint("bp_code", "period_month", "period_year", name="uq_delivery_performance_supplier_period"),
    )

    bp_code: Mapped[str] = mapped_column(String(25), nullable=False, index=True)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # On-time delivery
    total_deliveries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_time_deliveries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_delay_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Order fulfillment
    total_dn_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_receipt_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fulfillment_percentage: Mapped[Decimal] = mapped_column(Numeric(7, 2), default=Decimal("100.00"), nullable=False)

    # Index & score
    fulfillment_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    delivery_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    final_score: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    performance_grade: Mapped[str] = mapped_column(String(1), default="A", nullable=False, index=True)  # A|B|C|D

    # Ranking (second phase)
    ranking: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(8), default="medium", nullable=False, index=True)  # best|medium|worst

    calculated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def on_time_percentage(self) -> float:
        if not self.total_deliveries:
            return 0.0
        return round(self.on_time_deliveries / self.total_deliveries * 100, 2)

    @property
    def delay_percentage(self) -> float:
        if not self.total_deliveries:
            return 0.0
        late = self.total_deliveries - self.on_time_deliveries
        return round(late / self.total_deliveries * 100, 2)


Index("ix_delivery_performance_period_ranking", DeliveryPerformance.period_year, DeliveryPerformance.period_month, DeliveryPerformance.ranking)
Index("ix_delivery_performance_final_score", DeliveryPerformance.final_score)
