from __future__ import annotations

import calendar
import logging
from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from ams.core import clock
from ams.core.errors import InvalidPeriodError
from ams.db.external.scm import ScmDnDetail, ScmDnHeader
from ams.db.models.arrival import ArrivalKind, ArrivalTransaction, DeliveryCompliance
from ams.db.models.performance import DeliveryPerformance
from ams.db.models.scanning import ScannedItem
from ams.services.performance.scoring import (
    category_for_score,
    delay_index,
    final_score,
    fulfillment_index,
    fulfillment_percentage,
    grade_for_score,
)

logger = logging.getLogger(__name__)


def resolve_period(month: int | None = None, year: int | None = None) -> tuple[int, int]:
    """Fill in a missing month/year from the previous calendar month."""
    if month is None or year is None:
        prev_month, prev_year = clock.previous_month()
        month = month if month is not None else prev_month
        year = year if year is not None else prev_year
    if not 1 <= int(month) <= 12:
        raise InvalidPeriodError("Month must be between 1 and 12")
    return int(month), int(year)


def period_bounds(month: int, year: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def suppliers_in_period(scm_db: Session, start: date, end: date) -> list[str]:
    rows = (scm_db.query(ScmDnHeader.supplier_code)
            .filter(ScmDnHeader.plan_delivery_date.between(start, end),
                    ScmDnHeader.supplier_code.isnot(None))
            .distinct()
            .all())
    return sorted(r[0] for r in rows)


def calculate_fulfillment(db: Session, scm_db: Session, bp_code: str, start: date, end: date) -> dict:
    """DN quantity ordered vs. quantity actually scanned in, for DNs planned in the period."""
    dn_filter = (ScmDnHeader.supplier_code == bp_code, ScmDnHeader.plan_delivery_date.between(start, end))
    total_dn_qty = (scm_db.query(func.coalesce(func.sum(ScmDnDetail.dn_qty), 0))
                    .select_from(ScmDnDetail)
                    .join(ScmDnHeader, ScmDnHeader.no_dn == ScmDnDetail.no_dn)
                    .filter(*dn_filter)
                    .scalar()) or 0

    dn_numbers = [r[0] for r in scm_db.query(ScmDnHeader.no_dn).filter(*dn_filter).all()]
    total_receipt_qty = 0
    if dn_numbers:
        total_receipt_qty = (db.query(func.coalesce(func.sum(ScannedItem.scanned_quantity), 0))
                             .select_from(ScannedItem)
                             .join(ArrivalTransaction, ArrivalTransaction.id == ScannedItem.arrival_id)
                             .filter(ScannedItem.dn_number.in_(dn_numbers))
                             .scalar()) or 0

    return {
        "total_dn_qty": int(total_dn_qty),
        "total_receipt_qty": int(total_receipt_qty),
        "percentage": fulfillment_percentage(int(total_dn_qty), int(total_receipt_qty)),
    }


def calculate_delay_days(db: Session, arrival: ArrivalTransaction) -> int:
    """Days between the original plan date and the rebooked additional slot."""
    follow_up = (db.query(ArrivalTransaction)
                 .filter(ArrivalTransaction.related_arrival_id == arrival.id,
                         ArrivalTransaction.kind == ArrivalKind.ADDITIONAL,
                         ArrivalTransaction.schedule_id.isnot(None))
                 .order_by(ArrivalTransaction.created_at.asc(), ArrivalTransaction.id.asc())
                 .first())
    if follow_up is None or follow_up.schedule is None or follow_up.schedule.schedule_date is None:
        return 0
    if arrival.plan_delivery_date is None:
        return 0
    return max(0, (follow_up.schedule.schedule_date - arrival.plan_delivery_date).days)


def calculate_on_time_delivery(db: Session, bp_code: str, start: date, end: date) -> dict:
    arrivals = (db.query(ArrivalTransaction)
                .filter(ArrivalTransaction.kind == ArrivalKind.REGULAR,
                        ArrivalTransaction.bp_code == bp_code,
                        ArrivalTransaction.plan_delivery_date.between(start, end))
                .all())

    on_time = sum(1 for a in arrivals if a.delivery_compliance == DeliveryCompliance.ON_COMMITMENT)
    total_delay_days = 0
    total_index = 0
    for arrival in arrivals:
        if arrival.delivery_compliance != DeliveryCompliance.DELAY:
            continue
        days = calculate_delay_days(db, arrival)
        total_delay_days += days
        total_index += delay_index(days)

    return {
        "total_deliveries": len(arrivals),
        "on_time_deliveries": on_time,
        "total_delay_days": total_delay_days,
        "total_index": total_index,
    }


def calculate_supplier_performance(db: Session, scm_db: Session, bp_code: str, month: int, year: int) -> DeliveryPerformance:
    start, end = period_bounds(month, year)
    fulfillment = calculate_fulfillment(db, scm_db, bp_code, start, end)
    delivery = calculate_on_time_delivery(db, bp_code, start, end)

    f_index = fulfillment_index(fulfillment["percentage"])
    d_index = delivery["total_index"]
    total_index = f_index + d_index
    score = final_score(total_index)

    perf = (db.query(DeliveryPerformance)
            .filter(DeliveryPerformance.bp_code == bp_code,
                    DeliveryPerformance.period_month == month,
                    DeliveryPerformance.period_year == year)
            .first())
    if perf is None:
        perf = DeliveryPerformance(bp_code=bp_code, period_month=month, period_year=year)
        db.add(perf)

    perf.total_dn_qty = fulfillment["total_dn_qty"]
    perf.total_receipt_qty = fulfillment["total_receipt_qty"]
    perf.fulfillment_percentage = fulfillment["percentage"]
    perf.fulfillment_index = f_index
    perf.total_deliveries = delivery["total_deliveries"]
    perf.on_time_deliveries = delivery["on_time_deliveries"]
    perf.total_delay_days = delivery["total_delay_days"]
    perf.delivery_index = d_index
    perf.total_index = total_index
    perf.final_score = score
    perf.performance_grade = grade_for_score(score)
    perf.calculated_at = clock.now()
    db.commit()
    return perf


def update_ranking_and_category(db: Session, month: int, year: int) -> int:
    """Second phase: rank every scorecard of the period once all are written.

    Equal scores are ranked by supplier code so reruns are stable.
    """
    rows = (db.query(DeliveryPerformance)
            .filter(DeliveryPerformance.period_month == month,
                    DeliveryPerformance.period_year == year)
            .order_by(DeliveryPerformance.final_score.desc(), DeliveryPerformance.bp_code.asc())
            .all())
    for ranking, perf in enumerate(rows, start=1):
        perf.ranking = ranking
        perf.category = category_for_score(perf.final_score)
    db.commit()
    return len(rows)


def calculate_performance(db: Session, scm_db: Session, month: int | None = None, year: int | None = None) -> dict:
    month, year = resolve_period(month, year)
    start, end = period_bounds(month, year)
    suppliers = suppliers_in_period(scm_db, start, end)
    logger.info("Calculating delivery performance for %02d/%d (%d suppliers)", month, year, len(suppliers))

    calculated = 0
    errors = 0
    for bp_code in suppliers:
        try:
            calculate_supplier_performance(db, scm_db, bp_code, month, year)
        except Exception:
            db.rollback()
            logger.exception("Error calculating performance for supplier %s", bp_code)
            errors += 1
            continue
        calculated += 1

    ranked = update_ranking_and_category(db, month, year)
    return {
        "month": month,
        "year": year,
        "suppliers": len(suppliers),
        "calculated": calculated,
        "ranked": ranked,
        "errors": errors,
    }


def get_performance_list(db: Session, month: int, year: int, limit: int | None = None) -> list[DeliveryPerformance]:
    q = (db.query(DeliveryPerformance)
         .filter(DeliveryPerformance.period_month == month,
                 DeliveryPerformance.period_year == year)
         .order_by(DeliveryPerformance.final_score.desc(), DeliveryPerformance.bp_code.asc()))
    if limit is not None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        q = q.limit(limit)
    return q.all()


def get_performance_detail(db: Session, bp_code: str, month: int, year: int) -> DeliveryPerformance | None:
    return (db.query(DeliveryPerformance)
            .filter(DeliveryPerformance.bp_code == bp_code,
                    DeliveryPerformance.period_month == month,
                    DeliveryPerformance.period_year == year)
            .first())
