from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ams.core.errors import InvalidPeriodError
from ams.db.models.performance import DeliveryPerformance
from ams.db.session import get_db
from ams.services.performance.service import get_performance_detail, get_performance_list, resolve_period
from ams.services.suppliers.directory import SupplierDirectory, get_supplier_directory

router = APIRouter(prefix="/delivery-performance", tags=["delivery-performance"])


def _period(month: int | None, year: int | None) -> tuple[int, int]:
    try:
        return resolve_period(month, year)
    except InvalidPeriodError as e:
        raise HTTPException(400, str(e))


def _perf_out(p: DeliveryPerformance, directory: SupplierDirectory) -> dict:
    return {
        "bp_code": p.bp_code,
        "supplier_name": directory.name_for(p.bp_code),
        "period_month": p.period_month,
        "period_year": p.period_year,
        "total_deliveries": p.total_deliveries,
        "on_time_deliveries": p.on_time_deliveries,
        "on_time_percentage": p.on_time_percentage,
        "delay_percentage": p.delay_percentage,
        "total_delay_days": p.total_delay_days,
        "total_dn_qty": p.total_dn_qty,
        "total_receipt_qty": p.total_receipt_qty,
        "fulfillment_percentage": float(p.fulfillment_percentage),
        "fulfillment_index": p.fulfillment_index,
        "delivery_index": p.delivery_index,
        "total_index": p.total_index,
        "final_score": p.final_score,
        "performance_grade": p.performance_grade,
        "ranking": p.ranking,
        "category": p.category,
        "calculated_at": p.calculated_at.isoformat() if p.calculated_at else None,
    }


@router.get("")
def list_performance(
    month: int | None = None,
    year: int | None = None,
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    directory: SupplierDirectory = Depends(get_supplier_directory),
):
    month, year = _period(month, year)
    return [_perf_out(p, directory) for p in get_performance_list(db, month, year, limit=limit)]


@router.get("/{bp_code}")
def performance_detail(
    bp_code: str,
    month: int | None = None,
    year: int | None = None,
    db: Session = Depends(get_db),
    directory: SupplierDirectory = Depends(get_supplier_directory),
):
    month, year = _period(month, year)
    perf = get_performance_detail(db, bp_code, month, year)
    if not perf:
        raise HTTPException(404, "not found")
    return _perf_out(perf, directory)
