"""Banding rules of the monthly supplier scorecard.

Grade bands (100/80/60) and category bands (90/70) are two separate
scales over the same final score; they are not meant to agree.
"""
from __future__ import annotations

from decimal import Decimal


def fulfillment_percentage(dn_qty: int, receipt_qty: int) -> Decimal:
    if not dn_qty:
        return Decimal("0")
    return round(Decimal(receipt_qty) / Decimal(dn_qty) * 100, 2)


def fulfillment_index(percentage) -> int:
    """95-100% → 0, 85-94% → 2, 75-84% → 4, 65-74% → 6, below → 8"""
    if percentage >= 95:
        return 0
    if percentage >= 85:
        return 2
    if percentage >= 75:
        return 4
    if percentage >= 65:
        return 6
    return 8


def delay_index(delay_days: int) -> int:
    """1 day → 2, 2 days → 4, 3 days → 6, anything else (incl. unknown/0) → 10"""
    return {1: 2, 2: 4, 3: 6}.get(delay_days, 10)


def final_score(total_index: int) -> int:
    return min(100, max(0, 100 - total_index))


def grade_for_score(score: int) -> str:
    if score >= 100:
        return "A"
    if score >= 80:
        return "B"
    if score >= 60:
        return "C"
    return "D"


def category_for_score(score: int) -> str:
    if score >= 90:
        return "best"
    if score >= 70:
        return "medium"
    return "worst"
