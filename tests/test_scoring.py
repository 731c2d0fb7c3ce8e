from decimal import Decimal

from ams.services.performance.scoring import (
    category_for_score,
    delay_index,
    final_score,
    fulfillment_index,
    fulfillment_percentage,
    grade_for_score,
)


def test_fulfillment_percentage():
    assert fulfillment_percentage(200, 150) == Decimal("75.00")
    assert fulfillment_percentage(3, 1) == Decimal("33.33")
    assert fulfillment_percentage(0, 10) == Decimal("0")


def test_fulfillment_bands():
    assert fulfillment_index(Decimal("100")) == 0
    assert fulfillment_index(Decimal("95")) == 0
    assert fulfillment_index(Decimal("94.99")) == 2
    assert fulfillment_index(Decimal("85")) == 2
    assert fulfillment_index(Decimal("75")) == 4
    assert fulfillment_index(Decimal("65")) == 6
    assert fulfillment_index(Decimal("64.99")) == 8
    assert fulfillment_index(Decimal("0")) == 8


def test_delay_bands():
    assert delay_index(1) == 2
    assert delay_index(2) == 4
    assert delay_index(3) == 6
    assert delay_index(4) == 10
    assert delay_index(0) == 10


def test_final_score_is_clamped():
    assert final_score(0) == 100
    assert final_score(18) == 82
    assert final_score(250) == 0


def test_grade_and_category_use_different_scales():
    assert grade_for_score(100) == "A"
    assert grade_for_score(99) == "B"
    assert grade_for_score(80) == "B"
    assert grade_for_score(79) == "C"
    assert grade_for_score(60) == "C"
    assert grade_for_score(59) == "D"

    assert category_for_score(95) == "best"
    assert category_for_score(90) == "best"
    assert category_for_score(89) == "medium"
    assert category_for_score(70) == "medium"
    assert category_for_score(69) == "worst"
