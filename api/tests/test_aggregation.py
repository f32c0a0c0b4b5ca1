from dataclasses import dataclass
from decimal import Decimal

from receipt_hub.services.aggregation import (
    compute_totals,
    item_difference,
    item_value_difference,
    summarize_differences,
)


@dataclass
class Line:
    quantity: int = 1
    cost_price: Decimal = Decimal("0")
    inventory: Decimal = Decimal("0")
    actual_inventory: Decimal = Decimal("0")


def test_totals_for_two_lines():
    """
    GIVEN lines 5 x 100 and 2 x 50
    THEN quantity 7, two products, amount 600
    """
    items = [Line(quantity=5, cost_price=Decimal("100")), Line(quantity=2, cost_price=Decimal("50"))]

    totals = compute_totals(items)

    assert totals.quantity == 7
    assert totals.total_product == 2
    assert totals.total_amount == Decimal("600")


def test_totals_are_stable_across_calls():
    items = [Line(quantity=3, cost_price=Decimal("12.50")), Line(quantity=1, cost_price=Decimal("0.99"))]

    assert compute_totals(items) == compute_totals(items)
    assert compute_totals(items).total_amount == Decimal("38.49")


def test_totals_of_no_lines_are_zero():
    totals = compute_totals([])

    assert totals.quantity == 0
    assert totals.total_product == 0
    assert totals.total_amount == 0


def test_difference_is_counted_minus_recorded():
    line = Line(cost_price=Decimal("20"), inventory=Decimal("10"), actual_inventory=Decimal("7"))

    assert item_difference(line) == Decimal("-3")
    assert item_value_difference(line) == Decimal("-60")


def test_summary_adds_up_every_line():
    items = [
        Line(cost_price=Decimal("20"), inventory=Decimal("10"), actual_inventory=Decimal("7")),
        Line(cost_price=Decimal("5"), inventory=Decimal("4"), actual_inventory=Decimal("6")),
    ]

    summary = summarize_differences(items)

    assert summary.system_inventory == Decimal("14")
    assert summary.actual_inventory == Decimal("13")
    assert summary.total_difference == Decimal("-1")
    assert summary.total_value_difference == Decimal("-50")
