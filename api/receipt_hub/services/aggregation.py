# receipt_hub/services/aggregation.py
"""
Line-Item Aggregator - pure totals over a receipt's items.

Works on anything exposing ``quantity``, ``cost_price``, ``inventory`` and
``actual_inventory`` (ORM rows or pydantic payloads). No database access.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable


def _dec(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class ReceiptTotals:
    quantity: int
    total_product: int
    total_amount: Decimal


@dataclass(frozen=True)
class DifferenceSummary:
    system_inventory: Decimal
    actual_inventory: Decimal
    total_difference: Decimal
    total_value_difference: Decimal


def compute_totals(items: Iterable[Any]) -> ReceiptTotals:
    quantity = 0
    count = 0
    amount = Decimal("0")
    for item in items:
        qty = int(item.quantity or 0)
        quantity += qty
        count += 1
        amount += _dec(item.cost_price) * qty
    return ReceiptTotals(quantity=quantity, total_product=count, total_amount=amount)


def item_difference(item: Any) -> Decimal:
    """Counted minus recorded stock; negative means shrinkage."""
    return _dec(item.actual_inventory) - _dec(item.inventory)


def item_value_difference(item: Any) -> Decimal:
    return item_difference(item) * _dec(item.cost_price)


def summarize_differences(items: Iterable[Any]) -> DifferenceSummary:
    system = Decimal("0")
    actual = Decimal("0")
    value = Decimal("0")
    for item in items:
        system += _dec(item.inventory)
        actual += _dec(item.actual_inventory)
        value += item_value_difference(item)
    return DifferenceSummary(
        system_inventory=system,
        actual_inventory=actual,
        total_difference=actual - system,
        total_value_difference=value,
    )
