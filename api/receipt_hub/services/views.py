# receipt_hub/services/views.py
"""Response builders shared by both receipt services."""
from __future__ import annotations
from typing import Iterable, List

from receipt_hub.db_models import ReceiptItem
from receipt_hub.models import ReceiptItemOut, CheckItemOut, ChangeLogOut, ActivityLogOut
from receipt_hub.services.aggregation import item_difference, item_value_difference
from receipt_hub.utils import format_product_code


def item_out(item: ReceiptItem) -> ReceiptItemOut:
    return ReceiptItemOut(
        id=item.id,
        code=format_product_code(item.product_code),
        product_id=item.product_id,
        product_code=item.product_code,
        product_name=item.product_name,
        quantity=item.quantity,
        inventory=item.inventory,
        actual_inventory=item.actual_inventory,
        discount=item.discount,
        cost_price=item.cost_price,
    )


def check_item_out(item: ReceiptItem) -> CheckItemOut:
    return CheckItemOut(
        **item_out(item).model_dump(),
        difference=item_difference(item),
        value_difference=item_value_difference(item),
    )


def change_log_out(raw: Iterable[dict]) -> List[ChangeLogOut]:
    return [ChangeLogOut.model_validate(entry) for entry in raw or []]


def activity_log_out(raw: Iterable[dict]) -> List[ActivityLogOut]:
    return [ActivityLogOut.model_validate(entry) for entry in raw or []]
