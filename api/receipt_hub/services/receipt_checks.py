# receipt_hub/services/receipt_checks.py
"""
Receipt Check Service - stock audits.

Handles:
- create/update/delete of check receipts and their counted lines
- activity log entries for changed header fields
- balancing: overwrite product stock with counted values, close as BALANCED
- scan counting on an open audit (actual_inventory + 1)
"""
from __future__ import annotations
from datetime import date
from typing import List, Optional
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.database import transaction
from receipt_hub.db_models import ReceiptCheck, ReceiptCheckStatus, UserActivityType
from receipt_hub.models import (
    BalanceIn, PageOut,
    ReceiptCheckCreate, ReceiptCheckDetail, ReceiptCheckOut, ReceiptCheckSummary, ReceiptCheckUpdate,
    ReceiptItemsByNumber, ReceiptRef,
)
from receipt_hub.services.aggregation import summarize_differences
from receipt_hub.services.audit_log import append_activities, dump_log, load_activity_log
from receipt_hub.services.errors import NotFoundError
from receipt_hub.services.ledger import StockOverwrite
from receipt_hub.services.repositories import (
    ReceiptCheckRepository,
    ReceiptItemRepository,
    UserActivityRepository,
)
from receipt_hub.services.status_engine import StatusTransitionEngine, ensure_check_open, is_transition
from receipt_hub.services.views import activity_log_out, change_log_out, check_item_out, item_out
from receipt_hub.utils import (
    check_receipt_number, get_pagination, pagination_metadata,
    parse_product_code, remove_empty_props,
)

logger = logging.getLogger(__name__)

PREVIEW_ITEMS = 2


class ReceiptCheckService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.receipts = ReceiptCheckRepository(db)
        self.items = ReceiptItemRepository(db)
        self.activities = UserActivityRepository(db)
        self.engine = StatusTransitionEngine(db)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, payload: ReceiptCheckCreate, user_id: int) -> uuid.UUID:
        header = remove_empty_props(payload.model_dump(exclude={"items"}))

        async with transaction(self.db):
            receipt_number = check_receipt_number()
            receipt = await self.receipts.create(
                receipt_number, user_id, status=ReceiptCheckStatus.PENDING, **header
            )
            await self.items.create_many(receipt.id, [i.model_dump() for i in payload.items])
            await self.activities.create(
                user_id,
                UserActivityType.RECEIPT_CHECK_CREATED,
                f"Created check receipt {receipt_number}",
                reference_id=receipt.id,
            )
            receipt_id = receipt.id

        logger.info("Created check receipt %s (%s)", receipt_number, receipt_id)
        return receipt_id

    async def update(
        self,
        receipt_id: uuid.UUID,
        payload: ReceiptCheckUpdate,
        user_name: str,
    ) -> uuid.UUID:
        fields = remove_empty_props(payload.model_dump(exclude={"items"}))

        async with transaction(self.db):
            receipt = await self.receipts.get(receipt_id)
            if receipt is None:
                raise NotFoundError("Receipt check", receipt_id)
            if payload.items:
                ensure_check_open(receipt, "replace items")

            values = {k: v for k, v in fields.items() if k != "status"}
            if is_transition(receipt.status, payload.status):
                change = self.engine.transition_check(receipt, payload.status, user_name)
                values.update(change.as_values())
            else:
                fields.pop("status", None)

            if fields:
                activity_log = append_activities(
                    load_activity_log(receipt.activity_log), fields=fields.keys(), user=user_name,
                )
                values["activity_log"] = dump_log(activity_log)

            (await self.receipts.update(receipt_id, values)).unwrap()

            if payload.items:
                await self.items.delete_by_receipt_id(receipt_id)
                await self.items.create_many(receipt_id, [i.model_dump() for i in payload.items])

        logger.info("Updated receipt check %s (%s)", receipt_id, ", ".join(fields) or "items")
        return receipt_id

    async def balance(self, receipt_id: uuid.UUID, payload: BalanceIn, user_name: str) -> None:
        counts = [StockOverwrite(i.product_id, i.actual_inventory) for i in payload.items]

        async with transaction(self.db):
            receipt = await self.receipts.get(receipt_id)
            if receipt is None:
                raise NotFoundError("Receipt check", receipt_id)
            change = await self.engine.balance(receipt, counts, user_name)
            (await self.receipts.update(receipt_id, change.as_values())).unwrap()

        logger.info("Balanced receipt check %s (%d products) by %s", receipt_id, len(counts), user_name)

    async def delete(self, receipt_id: uuid.UUID) -> List[uuid.UUID]:
        async with transaction(self.db):
            result = await self.receipts.delete(receipt_id)
            if not result.ok:
                raise NotFoundError("Receipt check", receipt_id)
            removed = await self.items.delete_by_receipt_id(receipt_id)

        logger.info("Deleted receipt check %s and %d items", receipt_id, removed)
        return result.data

    async def count_item(self, receipt_id: uuid.UUID, product_code: str) -> None:
        """Add one counted unit to a line of an open audit."""
        try:
            code = parse_product_code(product_code)
        except ValueError as e:
            raise NotFoundError("Product code", product_code) from e

        async with transaction(self.db):
            receipt = await self.receipts.get(receipt_id)
            if receipt is None:
                raise NotFoundError("Receipt check", receipt_id)
            ensure_check_open(receipt, "count items")
            result = await self.items.increment_actual_inventory(receipt_id, code)
            if not result.ok:
                raise NotFoundError("Receipt item", f"{receipt_id}/{product_code}")

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, receipt_id: uuid.UUID) -> ReceiptCheckDetail:
        receipt = await self.receipts.get(receipt_id)
        if receipt is None:
            raise NotFoundError("Receipt check", receipt_id)
        items = await self.items.list_by_receipt(receipt_id)
        summary = summarize_differences(items)
        return ReceiptCheckDetail(
            receipt=ReceiptCheckOut.model_validate(receipt),
            change_log=change_log_out(receipt.change_log),
            activity_log=activity_log_out(receipt.activity_log),
            items=[check_item_out(i) for i in items],
            system_inventory=summary.system_inventory,
            actual_inventory=summary.actual_inventory,
            total_difference=summary.total_difference,
            total_value_difference=summary.total_value_difference,
        )

    async def items_by_number(self, receipt_number: str) -> ReceiptItemsByNumber:
        receipt = await self.receipts.get_by_number(receipt_number)
        if receipt is None:
            raise NotFoundError("Receipt check", receipt_number)
        items = await self.items.list_by_receipt(receipt.id)
        return ReceiptItemsByNumber(
            receipt=ReceiptRef(id=receipt.id, receipt_number=receipt.receipt_number),
            items=[item_out(i) for i in items],
        )

    async def list(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        keyword: Optional[str] = None,
        status: Optional[ReceiptCheckStatus] = None,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PageOut:
        p = get_pagination(page, limit)
        rows, total = await self.receipts.list(
            p, keyword=keyword, status=status,
            on_date=on_date, start_date=start_date, end_date=end_date,
        )
        data = []
        for row in rows:
            receipt: ReceiptCheck = row["receipt"]
            preview = await self.items.list_by_receipt(receipt.id, limit=PREVIEW_ITEMS)
            data.append(ReceiptCheckSummary(
                **ReceiptCheckOut.model_validate(receipt).model_dump(),
                supplier_name=row["supplier_name"],
                checker_name=row["checker_name"],
                system_inventory=row["system_inventory"],
                actual_inventory=row["actual_inventory"],
                total_difference=row["total_difference"],
                total_value_difference=row["total_value_difference"],
                items=[check_item_out(i) for i in preview],
                total_items=row["item_count"],
            ))
        return PageOut(data=data, metadata=pagination_metadata(p, total))
