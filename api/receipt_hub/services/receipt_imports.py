# receipt_hub/services/receipt_imports.py
"""
Receipt Import Service - create/update/delete/query for import receipts.

Every mutating call runs inside one ``transaction(db)``: header, items,
status transition and user activity either all commit or all roll back.
"""
from __future__ import annotations
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.database import transaction
from receipt_hub.db_models import ReceiptImport, ReceiptImportStatus, UserActivityType
from receipt_hub.models import (
    DailyTotal, PageOut, QuickScanOut,
    ReceiptImportCreate, ReceiptImportDetail, ReceiptImportOut, ReceiptImportUpdate,
    ReceiptItemsByNumber, ReceiptRef,
)
from receipt_hub.services.errors import NotFoundError
from receipt_hub.services.notifications import NotificationService
from receipt_hub.services.quick_scan import QuickScanProcessor
from receipt_hub.services.repositories import (
    ReceiptImportRepository,
    ReceiptItemRepository,
    UserActivityRepository,
)
from receipt_hub.services.status_engine import StatusTransitionEngine, ensure_import_open, is_transition
from receipt_hub.services.views import change_log_out, item_out
from receipt_hub.utils import (
    days_between, get_pagination, import_receipt_number,
    pagination_metadata, remove_empty_props,
)

logger = logging.getLogger(__name__)


class ReceiptImportService:
    """Orchestrates import receipts and their items."""

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.receipts = ReceiptImportRepository(db)
        self.items = ReceiptItemRepository(db)
        self.activities = UserActivityRepository(db)
        self.notifications = notifications
        self.engine = StatusTransitionEngine(db, notifications=notifications)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, payload: ReceiptImportCreate, user_id: int) -> uuid.UUID:
        header = remove_empty_props(payload.model_dump(exclude={"items"}))

        async with transaction(self.db):
            receipt_number = import_receipt_number()
            receipt = await self.receipts.create(receipt_number, user_id, **header)
            await self.items.create_many(receipt.id, [i.model_dump() for i in payload.items])
            await self.activities.create(
                user_id,
                UserActivityType.RECEIPT_IMPORT_CREATED,
                f"Created import receipt {receipt_number}",
                reference_id=receipt.id,
            )
            receipt_id = receipt.id

        logger.info(
            "Created import receipt %s (%s) with %d items", receipt_number, receipt_id, len(payload.items)
        )
        return receipt_id

    async def update(
        self,
        receipt_id: uuid.UUID,
        payload: ReceiptImportUpdate,
        user_name: str,
    ) -> uuid.UUID:
        """
        Apply a partial update.

        Items, when given, replace the receipt's lines before any status
        transition runs, so a move to WAITING totals the new lines.
        Completion pushes go out only after the transaction has committed.
        """
        fields = remove_empty_props(payload.model_dump(exclude={"items", "status"}))

        async with transaction(self.db):
            receipt = await self.receipts.get(receipt_id)
            if receipt is None:
                raise NotFoundError("Receipt import", receipt_id)
            old_status = receipt.status
            pending = ()

            if payload.items:
                ensure_import_open(receipt, "replace items")
                await self.items.delete_by_receipt_id(receipt_id)
                await self.items.create_many(receipt_id, [i.model_dump() for i in payload.items])

            values = dict(fields)
            if is_transition(old_status, payload.status):
                change = await self.engine.transition_import(receipt, payload.status, user_name)
                values.update(change.as_values())
                pending = change.pending_pushes

            (await self.receipts.update(receipt_id, values)).unwrap()

        for push in pending:
            await self.notifications.deliver(push)

        if is_transition(old_status, payload.status):
            logger.info("Receipt import %s: %s -> %s by %s", receipt_id, old_status.value, payload.status.value, user_name)
        else:
            logger.info("Updated receipt import %s", receipt_id)
        return receipt_id

    async def delete(self, receipt_id: uuid.UUID) -> List[uuid.UUID]:
        async with transaction(self.db):
            result = await self.receipts.delete(receipt_id)
            if not result.ok:
                raise NotFoundError("Receipt import", receipt_id)
            removed = await self.items.delete_by_receipt_id(receipt_id)

        logger.info("Deleted receipt import %s and %d items", receipt_id, removed)
        return result.data

    async def quick_scan(self, user_id: int, code: str) -> QuickScanOut:
        result = await QuickScanProcessor(self.db).scan(user_id, code)
        return QuickScanOut(
            id=result.receipt_id,
            receipt_number=result.receipt_number,
            receipt_created=result.receipt_created,
            product_code=result.product_code,
            inventory=result.inventory,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, receipt_id: uuid.UUID) -> ReceiptImportDetail:
        receipt = await self.receipts.get(receipt_id)
        if receipt is None:
            raise NotFoundError("Receipt import", receipt_id)
        items = await self.items.list_by_receipt(receipt_id)
        return ReceiptImportDetail(
            receipt=self._receipt_out(receipt),
            change_log=change_log_out(receipt.change_log),
            items=[item_out(i) for i in items],
        )

    async def items_by_number(self, receipt_number: str) -> ReceiptItemsByNumber:
        receipt = await self.receipts.get_by_number(receipt_number)
        if receipt is None:
            raise NotFoundError("Receipt import", receipt_number)
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
        status: Optional[ReceiptImportStatus] = None,
        import_date: Optional[date] = None,
    ) -> PageOut:
        p = get_pagination(page, limit)
        rows, total = await self.receipts.list(p, keyword=keyword, status=status, import_date=import_date)
        return PageOut(
            data=[self._receipt_out(r, supplier_name) for r, supplier_name in rows],
            metadata=pagination_metadata(p, total),
        )

    async def daily_totals(self, start: date, end: date) -> List[DailyTotal]:
        """Σ total_product of COMPLETED receipts per creation day, zero-filled."""
        per_day: Dict[date, int] = defaultdict(int)
        for created_at, total_product in await self.receipts.completed_between(start, end):
            per_day[created_at.date()] += total_product or 0
        return [DailyTotal(x=d.isoformat(), y=per_day.get(d, 0)) for d in days_between(start, end)]

    @staticmethod
    def _receipt_out(receipt: ReceiptImport, supplier_name: Optional[str] = None) -> ReceiptImportOut:
        out = ReceiptImportOut.model_validate(receipt)
        if supplier_name is not None:
            out.supplier_name = supplier_name
        return out
