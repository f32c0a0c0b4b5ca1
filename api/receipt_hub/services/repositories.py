# receipt_hub/services/repositories.py
"""
Repositories - single-table reads and writes for receipts and their satellites.

Writes that can legitimately affect nothing (update/delete by id) return a
``Result`` instead of raising; services decide whether that is fatal.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import uuid

from sqlalchemy import select, update, delete, func, or_, and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.db_models import (
    Product, Supplier, User,
    ReceiptImport, ReceiptImportStatus,
    ReceiptCheck,
    ReceiptItem,
    UserActivity, UserActivityType,
    ProductInventoryLog,
    Notification,
    utcnow,
)
from receipt_hub.services.results import Result, Success, Failure
from receipt_hub.utils import Page, day_bounds, is_product_code, parse_product_code

# columns callers may pass to create/update; anything else is dropped
IMPORT_FIELDS = (
    "note", "quantity", "total_product", "total_amount", "supplier_id",
    "warehouse", "payment_date", "import_date", "status", "change_log",
)
CHECK_FIELDS = (
    "periodic", "supplier_id", "date", "note", "status", "checker",
    "change_log", "activity_log",
)
ITEM_FIELDS = (
    "product_id", "product_code", "product_name", "quantity", "inventory",
    "actual_inventory", "discount", "cost_price",
)


def _pick(data: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in fields}


# ============================================================================
# Receipt imports
# ============================================================================

class ReceiptImportRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, receipt_id: uuid.UUID) -> Optional[ReceiptImport]:
        return await self.db.get(ReceiptImport, receipt_id)

    async def get_by_number(self, receipt_number: str) -> Optional[ReceiptImport]:
        result = await self.db.execute(
            select(ReceiptImport).where(ReceiptImport.receipt_number == receipt_number)
        )
        return result.scalar_one_or_none()

    async def find_processing_for_user(self, user_id: int) -> Optional[ReceiptImport]:
        result = await self.db.execute(
            select(ReceiptImport)
            .where(
                ReceiptImport.user_created == user_id,
                ReceiptImport.status == ReceiptImportStatus.PROCESSING,
            )
            .order_by(ReceiptImport.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, receipt_number: str, user_created: int, **fields: Any) -> ReceiptImport:
        receipt = ReceiptImport(
            receipt_number=receipt_number,
            user_created=user_created,
            **_pick(fields, IMPORT_FIELDS),
        )
        self.db.add(receipt)
        await self.db.flush()
        return receipt

    async def update(self, receipt_id: uuid.UUID, values: Dict[str, Any]) -> Result[uuid.UUID]:
        values = _pick(values, IMPORT_FIELDS)
        stmt = (
            update(ReceiptImport)
            .where(ReceiptImport.id == receipt_id)
            .values(updated_at=utcnow(), **values)
            .returning(ReceiptImport.id)
            .execution_options(synchronize_session="fetch")
        )
        row_id = (await self.db.execute(stmt)).scalar_one_or_none()
        if row_id is None:
            return Failure(f"Receipt import {receipt_id} was not updated")
        return Success(row_id)

    async def delete(self, receipt_id: uuid.UUID) -> Result[List[uuid.UUID]]:
        stmt = (
            delete(ReceiptImport)
            .where(ReceiptImport.id == receipt_id)
            .returning(ReceiptImport.id)
            .execution_options(synchronize_session="fetch")
        )
        ids = list((await self.db.execute(stmt)).scalars().all())
        if not ids:
            return Failure(f"Receipt import {receipt_id} was not deleted")
        return Success(ids)

    async def list(
        self,
        page: Page,
        keyword: Optional[str] = None,
        status: Optional[ReceiptImportStatus] = None,
        import_date: Optional[date] = None,
    ) -> Tuple[List[Tuple[ReceiptImport, Optional[str]]], int]:
        filters = []
        if keyword:
            filters.append(ReceiptImport.receipt_number.ilike(f"%{keyword}%"))
        if status:
            filters.append(ReceiptImport.status == status)
        if import_date:
            start, end = day_bounds(import_date)
            filters.append(and_(ReceiptImport.import_date >= start, ReceiptImport.import_date < end))

        total = (await self.db.execute(
            select(func.count()).select_from(ReceiptImport).where(*filters)
        )).scalar_one()

        result = await self.db.execute(
            select(ReceiptImport, Supplier.name)
            .outerjoin(Supplier, Supplier.id == ReceiptImport.supplier_id)
            .where(*filters)
            .order_by(ReceiptImport.created_at.desc(), ReceiptImport.receipt_number.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return [(r, name) for r, name in result.all()], total

    async def completed_between(self, start: date, end: date) -> List[Tuple[datetime, int]]:
        lo, _ = day_bounds(start)
        _, hi = day_bounds(end)
        result = await self.db.execute(
            select(ReceiptImport.created_at, ReceiptImport.total_product).where(
                ReceiptImport.status == ReceiptImportStatus.COMPLETED,
                ReceiptImport.created_at >= lo,
                ReceiptImport.created_at < hi,
            )
        )
        return [(row[0], row[1]) for row in result.all()]


# ============================================================================
# Receipt checks
# ============================================================================

class ReceiptCheckRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, receipt_id: uuid.UUID) -> Optional[ReceiptCheck]:
        return await self.db.get(ReceiptCheck, receipt_id)

    async def get_by_number(self, receipt_number: str) -> Optional[ReceiptCheck]:
        result = await self.db.execute(
            select(ReceiptCheck).where(ReceiptCheck.receipt_number == receipt_number)
        )
        return result.scalar_one_or_none()

    async def create(self, receipt_number: str, user_created: int, **fields: Any) -> ReceiptCheck:
        receipt = ReceiptCheck(
            receipt_number=receipt_number,
            user_created=user_created,
            **_pick(fields, CHECK_FIELDS),
        )
        self.db.add(receipt)
        await self.db.flush()
        return receipt

    async def update(self, receipt_id: uuid.UUID, values: Dict[str, Any]) -> Result[uuid.UUID]:
        values = _pick(values, CHECK_FIELDS)
        stmt = (
            update(ReceiptCheck)
            .where(ReceiptCheck.id == receipt_id)
            .values(updated_at=utcnow(), **values)
            .returning(ReceiptCheck.id)
            .execution_options(synchronize_session="fetch")
        )
        row_id = (await self.db.execute(stmt)).scalar_one_or_none()
        if row_id is None:
            return Failure(f"Receipt check {receipt_id} was not updated")
        return Success(row_id)

    async def delete(self, receipt_id: uuid.UUID) -> Result[List[uuid.UUID]]:
        stmt = (
            delete(ReceiptCheck)
            .where(ReceiptCheck.id == receipt_id)
            .returning(ReceiptCheck.id)
            .execution_options(synchronize_session="fetch")
        )
        ids = list((await self.db.execute(stmt)).scalars().all())
        if not ids:
            return Failure(f"Receipt check {receipt_id} was not deleted")
        return Success(ids)

    async def list(
        self,
        page: Page,
        keyword: Optional[str] = None,
        status: Optional[Any] = None,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Page of check receipts with per-receipt inventory sums.

        Each row: receipt, supplier_name, checker_name, system_inventory,
        actual_inventory, total_difference, total_value_difference, item_count.
        """
        filters = []
        if keyword:
            like = f"%{keyword}%"
            filters.append(or_(ReceiptCheck.receipt_number.ilike(like), ReceiptCheck.note.ilike(like)))
        if status:
            filters.append(ReceiptCheck.status == status)
        if on_date:
            start, end = day_bounds(on_date)
            filters.append(and_(ReceiptCheck.date >= start, ReceiptCheck.date < end))
        if start_date and end_date:
            lo, _ = day_bounds(start_date)
            _, hi = day_bounds(end_date)
            filters.append(and_(ReceiptCheck.date >= lo, ReceiptCheck.date < hi))

        total = (await self.db.execute(
            select(func.count()).select_from(ReceiptCheck).where(*filters)
        )).scalar_one()

        diff = ReceiptItem.actual_inventory - ReceiptItem.inventory
        sums = (
            select(
                ReceiptItem.receipt_id.label("receipt_id"),
                func.coalesce(func.sum(ReceiptItem.inventory), 0).label("system_inventory"),
                func.coalesce(func.sum(ReceiptItem.actual_inventory), 0).label("actual_inventory"),
                func.coalesce(func.sum(diff), 0).label("total_difference"),
                func.coalesce(func.sum(diff * ReceiptItem.cost_price), 0).label("total_value_difference"),
                func.count(ReceiptItem.id).label("item_count"),
            )
            .group_by(ReceiptItem.receipt_id)
            .subquery()
        )

        result = await self.db.execute(
            select(
                ReceiptCheck,
                Supplier.name,
                User.fullname,
                sums.c.system_inventory,
                sums.c.actual_inventory,
                sums.c.total_difference,
                sums.c.total_value_difference,
                sums.c.item_count,
            )
            .outerjoin(Supplier, Supplier.id == ReceiptCheck.supplier_id)
            .outerjoin(User, User.id == ReceiptCheck.checker)
            .outerjoin(sums, sums.c.receipt_id == ReceiptCheck.id)
            .where(*filters)
            .order_by(ReceiptCheck.created_at.desc(), ReceiptCheck.receipt_number.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        rows = []
        for r in result.all():
            rows.append({
                "receipt": r[0],
                "supplier_name": r[1],
                "checker_name": r[2],
                "system_inventory": r[3] or 0,
                "actual_inventory": r[4] or 0,
                "total_difference": r[5] or 0,
                "total_value_difference": r[6] or 0,
                "item_count": r[7] or 0,
            })
        return rows, total


# ============================================================================
# Receipt items (shared by both receipt kinds)
# ============================================================================

class ReceiptItemRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_receipt(self, receipt_id: uuid.UUID, limit: Optional[int] = None) -> List[ReceiptItem]:
        stmt = (
            select(ReceiptItem)
            .where(ReceiptItem.receipt_id == receipt_id)
            .order_by(ReceiptItem.id)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_many(self, receipt_id: uuid.UUID, items: Iterable[Dict[str, Any]]) -> List[ReceiptItem]:
        rows = [ReceiptItem(receipt_id=receipt_id, **_pick(item, ITEM_FIELDS)) for item in items]
        if rows:
            self.db.add_all(rows)
            await self.db.flush()
        return rows

    async def delete_by_receipt_id(self, receipt_id: uuid.UUID) -> int:
        stmt = (
            delete(ReceiptItem)
            .where(ReceiptItem.receipt_id == receipt_id)
            .returning(ReceiptItem.id)
            .execution_options(synchronize_session="fetch")
        )
        return len((await self.db.execute(stmt)).scalars().all())

    async def upsert_scanned(
        self,
        receipt_id: uuid.UUID,
        product: Product,
    ) -> int:
        """
        Insert the scanned product as a new line, or bump the existing line.

        New line: quantity 1, inventory = current stock, actual_inventory = stock + 1.
        Existing line: quantity + 1, actual_inventory + 1.
        Relies on uq_receipt_items_receipt_product for the conflict target.
        """
        table = ReceiptItem.__table__
        dialect = self.db.get_bind().dialect.name
        insert_fn = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert_fn(table).values(
            receipt_id=receipt_id,
            product_id=product.id,
            product_code=product.product_code,
            product_name=product.product_name,
            quantity=1,
            inventory=product.inventory,
            actual_inventory=product.inventory + 1,
            cost_price=product.cost_price,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.receipt_id, table.c.product_code],
            set_={
                "quantity": table.c.quantity + 1,
                "actual_inventory": table.c.actual_inventory + 1,
                "updated_at": utcnow(),
            },
        ).returning(table.c.id)
        return (await self.db.execute(stmt)).scalar_one()

    async def increment_actual_inventory(self, receipt_id: uuid.UUID, product_code: int) -> Result[int]:
        stmt = (
            update(ReceiptItem)
            .where(ReceiptItem.receipt_id == receipt_id, ReceiptItem.product_code == product_code)
            .values(actual_inventory=ReceiptItem.actual_inventory + 1, updated_at=utcnow())
            .returning(ReceiptItem.id)
            .execution_options(synchronize_session="fetch")
        )
        row_id = (await self.db.execute(stmt)).scalar_one_or_none()
        if row_id is None:
            return Failure(f"No item with product code {product_code} on receipt {receipt_id}")
        return Success(row_id)


# ============================================================================
# Products
# ============================================================================

class ProductRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, product_id: int) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def find_by_identity(self, identifier: str) -> Optional[Product]:
        """Resolve ``NK00012``, ``12`` or a barcode to a product."""
        value = (identifier or "").strip()
        if not value:
            return None

        if is_product_code(value):
            result = await self.db.execute(
                select(Product).where(Product.product_code == parse_product_code(value))
            )
            product = result.scalar_one_or_none()
            if product is not None:
                return product

        result = await self.db.execute(select(Product).where(Product.barcode == value))
        return result.scalar_one_or_none()


# ============================================================================
# Append-only satellites
# ============================================================================

class UserActivityRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: int,
        type: UserActivityType,
        description: str,
        reference_id: Optional[uuid.UUID] = None,
    ) -> UserActivity:
        activity = UserActivity(
            user_id=user_id, type=type, description=description, reference_id=reference_id
        )
        self.db.add(activity)
        await self.db.flush()
        return activity


class InventoryLogRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: int,
        product: Product,
        old_inventory: Any,
        new_inventory: Any,
        reference_id: Optional[uuid.UUID] = None,
    ) -> ProductInventoryLog:
        log = ProductInventoryLog(
            user_id=user_id,
            product_id=product.id,
            product_code=product.product_code,
            product_name=product.product_name,
            old_inventory=old_inventory,
            new_inventory=new_inventory,
            cost_price=product.cost_price,
            reference_id=reference_id,
        )
        self.db.add(log)
        await self.db.flush()
        return log


class NotificationRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: int,
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> Notification:
        notification = Notification(user_id=user_id, title=title, body=body, data=data)
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def device_tokens(self, user_id: int) -> List[str]:
        user = await self.db.get(User, user_id)
        if user is None:
            return []
        return list(user.device_tokens or [])
