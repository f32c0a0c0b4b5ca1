# receipt_hub/services/ledger.py
"""
Inventory Ledger Updater - every write to products.inventory goes through here.

Two modes:
- increment: database-side ``inventory = inventory + delta`` (no read-modify-write)
- overwrite: ``inventory = actual_inventory`` per counted product (check balancing)

Both run inside the caller's transaction and raise NotFoundError when a
product row is missing, which aborts the whole batch.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Union
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.db_models import Product
from receipt_hub.services.errors import NotFoundError

logger = logging.getLogger(__name__)

Number = Union[int, Decimal]


@dataclass(frozen=True)
class StockOverwrite:
    product_id: int
    actual_inventory: Decimal


class InventoryLedgerUpdater:
    """Applies stock deltas and absolute counts to products."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def increment(self, product_id: int, delta: Number = 1) -> Decimal:
        """
        Atomically add ``delta`` to a product's stock.

        Returns:
            The stock value after the increment, as stored.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(inventory=Product.inventory + delta)
            .returning(Product.inventory)
            .execution_options(synchronize_session="fetch")
        )
        new_value = (await self.db.execute(stmt)).scalar_one_or_none()
        if new_value is None:
            raise NotFoundError("Product", product_id)
        return Decimal(str(new_value))

    async def overwrite(self, counts: Iterable[StockOverwrite]) -> List[int]:
        """
        Set each product's stock to its counted value, one UPDATE per product.

        Returns:
            Product ids written, in input order.
        """
        written: List[int] = []
        for count in counts:
            stmt = (
                update(Product)
                .where(Product.id == count.product_id)
                .values(inventory=count.actual_inventory)
                .returning(Product.id)
                .execution_options(synchronize_session="fetch")
            )
            row_id = (await self.db.execute(stmt)).scalar_one_or_none()
            if row_id is None:
                raise NotFoundError("Product", count.product_id)
            written.append(row_id)
        logger.debug("Overwrote stock for %d products", len(written))
        return written
