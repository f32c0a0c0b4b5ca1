# receipt_hub/services/quick_scan.py
"""
Quick-Scan Processor - one barcode scan appended to the operator's open import.

One scan, one transaction:
1. find the user's PROCESSING import receipt, or open a new one
2. resolve the scanned product (NK code, bare code or barcode)
3. upsert the receipt line (insert at stock + 1, or bump quantity/actual)
4. increment the product's stock by one
5. write an inventory log row

Steps 3-5 do not read each other's results; they run one after another
because a single AsyncSession cannot execute statements concurrently.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.database import transaction
from receipt_hub.db_models import ReceiptImport, ReceiptImportStatus
from receipt_hub.services.errors import NotFoundError
from receipt_hub.services.ledger import InventoryLedgerUpdater
from receipt_hub.services.repositories import (
    InventoryLogRepository,
    ProductRepository,
    ReceiptImportRepository,
    ReceiptItemRepository,
)
from receipt_hub.utils import import_receipt_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    receipt_id: uuid.UUID
    receipt_number: str
    receipt_created: bool
    item_id: int
    product_id: int
    product_code: int
    inventory: Decimal


class QuickScanProcessor:

    def __init__(self, db: AsyncSession, ledger: Optional[InventoryLedgerUpdater] = None):
        self.db = db
        self.receipts = ReceiptImportRepository(db)
        self.items = ReceiptItemRepository(db)
        self.products = ProductRepository(db)
        self.inventory_logs = InventoryLogRepository(db)
        self.ledger = ledger or InventoryLedgerUpdater(db)

    async def scan(self, user_id: int, identifier: str) -> ScanResult:
        async with transaction(self.db):
            receipt, created = await self._active_receipt(user_id)

            product = await self.products.find_by_identity(identifier)
            if product is None:
                raise NotFoundError("Product", identifier)
            old_inventory = product.inventory

            item_id = await self.items.upsert_scanned(receipt.id, product)
            new_inventory = await self.ledger.increment(product.id, 1)
            await self.inventory_logs.create(
                user_id, product, old_inventory, new_inventory, reference_id=receipt.id
            )
            result = ScanResult(
                receipt_id=receipt.id,
                receipt_number=receipt.receipt_number,
                receipt_created=created,
                item_id=item_id,
                product_id=product.id,
                product_code=product.product_code,
                inventory=new_inventory,
            )

        logger.info(
            "Quick-scan by user %s: product %s on %s (stock %s -> %s)",
            user_id, result.product_code, result.receipt_number, old_inventory, new_inventory,
        )
        return result

    async def _active_receipt(self, user_id: int) -> Tuple[ReceiptImport, bool]:
        existing = await self.receipts.find_processing_for_user(user_id)
        if existing is not None:
            return existing, False

        try:
            async with self.db.begin_nested():
                receipt = await self.receipts.create(
                    receipt_number=import_receipt_number(),
                    user_created=user_id,
                    status=ReceiptImportStatus.PROCESSING,
                )
        except IntegrityError:
            # a concurrent scan by the same user opened the receipt first
            existing = await self.receipts.find_processing_for_user(user_id)
            if existing is None:
                raise
            return existing, False

        logger.info("Opened quick-scan receipt %s for user %s", receipt.receipt_number, user_id)
        return receipt, True
