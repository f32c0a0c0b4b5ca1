# receipt_hub/services/status_engine.py
"""
Status Transition Engine - validates and executes receipt status changes.

Handles:
- Import receipts: DRAFT / PROCESSING -> WAITING (recompute totals) -> COMPLETED (notify)
- Check receipts: generic status changes, BALANCED only via ``balance()``
- One change-log entry per executed transition

The engine computes the new column values; the calling service writes them
in the same transaction. Any raised error leaves the receipt untouched.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from receipt_hub.db_models import (
    ReceiptImport, ReceiptImportStatus,
    ReceiptCheck, ReceiptCheckStatus,
)
from receipt_hub.services.aggregation import ReceiptTotals, compute_totals
from receipt_hub.services.audit_log import (
    ActivityLog, ChangeLog,
    append_activities, append_change, dump_log,
    load_activity_log, load_change_log,
)
from receipt_hub.services.errors import ClosedReceiptError, EmptyReceiptError, InvalidTransitionError
from receipt_hub.services.ledger import InventoryLedgerUpdater, StockOverwrite
from receipt_hub.services.notifications import NotificationService, PendingPush
from receipt_hub.services.repositories import ReceiptItemRepository

logger = logging.getLogger(__name__)

FINAL_IMPORT_STATUSES = (ReceiptImportStatus.COMPLETED, ReceiptImportStatus.CANCELLED)
FINAL_CHECK_STATUSES = (ReceiptCheckStatus.BALANCED, ReceiptCheckStatus.CANCELLED)


@dataclass(frozen=True)
class StatusChange:
    """Column values produced by one executed transition."""
    status: Any
    change_log: ChangeLog
    totals: Optional[ReceiptTotals] = None
    activity_log: Optional[ActivityLog] = None
    # pushes to send once the enclosing transaction has committed
    pending_pushes: Tuple[PendingPush, ...] = ()

    def as_values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "status": self.status,
            "change_log": dump_log(self.change_log),
        }
        if self.totals is not None:
            values["quantity"] = self.totals.quantity
            values["total_product"] = self.totals.total_product
            values["total_amount"] = self.totals.total_amount
        if self.activity_log is not None:
            values["activity_log"] = dump_log(self.activity_log)
        return values


def is_transition(current: Any, requested: Any) -> bool:
    """True when ``requested`` is set and differs from ``current``."""
    return requested is not None and requested != current


def ensure_import_open(receipt: ReceiptImport, action: str) -> None:
    if receipt.status in FINAL_IMPORT_STATUSES:
        raise ClosedReceiptError(receipt.id, receipt.status.value, action)


def ensure_check_open(receipt: ReceiptCheck, action: str) -> None:
    if receipt.status in FINAL_CHECK_STATUSES:
        raise ClosedReceiptError(receipt.id, receipt.status.value, action)


class StatusTransitionEngine:

    def __init__(
        self,
        db: AsyncSession,
        ledger: Optional[InventoryLedgerUpdater] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db
        self.items = ReceiptItemRepository(db)
        self.ledger = ledger or InventoryLedgerUpdater(db)
        self.notifications = notifications

    # =========================================================================
    # Import receipts
    # =========================================================================

    async def transition_import(
        self,
        receipt: ReceiptImport,
        new_status: ReceiptImportStatus,
        user: str,
    ) -> StatusChange:
        old_status = receipt.status
        if not is_transition(old_status, new_status):
            raise InvalidTransitionError(old_status, new_status, "status is unchanged")
        if old_status in FINAL_IMPORT_STATUSES:
            raise InvalidTransitionError(old_status, new_status, "receipt is closed")

        totals = None
        pending: Tuple[PendingPush, ...] = ()
        if new_status == ReceiptImportStatus.WAITING:
            items = await self.items.list_by_receipt(receipt.id)
            if not items:
                raise EmptyReceiptError(receipt.id)
            totals = compute_totals(items)
        elif new_status == ReceiptImportStatus.COMPLETED:
            pending = await self._on_import_completed(receipt, user)

        change_log = append_change(
            load_change_log(receipt.change_log),
            user=user, old_status=old_status, new_status=new_status,
        )
        return StatusChange(
            status=new_status, change_log=change_log, totals=totals, pending_pushes=pending,
        )

    async def _on_import_completed(self, receipt: ReceiptImport, user: str) -> Tuple[PendingPush, ...]:
        if self.notifications is None:
            return ()
        pending = await self.notifications.store(
            receipt.user_created,
            title="Import receipt completed",
            body=f"{user} completed import receipt {receipt.receipt_number}",
            data={"receiptId": str(receipt.id), "receiptNumber": receipt.receipt_number},
        )
        return (pending,)

    # =========================================================================
    # Check receipts
    # =========================================================================

    def transition_check(
        self,
        receipt: ReceiptCheck,
        new_status: ReceiptCheckStatus,
        user: str,
    ) -> StatusChange:
        """Generic status change on a check receipt (never BALANCED)."""
        old_status = receipt.status
        if not is_transition(old_status, new_status):
            raise InvalidTransitionError(old_status, new_status, "status is unchanged")
        if new_status == ReceiptCheckStatus.BALANCED:
            raise InvalidTransitionError(old_status, new_status, "use the balance operation")
        if old_status in FINAL_CHECK_STATUSES:
            raise InvalidTransitionError(old_status, new_status, "receipt is closed")

        change_log = append_change(
            load_change_log(receipt.change_log),
            user=user, old_status=old_status, new_status=new_status,
        )
        return StatusChange(status=new_status, change_log=change_log)

    async def balance(
        self,
        receipt: ReceiptCheck,
        counts: Iterable[StockOverwrite],
        user: str,
    ) -> StatusChange:
        """
        Close an audit: overwrite product stock with counted values.

        Appends exactly one change-log entry and one "status" activity entry.
        """
        old_status = receipt.status
        if old_status in FINAL_CHECK_STATUSES:
            raise InvalidTransitionError(old_status, ReceiptCheckStatus.BALANCED, "receipt is closed")

        written = await self.ledger.overwrite(counts)
        logger.info("Receipt check %s: stock overwritten for %d products", receipt.id, len(written))

        change_log = append_change(
            load_change_log(receipt.change_log),
            user=user, old_status=old_status, new_status=ReceiptCheckStatus.BALANCED,
        )
        activity_log = append_activities(
            load_activity_log(receipt.activity_log), fields=["status"], user=user,
        )
        return StatusChange(
            status=ReceiptCheckStatus.BALANCED,
            change_log=change_log,
            activity_log=activity_log,
        )
