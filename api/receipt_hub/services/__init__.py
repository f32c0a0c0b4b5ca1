# receipt_hub/services/__init__.py
"""
Business logic services for Receipt Hub.
"""
from receipt_hub.services.receipt_imports import ReceiptImportService
from receipt_hub.services.receipt_checks import ReceiptCheckService
from receipt_hub.services.quick_scan import QuickScanProcessor
from receipt_hub.services.status_engine import StatusTransitionEngine
from receipt_hub.services.ledger import InventoryLedgerUpdater

__all__ = [
    "ReceiptImportService",
    "ReceiptCheckService",
    "QuickScanProcessor",
    "StatusTransitionEngine",
    "InventoryLedgerUpdater",
]
