# receipt_hub/routers/receipt_imports.py
"""
Import Receipts Router - goods received from suppliers.
"""
from __future__ import annotations
from datetime import date
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, Query

from receipt_hub.db_models import ReceiptImportStatus
from receipt_hub.models import (
    DailyTotal, DeletedOut, IdOut, PageOut, QuickScanIn, QuickScanOut,
    ReceiptImportCreate, ReceiptImportDetail, ReceiptImportUpdate, ReceiptItemsByNumber,
)
from receipt_hub.routers.deps import CurrentUser, get_current_user, get_import_service, http_errors
from receipt_hub.services.receipt_imports import ReceiptImportService

router = APIRouter(prefix="/receipt-imports", tags=["Receipt Imports"])


@router.post("", response_model=IdOut, status_code=201)
async def create_receipt_import(
    body: ReceiptImportCreate,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptImportService = Depends(get_import_service),
):
    with http_errors():
        receipt_id = await service.create(body, user.id)
    return IdOut(id=receipt_id)


@router.post("/quick-scan", response_model=QuickScanOut)
async def quick_scan(
    body: QuickScanIn,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptImportService = Depends(get_import_service),
):
    """Append one scanned product to the caller's open import receipt."""
    with http_errors():
        return await service.quick_scan(user.id, body.code)


@router.get("", response_model=PageOut)
async def list_receipt_imports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    keyword: Optional[str] = None,
    status: Optional[ReceiptImportStatus] = None,
    import_date: Optional[date] = Query(None, alias="importDate"),
    service: ReceiptImportService = Depends(get_import_service),
):
    return await service.list(page, limit, keyword=keyword, status=status, import_date=import_date)


@router.get("/stats/daily", response_model=List[DailyTotal])
async def daily_import_totals(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: ReceiptImportService = Depends(get_import_service),
):
    return await service.daily_totals(start_date, end_date)


@router.get("/by-number/{receipt_number}", response_model=ReceiptItemsByNumber)
async def get_items_by_receipt_number(
    receipt_number: str,
    service: ReceiptImportService = Depends(get_import_service),
):
    with http_errors():
        return await service.items_by_number(receipt_number)


@router.get("/{receipt_id}", response_model=ReceiptImportDetail)
async def get_receipt_import(
    receipt_id: uuid.UUID,
    service: ReceiptImportService = Depends(get_import_service),
):
    with http_errors():
        return await service.get(receipt_id)


@router.patch("/{receipt_id}", response_model=IdOut)
async def update_receipt_import(
    receipt_id: uuid.UUID,
    body: ReceiptImportUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptImportService = Depends(get_import_service),
):
    with http_errors():
        await service.update(receipt_id, body, user.name)
    return IdOut(id=receipt_id)


@router.delete("/{receipt_id}", response_model=DeletedOut)
async def delete_receipt_import(
    receipt_id: uuid.UUID,
    service: ReceiptImportService = Depends(get_import_service),
):
    with http_errors():
        deleted = await service.delete(receipt_id)
    return DeletedOut(deleted=deleted)
