# receipt_hub/routers/receipt_checks.py
"""
Check Receipts Router - periodic stock audits and balancing.
"""
from __future__ import annotations
from datetime import date
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query

from receipt_hub.db_models import ReceiptCheckStatus
from receipt_hub.models import (
    BalanceIn, DeletedOut, IdOut, PageOut,
    ReceiptCheckCreate, ReceiptCheckDetail, ReceiptCheckUpdate, ReceiptItemsByNumber,
)
from receipt_hub.routers.deps import CurrentUser, get_check_service, get_current_user, http_errors
from receipt_hub.services.receipt_checks import ReceiptCheckService

router = APIRouter(prefix="/receipt-checks", tags=["Receipt Checks"])


@router.post("", response_model=IdOut, status_code=201)
async def create_receipt_check(
    body: ReceiptCheckCreate,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        receipt_id = await service.create(body, user.id)
    return IdOut(id=receipt_id)


@router.get("", response_model=PageOut)
async def list_receipt_checks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    keyword: Optional[str] = None,
    status: Optional[ReceiptCheckStatus] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: ReceiptCheckService = Depends(get_check_service),
):
    return await service.list(
        page, limit, keyword=keyword, status=status,
        on_date=on_date, start_date=start_date, end_date=end_date,
    )


@router.get("/by-number/{receipt_number}", response_model=ReceiptItemsByNumber)
async def get_items_by_receipt_number(
    receipt_number: str,
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        return await service.items_by_number(receipt_number)


@router.get("/{receipt_id}", response_model=ReceiptCheckDetail)
async def get_receipt_check(
    receipt_id: uuid.UUID,
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        return await service.get(receipt_id)


@router.patch("/{receipt_id}", response_model=IdOut)
async def update_receipt_check(
    receipt_id: uuid.UUID,
    body: ReceiptCheckUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        await service.update(receipt_id, body, user.name)
    return IdOut(id=receipt_id)


@router.post("/{receipt_id}/balance")
async def balance_receipt_check(
    receipt_id: uuid.UUID,
    body: BalanceIn,
    user: CurrentUser = Depends(get_current_user),
    service: ReceiptCheckService = Depends(get_check_service),
):
    """Overwrite product stock with the counted values and close the audit."""
    with http_errors():
        await service.balance(receipt_id, body, user.name)
    return {"success": True}


@router.post("/{receipt_id}/items/{product_code}/count")
async def count_receipt_item(
    receipt_id: uuid.UUID,
    product_code: str,
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        await service.count_item(receipt_id, product_code)
    return {"success": True}


@router.delete("/{receipt_id}", response_model=DeletedOut)
async def delete_receipt_check(
    receipt_id: uuid.UUID,
    service: ReceiptCheckService = Depends(get_check_service),
):
    with http_errors():
        deleted = await service.delete(receipt_id)
    return DeletedOut(deleted=deleted)
