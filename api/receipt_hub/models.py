from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from .db_models import ReceiptImportStatus, ReceiptCheckStatus


# ---------------------------------------------------------
# Items
# ---------------------------------------------------------

class ReceiptItemIn(BaseModel):
    product_id: int
    product_code: int
    product_name: str
    quantity: int = Field(1, ge=0)
    inventory: Decimal = Decimal("0")
    actual_inventory: Decimal = Decimal("0")
    discount: int = 0
    cost_price: Decimal = Decimal("0")


class ReceiptItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    product_id: int
    product_code: int
    product_name: str
    quantity: int
    inventory: Decimal
    actual_inventory: Decimal
    discount: int
    cost_price: Decimal


class CheckItemOut(ReceiptItemOut):
    difference: Decimal
    value_difference: Decimal


# ---------------------------------------------------------
# Logs
# ---------------------------------------------------------

class ChangeLogOut(BaseModel):
    user: str
    oldStatus: Optional[str] = None
    newStatus: str
    timestamp: datetime


class ActivityLogOut(BaseModel):
    user: str
    action: str
    timestamp: datetime


# ---------------------------------------------------------
# Import receipts
# ---------------------------------------------------------

class ReceiptImportCreate(BaseModel):
    note: Optional[str] = None
    supplier_id: Optional[int] = None
    warehouse: Optional[str] = None
    payment_date: Optional[datetime] = None
    import_date: Optional[datetime] = None
    status: ReceiptImportStatus = ReceiptImportStatus.DRAFT
    quantity: Optional[int] = None
    total_product: Optional[int] = None
    total_amount: Optional[Decimal] = None
    items: List[ReceiptItemIn] = Field(default_factory=list)


class ReceiptImportUpdate(BaseModel):
    note: Optional[str] = None
    supplier_id: Optional[int] = None
    warehouse: Optional[str] = None
    payment_date: Optional[datetime] = None
    import_date: Optional[datetime] = None
    status: Optional[ReceiptImportStatus] = None
    items: Optional[List[ReceiptItemIn]] = None


class ReceiptImportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    receipt_number: str
    note: Optional[str] = None
    quantity: int
    total_product: int
    total_amount: Decimal
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    warehouse: Optional[str] = None
    payment_date: Optional[datetime] = None
    import_date: Optional[datetime] = None
    status: ReceiptImportStatus
    user_created: int
    created_at: datetime


class ReceiptImportDetail(BaseModel):
    receipt: ReceiptImportOut
    change_log: List[ChangeLogOut]
    items: List[ReceiptItemOut]


class QuickScanIn(BaseModel):
    code: str = Field(..., min_length=1)


class QuickScanOut(BaseModel):
    id: uuid.UUID
    receipt_number: str
    receipt_created: bool
    product_code: int
    inventory: Decimal


class DailyTotal(BaseModel):
    x: str
    y: int


# ---------------------------------------------------------
# Check receipts
# ---------------------------------------------------------

class ReceiptCheckCreate(BaseModel):
    periodic: Optional[str] = None
    supplier_id: Optional[int] = None
    date: Optional[datetime] = None
    note: Optional[str] = None
    checker: Optional[int] = None
    items: List[ReceiptItemIn] = Field(default_factory=list)


class ReceiptCheckUpdate(BaseModel):
    periodic: Optional[str] = None
    supplier_id: Optional[int] = None
    date: Optional[datetime] = None
    note: Optional[str] = None
    checker: Optional[int] = None
    status: Optional[ReceiptCheckStatus] = None
    items: Optional[List[ReceiptItemIn]] = None


class BalanceItemIn(BaseModel):
    product_id: int
    actual_inventory: Decimal


class BalanceIn(BaseModel):
    items: List[BalanceItemIn] = Field(default_factory=list)


class ReceiptCheckOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    receipt_number: str
    periodic: Optional[str] = None
    supplier_id: Optional[int] = None
    date: Optional[datetime] = None
    note: Optional[str] = None
    status: ReceiptCheckStatus
    checker: Optional[int] = None
    user_created: int
    created_at: datetime


class ReceiptCheckDetail(BaseModel):
    receipt: ReceiptCheckOut
    change_log: List[ChangeLogOut]
    activity_log: List[ActivityLogOut]
    items: List[CheckItemOut]
    system_inventory: Decimal
    actual_inventory: Decimal
    total_difference: Decimal
    total_value_difference: Decimal


class ReceiptCheckSummary(ReceiptCheckOut):
    supplier_name: Optional[str] = None
    checker_name: Optional[str] = None
    system_inventory: Decimal
    actual_inventory: Decimal
    total_difference: Decimal
    total_value_difference: Decimal
    items: List[CheckItemOut]
    total_items: int


# ---------------------------------------------------------
# Shared
# ---------------------------------------------------------

class ReceiptRef(BaseModel):
    id: uuid.UUID
    receipt_number: str


class ReceiptItemsByNumber(BaseModel):
    receipt: ReceiptRef
    items: List[ReceiptItemOut]


class IdOut(BaseModel):
    id: uuid.UUID


class DeletedOut(BaseModel):
    deleted: List[uuid.UUID]


class PageOut(BaseModel):
    data: List[Any]
    metadata: Dict[str, Any]
