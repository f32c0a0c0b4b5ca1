# receipt_hub/db_models.py
"""
SQLAlchemy ORM Models for Receipt Hub.

Import receipts and check receipts share one receipt_items table; an item
knows its owner only through receipt_id (receipt ids are UUIDs, so the two
receipt kinds never collide).
"""
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import enum
import uuid

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, Text, DateTime,
    Numeric, ForeignKey, Index, UniqueConstraint,
    Enum as SQLEnum, JSON, Uuid, text
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from receipt_hub.database import Base

# BIGINT ids on PostgreSQL, rowid-backed INTEGER ids on SQLite
BigIntId = BigInteger().with_variant(Integer, "sqlite")
JsonDoc = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ============================================================================
# ENUMS (matching PostgreSQL ENUMs)
# ============================================================================

class ReceiptImportStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    WAITING = "WAITING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ReceiptCheckStatus(str, enum.Enum):
    PENDING = "PENDING"
    CHECKING = "CHECKING"
    BALANCED = "BALANCED"
    CANCELLED = "CANCELLED"


class UserActivityType(str, enum.Enum):
    RECEIPT_IMPORT_CREATED = "RECEIPT_IMPORT_CREATED"
    RECEIPT_CHECK_CREATED = "RECEIPT_CHECK_CREATED"


class NotificationStatus(str, enum.Enum):
    UNREAD = "UNREAD"
    READ = "READ"


# ============================================================================
# MIXIN for updated_at
# ============================================================================

class TimestampMixin:
    """Mixin for created_at and updated_at columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


# ============================================================================
# 1. USERS
# ============================================================================

class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    fullname: Mapped[Optional[str]] = mapped_column(String(255))
    store_code: Mapped[Optional[str]] = mapped_column(String(50))
    device_tokens: Mapped[list] = mapped_column(JsonDoc, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ============================================================================
# 2. SUPPLIERS
# ============================================================================

class Supplier(TimestampMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ============================================================================
# 3. PRODUCTS (inventory is the shared stock figure)
# ============================================================================

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    product_code: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), unique=True)
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(32))
    category: Mapped[Optional[str]] = mapped_column(String(255))
    warehouse: Mapped[Optional[str]] = mapped_column(String(255))
    cost_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    inventory: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ============================================================================
# 4. RECEIPT IMPORTS
# ============================================================================

class ReceiptImport(TimestampMixin, Base):
    __tablename__ = "receipt_imports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    receipt_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_product: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0, nullable=False)
    supplier_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("suppliers.id", ondelete="SET NULL"))
    warehouse: Mapped[Optional[str]] = mapped_column(String(255))
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    import_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[ReceiptImportStatus] = mapped_column(
        SQLEnum(ReceiptImportStatus, name="receipt_import_status"),
        default=ReceiptImportStatus.DRAFT,
        nullable=False
    )
    user_created: Mapped[int] = mapped_column(BigInteger, nullable=False)
    change_log: Mapped[list] = mapped_column(JsonDoc, default=list, nullable=False)

    __table_args__ = (
        # one in-progress quick-scan receipt per operator
        Index(
            "uq_receipt_imports_processing_per_user", "user_created", unique=True,
            postgresql_where=text("status = 'PROCESSING'"),
            sqlite_where=text("status = 'PROCESSING'"),
        ),
        Index("idx_receipt_imports_status", "status"),
        Index("idx_receipt_imports_created", "created_at"),
    )


# ============================================================================
# 5. RECEIPT CHECKS
# ============================================================================

class ReceiptCheck(TimestampMixin, Base):
    __tablename__ = "receipt_checks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    receipt_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    periodic: Mapped[Optional[str]] = mapped_column(String(100))
    supplier_id: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("suppliers.id", ondelete="SET NULL"))
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    note: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[ReceiptCheckStatus] = mapped_column(
        SQLEnum(ReceiptCheckStatus, name="receipt_check_status"),
        default=ReceiptCheckStatus.PENDING,
        nullable=False
    )
    checker: Mapped[Optional[int]] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="SET NULL"))
    user_created: Mapped[int] = mapped_column(BigInteger, nullable=False)
    change_log: Mapped[list] = mapped_column(JsonDoc, default=list, nullable=False)
    activity_log: Mapped[list] = mapped_column(JsonDoc, default=list, nullable=False)

    __table_args__ = (
        Index("idx_receipt_checks_status", "status"),
        Index("idx_receipt_checks_date", "date"),
    )


# ============================================================================
# 6. RECEIPT ITEMS (shared by both receipt kinds)
# ============================================================================

class ReceiptItem(TimestampMixin, Base):
    __tablename__ = "receipt_items"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    receipt_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    product_code: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    inventory: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    actual_inventory: Mapped[Decimal] = mapped_column(Numeric(14, 3), default=0, nullable=False)
    discount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("receipt_id", "product_code", name="uq_receipt_items_receipt_product"),
        Index("idx_receipt_items_receipt", "receipt_id"),
    )


# ============================================================================
# 7. USER ACTIVITIES
# ============================================================================

class UserActivity(Base):
    __tablename__ = "user_activities"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[UserActivityType] = mapped_column(
        SQLEnum(UserActivityType, name="user_activity_type"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_user_activities_user", "user_id", "created_at"),
    )


# ============================================================================
# 8. PRODUCT INVENTORY LOGS (IMMUTABLE)
# ============================================================================

class ProductInventoryLog(Base):
    __tablename__ = "product_inventory_logs"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    product_code: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    old_inventory: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    new_inventory: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    cost_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_inventory_logs_product", "product_id", "created_at"),
    )


# ============================================================================
# 9. NOTIFICATIONS
# ============================================================================

class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[NotificationStatus] = mapped_column(
        SQLEnum(NotificationStatus, name="notification_status"),
        default=NotificationStatus.UNREAD,
        nullable=False
    )
    data: Mapped[Optional[dict]] = mapped_column(JsonDoc)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_notifications_user", "user_id", "status"),
    )
