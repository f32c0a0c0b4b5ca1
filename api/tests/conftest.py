import os
import tempfile
from decimal import Decimal

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "receipt_hub_test_logs"))

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from receipt_hub.database import Base, make_session_factory
from receipt_hub import db_models  # noqa: F401  (registers tables)
from receipt_hub.db_models import Product, User


@pytest.fixture
async def engine():
    """
    In-memory SQLite shared by every connection of one test.

    SQLAlchemy emits BEGIN itself so SAVEPOINT / ROLLBACK behave as on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------

@pytest.fixture
def make_product(db_session):
    async def _make(code, inventory=10, cost_price=100, barcode=None, name=None):
        product = Product(
            product_code=code,
            barcode=barcode,
            product_name=name or f"Product {code}",
            inventory=Decimal(str(inventory)),
            cost_price=Decimal(str(cost_price)),
            selling_price=Decimal(str(cost_price)) * 2,
        )
        db_session.add(product)
        await db_session.commit()
        return product
    return _make


@pytest.fixture
def make_user(db_session):
    async def _make(username="operator", fullname="Store Operator", device_tokens=None):
        user = User(username=username, fullname=fullname, device_tokens=device_tokens or [])
        db_session.add(user)
        await db_session.commit()
        return user
    return _make
