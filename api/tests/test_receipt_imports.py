from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select

from receipt_hub.db_models import (
    Notification, ReceiptImport, ReceiptImportStatus, UserActivity, UserActivityType,
)
from receipt_hub.models import ReceiptImportCreate, ReceiptImportUpdate, ReceiptItemIn
from receipt_hub.services.errors import (
    ClosedReceiptError, EmptyReceiptError, InvalidTransitionError, NotFoundError, RepositoryError,
)
from receipt_hub.services.notifications import LoggingPushClient, NotificationService, PushResult
from receipt_hub.services.receipt_imports import ReceiptImportService
from receipt_hub.services.repositories import ReceiptImportRepository, ReceiptItemRepository
from receipt_hub.services.results import Failure

from helpers import count_items, item_payload


async def _reload(db, receipt_id):
    result = await db.execute(
        select(ReceiptImport)
        .where(ReceiptImport.id == receipt_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@pytest.fixture
async def two_products(make_product):
    p1 = await make_product(1, inventory=20, cost_price=100)
    p2 = await make_product(2, inventory=8, cost_price=50)
    return p1, p2


class RecordingPushClient:
    ready = True

    def __init__(self):
        self.sent = []

    async def init(self):
        pass

    async def send(self, tokens, title, body, data=None):
        self.sent.append((tokens, title, data))
        return PushResult(True)


async def _create(service, items, user_id=1):
    payload = ReceiptImportCreate(items=[ReceiptItemIn(**i) for i in items])
    return await service.create(payload, user_id)


async def test_waiting_recomputes_totals(db_session, two_products):
    """
    GIVEN items [code 1: 5 x 100, code 2: 2 x 50]
    WHEN the receipt moves to WAITING
    THEN quantity 7, totalProduct 2, totalAmount 600
    """
    p1, p2 = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1, quantity=5), item_payload(p2, quantity=2)])

    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.WAITING), "An")

    receipt = await _reload(db_session, receipt_id)
    assert receipt.status == ReceiptImportStatus.WAITING
    assert receipt.quantity == 7
    assert receipt.total_product == 2
    assert receipt.total_amount == Decimal("600")
    assert receipt.change_log[-1]["oldStatus"] == "DRAFT"
    assert receipt.change_log[-1]["newStatus"] == "WAITING"
    assert receipt.change_log[-1]["user"] == "An"


async def test_waiting_without_items_changes_nothing(db_session):
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [])

    with pytest.raises(EmptyReceiptError):
        await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.WAITING), "An")

    receipt = await _reload(db_session, receipt_id)
    assert receipt.status == ReceiptImportStatus.DRAFT
    assert receipt.quantity == 0
    assert receipt.total_product == 0
    assert receipt.total_amount == 0
    assert receipt.change_log == []


async def test_change_log_grows_one_entry_per_transition(db_session, two_products):
    p1, _ = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1, quantity=1)])

    path = [ReceiptImportStatus.PROCESSING, ReceiptImportStatus.WAITING, ReceiptImportStatus.COMPLETED]
    snapshots = []
    for status in path:
        await service.update(receipt_id, ReceiptImportUpdate(status=status), "An")
        snapshots.append(list((await _reload(db_session, receipt_id)).change_log))

    assert [len(s) for s in snapshots] == [1, 2, 3]
    # earlier entries never change
    assert snapshots[2][:2] == snapshots[1]
    assert snapshots[1][:1] == snapshots[0]
    assert [e["newStatus"] for e in snapshots[2]] == ["PROCESSING", "WAITING", "COMPLETED"]
    stamps = [datetime.fromisoformat(e["timestamp"]) for e in snapshots[2]]
    assert stamps == sorted(stamps)


async def test_same_status_is_not_a_transition(db_session):
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [])

    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.DRAFT, note="x"), "An")

    receipt = await _reload(db_session, receipt_id)
    assert receipt.note == "x"
    assert receipt.change_log == []


async def test_completed_receipt_is_closed(db_session, two_products):
    p1, _ = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1)])
    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")

    with pytest.raises(InvalidTransitionError):
        await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.DRAFT), "An")


async def test_completion_notifies_creator(db_session, two_products, make_user):
    user = await make_user(device_tokens=["token-1"])
    p1, _ = two_products
    push = LoggingPushClient()
    await push.init()
    service = ReceiptImportService(db_session, notifications=NotificationService(db_session, push))
    receipt_id = await _create(service, [item_payload(p1)], user_id=user.id)

    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")

    notes = (await db_session.execute(
        select(Notification).where(Notification.user_id == user.id)
    )).scalars().all()
    assert len(notes) == 1
    assert notes[0].data["receiptId"] == str(receipt_id)


async def test_update_replaces_items_before_totalling(db_session, two_products):
    p1, p2 = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1, quantity=5)])

    await service.update(
        receipt_id,
        ReceiptImportUpdate(
            status=ReceiptImportStatus.WAITING,
            items=[ReceiptItemIn(**item_payload(p2, quantity=3))],
        ),
        "An",
    )

    detail = await service.get(receipt_id)
    assert [i.product_code for i in detail.items] == [2]
    assert detail.items[0].code == "NK00002"
    assert detail.receipt.quantity == 3
    assert detail.receipt.total_amount == Decimal("150")


async def test_create_records_user_activity(db_session, two_products):
    p1, _ = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1)], user_id=42)

    activity = (await db_session.execute(select(UserActivity))).scalar_one()
    assert activity.user_id == 42
    assert activity.type == UserActivityType.RECEIPT_IMPORT_CREATED
    assert activity.reference_id == receipt_id


async def test_delete_removes_receipt_and_items(db_session, make_product):
    products = [await make_product(code) for code in (1, 2, 3)]
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p) for p in products])

    deleted = await service.delete(receipt_id)

    assert deleted == [receipt_id]
    assert await _reload(db_session, receipt_id) is None
    assert await count_items(db_session, receipt_id) == 0


async def test_delete_rolls_back_when_items_fail(db_session, make_product, monkeypatch):
    """
    GIVEN a receipt with 3 items
    WHEN item deletion fails after the receipt row is gone
    THEN receipt and items are both still there
    """
    products = [await make_product(code) for code in (1, 2, 3)]
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p) for p in products])

    async def boom(self, receipt_id):
        raise RuntimeError("storage went away")

    monkeypatch.setattr(ReceiptItemRepository, "delete_by_receipt_id", boom)

    with pytest.raises(RuntimeError):
        await service.delete(receipt_id)

    assert await _reload(db_session, receipt_id) is not None
    assert await count_items(db_session, receipt_id) == 3


async def test_delete_unknown_receipt(db_session):
    with pytest.raises(NotFoundError):
        await ReceiptImportService(db_session).delete(uuid.uuid4())


async def test_items_by_receipt_number(db_session, two_products):
    p1, p2 = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1), item_payload(p2)])
    number = (await _reload(db_session, receipt_id)).receipt_number

    found = await service.items_by_number(number)

    assert found.receipt.id == receipt_id
    assert [i.code for i in found.items] == ["NK00001", "NK00002"]
    with pytest.raises(NotFoundError):
        await service.items_by_number("NH000")


async def test_list_paginates_newest_first(db_session):
    service = ReceiptImportService(db_session)
    ids = [await _create(service, []) for _ in range(3)]

    page = await service.list(page=1, limit=2)

    assert page.metadata["totalItems"] == 3
    assert page.metadata["totalPages"] == 2
    assert page.metadata["hasNext"] is True
    assert len(page.data) == 2
    assert {r.id for r in page.data} <= set(ids)

    drafts = await service.list(status=ReceiptImportStatus.COMPLETED)
    assert drafts.metadata["totalItems"] == 0


async def test_daily_totals_are_zero_filled(db_session, two_products):
    p1, p2 = two_products
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1, quantity=5), item_payload(p2, quantity=2)])
    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.WAITING), "An")
    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")
    await _create(service, [item_payload(p1)])  # still DRAFT, not counted

    today = datetime.now(timezone.utc).date()
    totals = await service.daily_totals(today - timedelta(days=2), today)

    assert [t.x for t in totals] == [(today - timedelta(days=n)).isoformat() for n in (2, 1, 0)]
    assert [t.y for t in totals] == [0, 0, 2]


async def test_completion_push_is_sent_after_commit(db_session, two_products, make_user):
    user = await make_user(device_tokens=["token-1"])
    p1, _ = two_products
    push = RecordingPushClient()
    service = ReceiptImportService(db_session, notifications=NotificationService(db_session, push))
    receipt_id = await _create(service, [item_payload(p1)], user_id=user.id)

    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")

    assert len(push.sent) == 1
    tokens, _, data = push.sent[0]
    assert tokens == ["token-1"]
    assert data["receiptId"] == str(receipt_id)


async def test_rolled_back_completion_sends_no_push(db_session, two_products, make_user, monkeypatch):
    """
    GIVEN a receipt whose creator has a registered device
    WHEN the COMPLETED update fails after the notification row was written
    THEN nothing is pushed and no notification row survives
    """
    user = await make_user(device_tokens=["token-1"])
    user_id = user.id
    p1, _ = two_products
    push = RecordingPushClient()
    service = ReceiptImportService(db_session, notifications=NotificationService(db_session, push))
    receipt_id = await _create(service, [item_payload(p1)], user_id=user_id)

    async def lost_row(self, receipt_id, values):
        return Failure("row vanished")

    monkeypatch.setattr(ReceiptImportRepository, "update", lost_row)

    with pytest.raises(RepositoryError):
        await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")

    assert push.sent == []
    notes = (await db_session.execute(
        select(Notification).where(Notification.user_id == user_id)
    )).scalars().all()
    assert notes == []
    assert (await _reload(db_session, receipt_id)).status == ReceiptImportStatus.DRAFT


async def test_completed_receipt_refuses_item_replacement(db_session, two_products):
    p1, p2 = two_products
    replacement = ReceiptItemIn(**item_payload(p2, quantity=9))
    service = ReceiptImportService(db_session)
    receipt_id = await _create(service, [item_payload(p1, quantity=2)])
    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.WAITING), "An")
    await service.update(receipt_id, ReceiptImportUpdate(status=ReceiptImportStatus.COMPLETED), "An")

    with pytest.raises(ClosedReceiptError):
        await service.update(receipt_id, ReceiptImportUpdate(items=[replacement]), "An")

    detail = await service.get(receipt_id)
    assert [i.product_code for i in detail.items] == [1]
    assert detail.receipt.quantity == 2
