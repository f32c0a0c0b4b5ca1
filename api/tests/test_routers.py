import uuid

import httpx
import pytest

from receipt_hub.database import get_session
from receipt_hub.main import app

HEADERS = {"X-User-Id": "1", "X-User-Name": "An"}


@pytest.fixture
async def client(session_factory):
    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _line(product, quantity):
    return {
        "product_id": product.id,
        "product_code": product.product_code,
        "product_name": product.product_name,
        "quantity": quantity,
        "inventory": str(product.inventory),
        "actual_inventory": str(product.inventory),
        "cost_price": str(product.cost_price),
    }


async def test_import_lifecycle_over_http(client, make_product):
    p1 = await make_product(1, cost_price=100)
    p2 = await make_product(2, cost_price=50)

    r = await client.post("/receipt-imports", json={"items": [_line(p1, 5), _line(p2, 2)]}, headers=HEADERS)
    assert r.status_code == 201
    receipt_id = r.json()["id"]

    r = await client.patch(f"/receipt-imports/{receipt_id}", json={"status": "WAITING"}, headers=HEADERS)
    assert r.status_code == 200

    r = await client.get(f"/receipt-imports/{receipt_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["receipt"]["status"] == "WAITING"
    assert body["receipt"]["quantity"] == 7
    assert float(body["receipt"]["total_amount"]) == 600
    assert body["change_log"][0]["user"] == "An"
    assert [i["code"] for i in body["items"]] == ["NK00001", "NK00002"]

    r = await client.delete(f"/receipt-imports/{receipt_id}")
    assert r.status_code == 200
    assert r.json() == {"deleted": [receipt_id]}

    r = await client.get(f"/receipt-imports/{receipt_id}")
    assert r.status_code == 404


async def test_waiting_on_empty_receipt_is_400(client):
    r = await client.post("/receipt-imports", json={}, headers=HEADERS)
    receipt_id = r.json()["id"]

    r = await client.patch(f"/receipt-imports/{receipt_id}", json={"status": "WAITING"}, headers=HEADERS)

    assert r.status_code == 400
    assert "No items" in r.json()["detail"]


async def test_quick_scan_endpoint(client, make_product):
    await make_product(12, inventory=3)

    first = await client.post("/receipt-imports/quick-scan", json={"code": "NK00012"}, headers=HEADERS)
    second = await client.post("/receipt-imports/quick-scan", json={"code": "NK00012"}, headers=HEADERS)

    assert first.status_code == 200
    assert first.json()["receipt_created"] is True
    assert second.json()["id"] == first.json()["id"]
    assert float(second.json()["inventory"]) == 5

    r = await client.post("/receipt-imports/quick-scan", json={"code": "NK77777"}, headers=HEADERS)
    assert r.status_code == 404


async def test_acting_user_header_is_required(client):
    r = await client.post("/receipt-imports", json={})

    assert r.status_code == 422


async def test_check_balance_over_http(client, make_product):
    product = await make_product(1, inventory=10)
    line = _line(product, 1) | {"actual_inventory": "7"}

    r = await client.post("/receipt-checks", json={"items": [line]}, headers=HEADERS)
    receipt_id = r.json()["id"]

    r = await client.patch(f"/receipt-checks/{receipt_id}", json={"status": "BALANCED"}, headers=HEADERS)
    assert r.status_code == 400

    r = await client.post(
        f"/receipt-checks/{receipt_id}/balance",
        json={"items": [{"product_id": product.id, "actual_inventory": "7"}]},
        headers=HEADERS,
    )
    assert r.status_code == 200

    r = await client.get(f"/receipt-checks/{receipt_id}")
    body = r.json()
    assert body["receipt"]["status"] == "BALANCED"
    assert body["activity_log"][0]["action"] == "An changed the status"


async def test_check_listing_and_lookup(client, make_product):
    product = await make_product(5, inventory=2)
    r = await client.post("/receipt-checks", json={"items": [_line(product, 1)]}, headers=HEADERS)
    receipt_id = r.json()["id"]

    r = await client.post(f"/receipt-checks/{receipt_id}/items/NK00005/count")
    assert r.status_code == 200

    r = await client.get("/receipt-checks", params={"limit": 100})
    assert r.status_code == 200
    body = r.json()
    assert body["metadata"]["limit"] == 50
    assert body["data"][0]["total_items"] == 1

    number = (await client.get(f"/receipt-checks/{receipt_id}")).json()["receipt"]["receipt_number"]
    r = await client.get(f"/receipt-checks/by-number/{number}")
    assert r.json()["receipt"]["id"] == receipt_id
    assert float(r.json()["items"][0]["actual_inventory"]) == 3

    r = await client.get(f"/receipt-checks/{uuid.uuid4()}")
    assert r.status_code == 404
