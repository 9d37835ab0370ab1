import pytest

from app.core.config import settings
from app.db.init_db import seed_notification_config

API = settings.API_V1_STR

CSV = (
    "ItemNumber,AssetType,Description,Category,Cost,MinimumThreshold,ReorderAmount,CurrentQuantity\n"
    "HW-001,Hardware,Dell Latitude 7420 Laptop,Laptop,1200.00,10,20,15\n"
    "HW-002,Hardware,USB-C Dock,Dock,150.00,10,5,3\n"
    ",Hardware,Missing item number,Dock,1,1,1,1\n"
)


def upload(client, content, filename="inventory.csv", user=None):
    headers = {settings.REMOTE_USER_HEADER: user} if user else {}
    return client.post(
        f"{API}/csv-upload",
        files={"file": (filename, content, "text/csv")},
        headers=headers
    )


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_upload_reports_rows_and_alerts(client, notifier):
    response = await upload(client, CSV.encode(), user="jdoe")

    assert response.status_code == 200
    body = response.json()
    assert body["success_count"] == 2
    assert body["failure_count"] == 1
    assert body["errors"] == ["Row 4: ItemNumber is required"]
    assert [a["item_number"] for a in body["low_stock_alerts"]] == ["HW-002"]
    assert [c["item_numbers"] for c in notifier.calls] == [["HW-002"]]

    history = (await client.get(f"{API}/inventory/audit-history")).json()
    assert {h["changed_by"] for h in history} == {"jdoe"}


@pytest.mark.asyncio
async def test_upload_without_user_header_uses_default_actor(client):
    await upload(client, CSV.encode())

    items = (await client.get(f"{API}/inventory")).json()
    assert {i["last_modified_by"] for i in items} == {settings.DEFAULT_ACTOR}


@pytest.mark.asyncio
async def test_upload_rejects_non_csv(client):
    response = await upload(client, CSV.encode(), filename="inventory.xlsx")

    assert response.status_code == 400
    assert response.json()["detail"] == "File must be a CSV"


@pytest.mark.asyncio
async def test_upload_rejects_empty_file(client):
    response = await upload(client, b"")

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


@pytest.mark.asyncio
async def test_upload_header_only_is_batch_error(client):
    response = await upload(client, b"ItemNumber,Description\n")

    assert response.status_code == 400
    assert response.json()["detail"] == "CSV file is empty"


@pytest.mark.asyncio
async def test_upload_malformed_csv_touches_nothing(client):
    content = b'ItemNumber,Description\nHW-1,Laptop\nHW-2,"unterminated\n'

    response = await upload(client, content)

    assert response.status_code == 400
    assert response.json()["detail"].startswith("CSV parsing error")
    assert (await client.get(f"{API}/inventory")).json() == []


@pytest.mark.asyncio
async def test_template_download(client):
    response = await client.get(f"{API}/csv-upload/template")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == "attachment; filename=inventory-template.csv"
    assert response.text.splitlines() == [
        "ItemNumber,AssetType,Description,Category,Cost,MinimumThreshold,ReorderAmount,CurrentQuantity",
        "HW-001,Hardware,Dell Latitude 7420 Laptop,Laptop,1200.00,10,20,15",
    ]


@pytest.mark.asyncio
async def test_inventory_crud_flow(client, notifier):
    created = await client.post(f"{API}/inventory", json={
        "item_number": "HW-100",
        "description": "27in Monitor",
        "category": "Monitor",
        "cost": "300.00",
        "minimum_threshold": 2,
        "reorder_amount": 4,
        "current_quantity": 3,
    }, headers={settings.REMOTE_USER_HEADER: "asmith"})
    assert created.status_code == 201
    item = created.json()
    assert item["last_modified_by"] == "asmith"
    assert item["needs_reorder"] is False

    duplicate = await client.post(f"{API}/inventory", json={"item_number": "HW-100", "description": "Again"})
    assert duplicate.status_code == 400

    adjusted = await client.post(f"{API}/inventory/update-quantity", json={
        "item_number": "HW-100",
        "quantity_change": -2,
        "service_now_ticket_url": "https://servicenow.example.com/ticket/1",
    })
    assert adjusted.status_code == 200
    assert adjusted.json()["current_quantity"] == 1
    assert adjusted.json()["needs_reorder"] is True
    assert [c["item_numbers"] for c in notifier.calls] == [["HW-100"]]

    too_far = await client.post(f"{API}/inventory/update-quantity", json={"item_number": "HW-100", "quantity_change": -5})
    assert too_far.status_code == 400

    rejected = await client.put(f"{API}/inventory/{item['id']}", json={"item_number": "HW-999"})
    assert rejected.status_code == 422

    edited = await client.put(f"{API}/inventory/{item['id']}", json={"reorder_amount": 10})
    assert edited.status_code == 200
    assert edited.json()["reorder_amount"] == 10

    assert (await client.get(f"{API}/inventory/low-stock-count")).json() == {"count": 1}
    assert (await client.get(f"{API}/inventory/types")).json() == ["Monitor"]

    history = (await client.get(f"{API}/inventory/{item['id']}/audit-history")).json()
    assert len(history) == 2

    deleted = await client.delete(f"{API}/inventory/{item['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["deleted_item"]["item_number"] == "HW-100"
    assert (await client.get(f"{API}/inventory/{item['id']}")).status_code == 404

    history = (await client.get(f"{API}/inventory/audit-history", params={"search": "HW-100"})).json()
    assert len(history) == 3
    assert history[0]["service_now_ticket_url"] == "ITEM DELETED"


@pytest.mark.asyncio
async def test_invalid_sort_is_rejected(client):
    response = await client.get(f"{API}/inventory", params={"sort_by": "password"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_dashboard_stats(client):
    await upload(client, CSV.encode())

    stats = (await client.get(f"{API}/inventory/dashboard-stats")).json()

    assert stats["total_items"] == 18
    assert stats["low_stock_count"] == 1
    assert stats["total_value"] == pytest.approx(18450.0)
    assert len(stats["recent_changes"]) == 2


@pytest.mark.asyncio
async def test_notification_config(client, db_session):
    assert (await client.get(f"{API}/configuration/notifications")).status_code == 404

    await seed_notification_config(db_session)
    current = (await client.get(f"{API}/configuration/notifications")).json()
    assert current["ad_group_name"] == "IT_Governance"

    response = await client.put(f"{API}/configuration/notifications", json={
        "ad_group_name": "IT_Purchasing",
        "additional_email_recipients": "buyer@example.com",
    })

    assert response.status_code == 200
    assert response.json()["id"] == current["id"]
    assert response.json()["additional_email_recipients"] == "buyer@example.com"
