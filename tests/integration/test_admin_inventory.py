"""Integration tests for admin inventory management."""

import uuid

import pytest
from services.store_service.models import StockLevel, StockMovement
from sqlalchemy import select
from tests.factories import StockLocationFactory


async def _level_id(db, product_id, location_id):
    result = await db.execute(
        select(StockLevel.id).where(
            StockLevel.product_id == product_id,
            StockLevel.variation_id.is_(None),
            StockLevel.location_id == location_id,
        )
    )
    return result.scalar_one()


@pytest.fixture
def storefront(db_session):
    async def _build(**overrides):
        location = StockLocationFactory.create(name="Downtown Store", **overrides)
        db_session.add(location)
        await db_session.commit()
        return location

    return _build


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_stock_levels(client, admin_headers, product, variation, warehouse):
    response = await client.get("/api/admin/inventory", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {item["quantity"] for item in data["items"]} == {100, 20}
    assert all(item["location_name"] == "Main Warehouse" for item in data["items"])

    response = await client.get(
        "/api/admin/inventory",
        headers=admin_headers,
        params={"location_id": str(uuid.uuid4())},
    )
    assert response.json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_low_stock_filter(client, db_session, admin_headers, product, warehouse):
    level_id = await _level_id(db_session, product.id, warehouse.id)

    response = await client.get(
        "/api/admin/inventory", headers=admin_headers, params={"low_stock": "true"}
    )
    assert response.json()["total"] == 0

    response = await client.put(
        f"/api/admin/inventory/item/{level_id}",
        headers=admin_headers,
        json={"reorder_point": 150},
    )
    assert response.status_code == 200
    assert response.json()["is_low_stock"] is True

    response = await client.get(
        "/api/admin/inventory", headers=admin_headers, params={"low_stock": "true"}
    )
    assert response.json()["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_stock_creates_then_updates(
    client, db_session, admin_headers, product, storefront
):
    store = await storefront()
    payload = {
        "product_id": str(product.id),
        "location_id": str(store.id),
        "quantity": 40,
        "notes": "Opening stock",
    }

    response = await client.post(
        "/api/admin/inventory", headers=admin_headers, json=payload
    )
    assert response.status_code == 201
    assert response.json()["available_quantity"] == 40

    response = await client.post(
        "/api/admin/inventory",
        headers=admin_headers,
        json=dict(payload, quantity=25),
    )
    assert response.status_code == 200
    assert response.json()["quantity"] == 25

    movements = (
        await db_session.execute(
            select(StockMovement.movement_type, StockMovement.quantity)
            .where(StockMovement.location_id == store.id)
            .order_by(StockMovement.created_at)
        )
    ).all()
    assert [(m.value, q) for m, q in movements] == [
        ("restock", 40),
        ("adjustment", -15),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_stock_validates_references(
    client, admin_headers, product, warehouse
):
    base = {"product_id": str(product.id), "location_id": str(warehouse.id)}

    response = await client.post(
        "/api/admin/inventory",
        headers=admin_headers,
        json=dict(base, location_id=str(uuid.uuid4()), quantity=1),
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/admin/inventory",
        headers=admin_headers,
        json=dict(base, variation_id=str(uuid.uuid4()), quantity=1),
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/admin/inventory", headers=admin_headers, json=dict(base, quantity=-1)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quantity_cannot_drop_below_reserved(
    client, db_session, admin_headers, product, warehouse
):
    level_id = await _level_id(db_session, product.id, warehouse.id)
    level = await db_session.get(StockLevel, level_id)
    level.reserved_quantity = 10
    await db_session.commit()

    response = await client.put(
        f"/api/admin/inventory/item/{level_id}",
        headers=admin_headers,
        json={"quantity": 5},
    )
    assert response.status_code == 400
    assert "reserved quantity (10)" in response.json()["detail"]

    response = await client.delete(
        f"/api/admin/inventory/item/{level_id}", headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_stock_summary(
    client, db_session, admin_headers, product, variation, warehouse
):
    level_id = await _level_id(db_session, product.id, warehouse.id)
    level = await db_session.get(StockLevel, level_id)
    level.reserved_quantity = 4
    await db_session.commit()

    response = await client.get(
        f"/api/admin/inventory/by-product/{product.id}", headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_quantity"] == 120
    assert data["total_reserved"] == 4
    assert data["total_available"] == 116
    assert len(data["levels"]) == 2

    response = await client.get(
        f"/api/admin/inventory/by-product/{uuid.uuid4()}", headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_stock_level(
    client, db_session, admin_headers, product, warehouse
):
    level_id = await _level_id(db_session, product.id, warehouse.id)

    response = await client.delete(
        f"/api/admin/inventory/item/{level_id}", headers=admin_headers
    )

    assert response.status_code == 200
    remaining = (
        await db_session.execute(select(StockLevel.id).where(StockLevel.id == level_id))
    ).scalar_one_or_none()
    assert remaining is None

    response = await client.delete(
        f"/api/admin/inventory/item/{level_id}", headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_transfer_between_locations(
    client, db_session, admin_headers, product, warehouse, storefront
):
    store = await storefront()
    transfer = {
        "product_id": str(product.id),
        "from_location_id": str(warehouse.id),
        "to_location_id": str(store.id),
        "quantity": 30,
    }

    response = await client.post(
        "/api/admin/inventory/transfer", headers=admin_headers, json=transfer
    )

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Transferred 30 unit(s)"
    assert data["source"]["quantity"] == 70
    assert data["destination"]["quantity"] == 30

    response = await client.get(
        "/api/admin/inventory/movements",
        headers=admin_headers,
        params={"location_id": str(store.id)},
    )
    movements = response.json()["movements"]
    assert [(m["movement_type"], m["quantity"]) for m in movements] == [
        ("transfer_in", 30)
    ]

    response = await client.post(
        "/api/admin/inventory/transfer",
        headers=admin_headers,
        json=dict(transfer, quantity=500),
    )
    assert response.status_code == 400
    assert "Insufficient stock at source location" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_transfer_rejects_bad_locations(
    client, admin_headers, product, warehouse, storefront
):
    closed = await storefront(is_active=False)
    transfer = {
        "product_id": str(product.id),
        "from_location_id": str(warehouse.id),
        "to_location_id": str(warehouse.id),
        "quantity": 1,
    }

    response = await client.post(
        "/api/admin/inventory/transfer", headers=admin_headers, json=transfer
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/admin/inventory/transfer",
        headers=admin_headers,
        json=dict(transfer, to_location_id=str(closed.id)),
    )
    assert response.status_code == 400
    assert "is not an active location" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_locations(client, admin_headers, warehouse, storefront):
    await storefront(is_active=False)

    response = await client.post(
        "/api/admin/inventory/locations",
        headers=admin_headers,
        json={"name": "Dana's Van", "type": "Distributor"},
    )
    assert response.status_code == 201
    assert response.json()["type"] == "Distributor"

    response = await client.get(
        "/api/admin/inventory/locations", headers=admin_headers
    )
    assert [loc["name"] for loc in response.json()] == ["Dana's Van", "Main Warehouse"]

    response = await client.get(
        "/api/admin/inventory/locations",
        headers=admin_headers,
        params={"include_inactive": "true"},
    )
    assert len(response.json()) == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inventory_requires_admin(client, distributor_headers):
    response = await client.get("/api/admin/inventory", headers=distributor_headers)
    assert response.status_code == 403
