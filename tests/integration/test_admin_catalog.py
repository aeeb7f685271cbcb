"""Integration tests for admin product and variation management."""

import uuid

import pytest
from services.store_service.models import AuditLog, Product, ProductVariation
from sqlalchemy import select
from tests.factories import OrderFactory, OrderItemFactory, ProductFactory

NEW_PRODUCT = {
    "name": "Blue Ice",
    "description": "Extra cold",
    "category": "Pouches",
    "flavor": "Ice",
    "strength": 6,
    "price": "14.00",
    "variations": [
        {
            "name": "Blue Ice 6mg",
            "flavor": "Ice",
            "strength": 6,
            "price": "14.00",
            "sku": "BI-6",
        },
        {
            "name": "Blue Ice 12mg",
            "flavor": "Ice",
            "strength": 12,
            "price": "16.00",
            "sku": "BI-12",
        },
    ],
}


async def _actions(db):
    result = await db.execute(select(AuditLog.action).order_by(AuditLog.performed_at))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_with_variations(client, db_session, admin_headers):
    response = await client.post(
        "/api/admin/products", headers=admin_headers, json=NEW_PRODUCT
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Blue Ice"
    assert data["available_stock"] == 0
    assert sorted(v["sku"] for v in data["variations"]) == ["BI-12", "BI-6"]
    assert await _actions(db_session) == ["product_created"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_rejects_duplicate_variations(
    client, admin_headers, variation
):
    duplicate = dict(NEW_PRODUCT)
    duplicate["variations"] = [NEW_PRODUCT["variations"][0]] * 2
    response = await client.post(
        "/api/admin/products", headers=admin_headers, json=duplicate
    )
    assert response.status_code == 409

    taken_sku = dict(NEW_PRODUCT)
    taken_sku["variations"] = [dict(NEW_PRODUCT["variations"][0], sku="HP-MINT-12")]
    response = await client.post(
        "/api/admin/products", headers=admin_headers, json=taken_sku
    )
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_includes_inactive(client, db_session, admin_headers, product):
    db_session.add(ProductFactory.create(name="Hidden", is_active=False))
    await db_session.commit()

    response = await client.get("/api/admin/products", headers=admin_headers)
    assert response.json()["total"] == 2

    response = await client.get(
        "/api/admin/products", headers=admin_headers, params={"is_active": "false"}
    )
    assert [p["name"] for p in response.json()["products"]] == ["Hidden"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_product_records_audit(client, db_session, admin_headers, product):
    response = await client.put(
        f"/api/admin/products/{product.id}",
        headers=admin_headers,
        json={"price": "16.50", "is_active": False},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert data["available_stock"] == 100

    audit = (
        await db_session.execute(
            select(AuditLog).where(AuditLog.action == "product_updated")
        )
    ).scalar_one()
    assert audit.old_value == {"price": "15.00", "is_active": True}
    assert audit.new_value == {"price": "16.50", "is_active": False}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_unordered_product(client, db_session, admin_headers, product):
    response = await client.delete(
        f"/api/admin/products/{product.id}", headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["deactivated"] is False
    assert (
        await db_session.execute(select(Product).where(Product.id == product.id))
    ).scalar_one_or_none() is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_ordered_product_deactivates(
    client, db_session, admin_headers, customer, product, variation
):
    order = OrderFactory.create(customer.id)
    db_session.add(order)
    await db_session.flush()
    db_session.add(OrderItemFactory.create(order.id, product.id))
    await db_session.commit()

    response = await client.delete(
        f"/api/admin/products/{product.id}", headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["deactivated"] is True
    product = await db_session.get(Product, product.id, populate_existing=True)
    assert product.is_active is False
    variation = await db_session.get(
        ProductVariation, variation.id, populate_existing=True
    )
    assert variation.is_active is False

    response = await client.get(f"/api/products/{product.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_catalog_admin_requires_admin(client, customer_headers):
    response = await client.post(
        "/api/admin/products", headers=customer_headers, json=NEW_PRODUCT
    )
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Variations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_variation_lifecycle(client, db_session, admin_headers, product):
    response = await client.post(
        f"/api/admin/products/{product.id}/variations",
        headers=admin_headers,
        json={
            "name": "Cool Mint 3mg",
            "flavor": "Mint",
            "strength": 3,
            "price": "13.00",
            "sku": "HP-MINT-3",
        },
    )
    assert response.status_code == 201
    variation_id = response.json()["id"]

    response = await client.post(
        f"/api/admin/products/{product.id}/variations",
        headers=admin_headers,
        json={"name": "Again", "flavor": "Mint", "strength": 3, "price": "13.00"},
    )
    assert response.status_code == 409

    response = await client.put(
        f"/api/admin/products/variations/{variation_id}",
        headers=admin_headers,
        json={"price": "12.00"},
    )
    assert response.status_code == 200
    assert response.json()["price"] == "12.00"

    response = await client.get(
        f"/api/admin/products/{product.id}/variations", headers=admin_headers
    )
    assert [v["id"] for v in response.json()] == [variation_id]

    response = await client.delete(
        f"/api/admin/products/variations/{variation_id}", headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["deactivated"] is False
    assert await db_session.get(ProductVariation, uuid.UUID(variation_id)) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_variation_to_taken_sku_conflicts(
    client, db_session, admin_headers, product, variation
):
    other = ProductFactory.create(name="Other")
    db_session.add(other)
    await db_session.commit()
    response = await client.post(
        f"/api/admin/products/{other.id}/variations",
        headers=admin_headers,
        json={"name": "Other 6mg", "strength": 6, "price": "10.00", "sku": "OT-6"},
    )
    assert response.status_code == 201

    response = await client.put(
        f"/api/admin/products/variations/{response.json()['id']}",
        headers=admin_headers,
        json={"sku": "HP-MINT-12"},
    )
    assert response.status_code == 409
