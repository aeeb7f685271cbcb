"""Integration tests for the distributor portal."""

import pytest
from services.store_service.models import (
    OrderStatus,
    Task,
    TaskRelatedEntity,
    TaskStatus,
)
from sqlalchemy import select
from tests.factories import (
    OrderFactory,
    StockLevelFactory,
    StockLocationFactory,
    TaskFactory,
)


@pytest.fixture
def assigned_orders(db_session, customer, distributor):
    async def _build():
        orders = [
            OrderFactory.create(
                customer.id,
                status=OrderStatus.SHIPPED,
                distributor_id=distributor.id,
            ),
            OrderFactory.create(
                customer.id,
                status=OrderStatus.AWAITING_FULFILLMENT,
                distributor_id=distributor.id,
            ),
            OrderFactory.create(customer.id, status=OrderStatus.AWAITING_FULFILLMENT),
        ]
        db_session.add_all(orders)
        await db_session.commit()
        return orders

    return _build


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_assigned_orders_puts_open_work_first(
    client, distributor_headers, assigned_orders
):
    shipped, waiting, _unassigned = await assigned_orders()

    response = await client.get("/api/distributor/orders", headers=distributor_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [o["id"] for o in data["orders"]] == [str(waiting.id), str(shipped.id)]

    response = await client.get(
        "/api/distributor/orders",
        headers=distributor_headers,
        params={"status": "Shipped"},
    )
    assert [o["id"] for o in response.json()["orders"]] == [str(shipped.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_detail_is_scoped_to_distributor(
    client, customer, distributor_headers, assigned_orders
):
    _shipped, waiting, unassigned = await assigned_orders()

    response = await client.get(
        f"/api/distributor/orders/{waiting.id}", headers=distributor_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["customer"]["name"] == customer.name
    assert data["shipping_address"]["city"] == "Toronto"

    response = await client.get(
        f"/api/distributor/orders/{unassigned.id}", headers=distributor_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fulfill_order(
    client, db_session, admin_user, distributor, distributor_headers, assigned_orders
):
    _shipped, waiting, _unassigned = await assigned_orders()
    order_id, distributor_id = waiting.id, distributor.id
    db_session.add(
        TaskFactory.create(
            title=f"Fulfill Order {waiting.order_number}",
            related_to=TaskRelatedEntity.ORDER,
            related_id=str(order_id),
            assigned_to=distributor_id,
        )
    )
    await db_session.commit()

    response = await client.post(
        f"/api/distributor/orders/{order_id}/fulfill",
        headers=distributor_headers,
        json={"fulfillment_proof_url": "https://cdn.example.com/proof.jpg"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "Pending Fulfillment Verification"

    tasks = (
        await db_session.execute(
            select(Task.title, Task.status, Task.assigned_to).where(
                Task.related_id == str(order_id)
            )
        )
    ).all()
    by_prefix = {title.split(" HP-")[0]: (status, who) for title, status, who in tasks}
    assert by_prefix["Fulfill Order"] == (TaskStatus.COMPLETED, distributor_id)
    assert by_prefix["Verify Fulfillment"] == (TaskStatus.PENDING, admin_user.id)

    response = await client.get(
        f"/api/distributor/orders/{order_id}", headers=distributor_headers
    )
    data = response.json()
    assert data["fulfillment_proof_url"] == "https://cdn.example.com/proof.jpg"
    assert data["fulfilled_at"] is not None
    assert [f["status"] for f in data["fulfillments"]] == ["Pending"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fulfill_rules(client, distributor_headers, assigned_orders):
    shipped, waiting, unassigned = await assigned_orders()

    response = await client.post(
        f"/api/distributor/orders/{waiting.id}/fulfill",
        headers=distributor_headers,
        json={"notes": "Nothing to show"},
    )
    assert response.status_code == 400

    response = await client.post(
        f"/api/distributor/orders/{unassigned.id}/fulfill",
        headers=distributor_headers,
        json={"tracking_number": "1Z1"},
    )
    assert response.status_code == 404

    response = await client.post(
        f"/api/distributor/orders/{shipped.id}/fulfill",
        headers=distributor_headers,
        json={"tracking_number": "1Z1"},
    )
    assert response.status_code == 400
    assert "not awaiting fulfillment" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_distributor_inventory(
    client, db_session, distributor, distributor_headers, product, warehouse
):
    van = StockLocationFactory.create(name="Dana's Van", distributor_id=distributor.id)
    db_session.add(van)
    await db_session.flush()
    db_session.add(StockLevelFactory.create(product.id, van.id, quantity=12))
    await db_session.commit()

    response = await client.get(
        "/api/distributor/inventory", headers=distributor_headers
    )

    assert response.status_code == 200
    levels = response.json()
    assert [(lvl["location_name"], lvl["quantity"]) for lvl in levels] == [
        ("Dana's Van", 12)
    ]
    assert levels[0]["product_name"] == "Cool Mint"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_portal_requires_distributor_role(client, customer_headers):
    response = await client.get("/api/distributor/orders", headers=customer_headers)
    assert response.status_code == 403
