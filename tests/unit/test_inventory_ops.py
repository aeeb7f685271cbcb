"""Unit tests for stock reservations, restocks and transfers."""

import pytest
from services.store_service.models import StockMovement, StockMovementType
from services.store_service.services.inventory import (
    InsufficientStockError,
    InventoryError,
    get_available_quantity,
    reserve_order_item,
    set_stock_quantity,
    transfer_stock,
)
from sqlalchemy import select
from tests.factories import (
    OrderFactory,
    OrderItemFactory,
    StockLevelFactory,
    StockLocationFactory,
)


async def _movements(db, product_id):
    result = await db.execute(
        select(StockMovement)
        .where(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reservation_uses_location_with_most_available(
    db_session, customer, product, warehouse
):
    storefront = StockLocationFactory.create(name="Storefront")
    db_session.add(storefront)
    await db_session.flush()
    db_session.add(StockLevelFactory.create(product.id, storefront.id, quantity=250))
    order = OrderFactory.create(customer.id)
    db_session.add(order)
    await db_session.flush()
    item = OrderItemFactory.create(order.id, product.id, quantity=5)
    db_session.add(item)
    await db_session.flush()

    level = await reserve_order_item(db_session, order, item, performed_by="test")
    await db_session.flush()

    assert level.location_id == storefront.id
    assert level.reserved_quantity == 5
    assert item.stock_location_id == storefront.id
    movements = await _movements(db_session, product.id)
    assert [(m.movement_type, m.quantity) for m in movements] == [
        (StockMovementType.RESERVATION, -5)
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reservation_must_fit_a_single_location(db_session, customer, product):
    order = OrderFactory.create(customer.id)
    db_session.add(order)
    await db_session.flush()
    item = OrderItemFactory.create(
        order.id, product.id, quantity=101, product_name="Cool Mint"
    )
    db_session.add(item)
    await db_session.flush()

    with pytest.raises(InsufficientStockError) as excinfo:
        await reserve_order_item(db_session, order, item, performed_by="test")

    assert excinfo.value.requested == 101
    assert excinfo.value.available == 100
    assert "Cool Mint" in str(excinfo.value)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_available_quantity_ignores_inactive_locations(db_session, product):
    closed = StockLocationFactory.create(name="Closed", is_active=False)
    db_session.add(closed)
    await db_session.flush()
    db_session.add(StockLevelFactory.create(product.id, closed.id, quantity=40))
    await db_session.flush()

    assert await get_available_quantity(db_session, product.id) == 100


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_quantity_logs_restock_and_adjustment(db_session, product, warehouse):
    level, created = await set_stock_quantity(
        db_session,
        product_id=product.id,
        variation_id=None,
        location_id=warehouse.id,
        quantity=130,
        performed_by="admin",
    )
    assert created is False
    assert level.quantity == 130

    await set_stock_quantity(
        db_session,
        product_id=product.id,
        variation_id=None,
        location_id=warehouse.id,
        quantity=120,
        performed_by="admin",
        reorder_point=25,
    )
    await db_session.flush()

    assert level.reorder_point == 25
    movements = await _movements(db_session, product.id)
    assert {(m.movement_type, m.quantity) for m in movements} == {
        (StockMovementType.RESTOCK, 30),
        (StockMovementType.ADJUSTMENT, -10),
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_quantity_below_reserved_is_rejected(db_session, product, warehouse):
    level, _ = await set_stock_quantity(
        db_session,
        product_id=product.id,
        variation_id=None,
        location_id=warehouse.id,
        quantity=100,
        performed_by="admin",
    )
    level.reserved_quantity = 10

    with pytest.raises(InventoryError, match="reserved quantity"):
        await set_stock_quantity(
            db_session,
            product_id=product.id,
            variation_id=None,
            location_id=warehouse.id,
            quantity=5,
            performed_by="admin",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transfer_moves_stock_and_creates_destination_level(
    db_session, product, warehouse
):
    shop = StockLocationFactory.create(name="Shop")
    db_session.add(shop)
    await db_session.flush()

    source, destination = await transfer_stock(
        db_session,
        product_id=product.id,
        variation_id=None,
        from_location_id=warehouse.id,
        to_location_id=shop.id,
        quantity=30,
        performed_by="admin",
    )
    await db_session.flush()

    assert source.quantity == 70
    assert destination.quantity == 30
    assert destination.location_id == shop.id
    movements = await _movements(db_session, product.id)
    assert {(m.movement_type, m.quantity) for m in movements} == {
        (StockMovementType.TRANSFER_OUT, -30),
        (StockMovementType.TRANSFER_IN, 30),
    }


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "quantity, same_location, message",
    [
        (0, False, "must be positive"),
        (5, True, "must be different"),
        (500, False, "Insufficient stock"),
    ],
)
async def test_transfer_rejections(
    db_session, product, warehouse, quantity, same_location, message
):
    shop = StockLocationFactory.create(name="Shop")
    db_session.add(shop)
    await db_session.flush()

    with pytest.raises(InventoryError, match=message):
        await transfer_stock(
            db_session,
            product_id=product.id,
            variation_id=None,
            from_location_id=warehouse.id,
            to_location_id=warehouse.id if same_location else shop.id,
            quantity=quantity,
            performed_by="admin",
        )
