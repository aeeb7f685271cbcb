"""Unit tests for the order state machine and its side effects.

Tests call the workflow directly with the db_session fixture.
"""

from decimal import Decimal

import pytest
from services.members_service.models import Referral, ReferralStatus
from services.payments_service.models import Commission, CommissionStatus
from services.store_service.models import (
    OrderStatus,
    OrderStatusHistory,
    StockLevel,
    Task,
    TaskCategory,
    TaskRelatedEntity,
    TaskStatus,
)
from services.store_service.services.inventory import reserve_order_item
from services.store_service.services.order_workflow import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    OrderTransitionError,
    can_transition,
    load_order_for_update,
    transition_order,
)
from sqlalchemy import select
from tests.factories import OrderFactory, OrderItemFactory, TaskFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _reserved_order(db, user, product, quantity=3, **order_overrides):
    """Insert an order with one line and reserve its stock."""
    order = OrderFactory.create(user.id, **order_overrides)
    db.add(order)
    await db.flush()
    db.add(OrderItemFactory.create(order.id, product.id, quantity=quantity))
    await db.commit()

    order = await load_order_for_update(db, order.id)
    for item in order.items:
        await reserve_order_item(db, order, item, performed_by="test")
    await db.commit()
    return order


async def _stock(db, product):
    result = await db.execute(
        select(StockLevel)
        .where(StockLevel.product_id == product.id, StockLevel.variation_id.is_(None))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_terminal_statuses_have_no_exits():
    assert TERMINAL_STATUSES == {OrderStatus.CANCELLED, OrderStatus.REFUNDED}
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()


@pytest.mark.unit
def test_every_status_has_an_entry():
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (OrderStatus.PENDING_APPROVAL, OrderStatus.PROCESSING, True),
        (OrderStatus.PENDING_APPROVAL, OrderStatus.READY_FOR_FULFILLMENT, True),
        (OrderStatus.PENDING_APPROVAL, OrderStatus.SHIPPED, False),
        (
            OrderStatus.PENDING_FULFILLMENT_VERIFICATION,
            OrderStatus.AWAITING_FULFILLMENT,
            True,
        ),
        (OrderStatus.AWAITING_SHIPMENT, OrderStatus.SHIPPED, True),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, False),
        (OrderStatus.DELIVERED, OrderStatus.REFUNDED, True),
        (OrderStatus.CANCELLED, OrderStatus.PROCESSING, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_invalid_transition_raises(db_session, customer, product):
    order = await _reserved_order(db_session, customer, product)

    with pytest.raises(OrderTransitionError, match="Pending Approval to Shipped"):
        await transition_order(
            db_session, order, OrderStatus.SHIPPED, performed_by="test"
        )
    assert order.status == OrderStatus.PENDING_APPROVAL


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_releases_reservations_and_open_tasks(
    db_session, customer, product
):
    order = await _reserved_order(db_session, customer, product, quantity=4)
    assert (await _stock(db_session, product)).reserved_quantity == 4

    task = TaskFactory.create(
        title="Approve Order",
        category=TaskCategory.ORDER_REVIEW,
        related_to=TaskRelatedEntity.ORDER,
        related_id=str(order.id),
    )
    db_session.add(task)
    await db_session.commit()

    order = await load_order_for_update(db_session, order.id)
    await transition_order(
        db_session, order, OrderStatus.CANCELLED, performed_by="admin-1", notes="Oops"
    )
    await db_session.commit()

    level = await _stock(db_session, product)
    assert level.reserved_quantity == 0
    assert level.quantity == 100
    assert order.cancelled_at is not None
    assert all(item.stock_location_id is None for item in order.items)

    await db_session.refresh(task)
    assert task.status == TaskStatus.CANCELLED

    history = (
        await db_session.execute(
            select(OrderStatusHistory).where(OrderStatusHistory.order_id == order.id)
        )
    ).scalars().all()
    assert [h.status for h in history] == [OrderStatus.CANCELLED]
    assert history[0].changed_by == "admin-1"
    assert history[0].notes == "Oops"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ship_commits_sale_and_creates_commission(
    db_session, customer, referrer, product
):
    order = await _reserved_order(
        db_session,
        customer,
        product,
        quantity=2,
        status=OrderStatus.AWAITING_SHIPMENT,
        applied_referral_code=referrer.referral_code,
        total_amount=Decimal("43.90"),
    )

    await transition_order(db_session, order, OrderStatus.SHIPPED, performed_by="a")
    await db_session.commit()

    level = await _stock(db_session, product)
    assert level.quantity == 98
    assert level.reserved_quantity == 0
    assert order.shipped_at is not None

    commission = (
        await db_session.execute(
            select(Commission).where(Commission.order_id == order.id)
        )
    ).scalar_one()
    assert commission.user_id == referrer.id
    assert commission.amount == Decimal("2.20")
    assert commission.status == CommissionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deliver_releases_commission_and_converts_referral(
    db_session, customer, referrer, product
):
    customer.referred_by_id = referrer.id
    referral = Referral(
        referrer_id=referrer.id,
        referred_user_id=customer.id,
        email=customer.email,
        referral_code=referrer.referral_code,
        status=ReferralStatus.REGISTERED,
    )
    db_session.add(referral)
    order = await _reserved_order(
        db_session, customer, product, status=OrderStatus.AWAITING_SHIPMENT
    )

    await transition_order(db_session, order, OrderStatus.SHIPPED, performed_by="a")
    await transition_order(db_session, order, OrderStatus.DELIVERED, performed_by="a")
    await db_session.commit()

    commission = (
        await db_session.execute(
            select(Commission).where(Commission.order_id == order.id)
        )
    ).scalar_one()
    assert commission.status == CommissionStatus.PENDING_PAYOUT
    assert order.delivered_at is not None

    await db_session.refresh(referral)
    assert referral.status == ReferralStatus.CONVERTED
    assert referral.converted_at is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_after_shipping_cancels_unpaid_commission(
    db_session, customer, referrer, product
):
    order = await _reserved_order(
        db_session,
        customer,
        product,
        status=OrderStatus.AWAITING_SHIPMENT,
        applied_referral_code=referrer.referral_code,
    )
    await transition_order(db_session, order, OrderStatus.SHIPPED, performed_by="a")
    await transition_order(db_session, order, OrderStatus.REFUNDED, performed_by="a")
    await db_session.commit()

    commission = (
        await db_session.execute(
            select(Commission).where(Commission.order_id == order.id)
        )
    ).scalar_one()
    assert commission.status == CommissionStatus.CANCELLED
    assert commission.notes.startswith("Order refunded")
    # Shipped stock stays sold
    assert (await _stock(db_session, product)).quantity == 97
