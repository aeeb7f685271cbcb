"""Unit tests for the worker's scheduled jobs.

Jobs open their own sessions, so setup is committed first and results are
read back with fresh queries.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from services.payments_service import stripe_client, tasks
from services.payments_service.models import (
    Commission,
    CommissionStatus,
    Payment,
    PaymentStatus,
)
from services.store_service.models import (
    Order,
    OrderPaymentStatus,
    OrderStatus,
    StockLevel,
)
from services.store_service.services.inventory import reserve_order_item
from services.store_service.services.order_workflow import load_order_for_update
from sqlalchemy import select
from tests.factories import (
    CommissionFactory,
    OrderFactory,
    OrderItemFactory,
    PaymentFactory,
)


async def _fresh(db, model, id_):
    return await db.get(model, id_, populate_existing=True)


# ---------------------------------------------------------------------------
# release_commissions_for_delivered_orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commissions_release_after_hold_period(
    db_session, session_factory, customer, referrer
):
    hold = get_settings().COMMISSION_HOLD_DAYS
    old_order = OrderFactory.create(
        customer.id,
        status=OrderStatus.DELIVERED,
        delivered_at=utc_now() - timedelta(days=hold + 1),
    )
    recent_order = OrderFactory.create(
        customer.id,
        status=OrderStatus.DELIVERED,
        delivered_at=utc_now() - timedelta(days=1),
    )
    shipped_order = OrderFactory.create(customer.id, status=OrderStatus.SHIPPED)
    db_session.add_all([old_order, recent_order, shipped_order])
    await db_session.flush()
    due = CommissionFactory.create(referrer.id, old_order.id)
    held = CommissionFactory.create(referrer.id, recent_order.id)
    not_delivered = CommissionFactory.create(referrer.id, shipped_order.id)
    db_session.add_all([due, held, not_delivered])
    await db_session.commit()

    released = await tasks.release_commissions_for_delivered_orders(session_factory)

    assert released == 1
    assert (await _fresh(db_session, Commission, due.id)).status == (
        CommissionStatus.PENDING_PAYOUT
    )
    assert (await _fresh(db_session, Commission, held.id)).status == (
        CommissionStatus.PENDING
    )
    assert (await _fresh(db_session, Commission, not_delivered.id)).status == (
        CommissionStatus.PENDING
    )


# ---------------------------------------------------------------------------
# expire_stale_orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stale_unpaid_orders_are_cancelled(
    db_session, session_factory, customer, product
):
    timeout = get_settings().ORDER_PAYMENT_TIMEOUT_HOURS
    stale = OrderFactory.create(
        customer.id, created_at=utc_now() - timedelta(hours=timeout + 2)
    )
    fresh = OrderFactory.create(customer.id)
    paid = OrderFactory.create(
        customer.id,
        created_at=utc_now() - timedelta(hours=timeout + 2),
        payment_status=OrderPaymentStatus.COMPLETED,
    )
    db_session.add_all([stale, fresh, paid])
    await db_session.flush()
    db_session.add(OrderItemFactory.create(stale.id, product.id, quantity=6))
    await db_session.commit()

    stale = await load_order_for_update(db_session, stale.id)
    await reserve_order_item(db_session, stale, stale.items[0], performed_by="test")
    await db_session.commit()

    expired = await tasks.expire_stale_orders(session_factory)

    assert expired == 1
    stale = await _fresh(db_session, Order, stale.id)
    assert stale.status == OrderStatus.CANCELLED
    assert stale.cancelled_at is not None
    assert (await _fresh(db_session, Order, fresh.id)).status == (
        OrderStatus.PENDING_APPROVAL
    )
    assert (await _fresh(db_session, Order, paid.id)).status == (
        OrderStatus.PENDING_APPROVAL
    )

    level = (
        await db_session.execute(
            select(StockLevel)
            .where(StockLevel.product_id == product.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert level.reserved_quantity == 0


# ---------------------------------------------------------------------------
# reconcile_pending_stripe_payments
# ---------------------------------------------------------------------------


def _intent(intent_id, status):
    return {"id": intent_id, "amount": 4390, "currency": "cad", "status": status}


class FakeStripe:
    def __init__(self, intents: dict):
        self.intents = intents
        self.requested = []

    async def retrieve_payment_intent(self, payment_intent_id):
        self.requested.append(payment_intent_id)
        return stripe_client.PaymentIntent.from_api(self.intents[payment_intent_id])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reconcile_is_skipped_without_stripe(session_factory):
    assert await tasks.reconcile_pending_stripe_payments(session_factory) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reconcile_applies_intent_outcomes(
    db_session, session_factory, customer, monkeypatch
):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    get_settings.cache_clear()

    old = utc_now() - timedelta(minutes=30)
    paid_order = OrderFactory.create(
        customer.id, total_amount=Decimal("43.90"), created_at=old
    )
    failed_order = OrderFactory.create(customer.id, created_at=old)
    waiting_order = OrderFactory.create(customer.id, created_at=old)
    db_session.add_all([paid_order, failed_order, waiting_order])
    await db_session.flush()
    succeeded = PaymentFactory.create(
        paid_order.id, customer.id, transaction_id="pi_ok", created_at=old
    )
    canceled = PaymentFactory.create(
        failed_order.id, customer.id, transaction_id="pi_canceled", created_at=old
    )
    processing = PaymentFactory.create(
        waiting_order.id, customer.id, transaction_id="pi_wait", created_at=old
    )
    recent = PaymentFactory.create(
        waiting_order.id, customer.id, transaction_id="pi_recent"
    )
    db_session.add_all([succeeded, canceled, processing, recent])
    await db_session.commit()

    fake = FakeStripe(
        {
            "pi_ok": _intent("pi_ok", "succeeded"),
            "pi_canceled": _intent("pi_canceled", "canceled"),
            "pi_wait": _intent("pi_wait", "processing"),
        }
    )
    monkeypatch.setattr(stripe_client, "get_stripe_client", lambda: fake)

    updated = await tasks.reconcile_pending_stripe_payments(session_factory)

    assert updated == 2
    assert sorted(fake.requested) == ["pi_canceled", "pi_ok", "pi_wait"]

    assert (await _fresh(db_session, Payment, succeeded.id)).status == (
        PaymentStatus.COMPLETED
    )
    paid_order = await _fresh(db_session, Order, paid_order.id)
    assert paid_order.payment_status == OrderPaymentStatus.COMPLETED
    assert paid_order.status == OrderStatus.PROCESSING

    assert (await _fresh(db_session, Payment, canceled.id)).status == (
        PaymentStatus.FAILED
    )
    assert (await _fresh(db_session, Order, failed_order.id)).payment_status == (
        OrderPaymentStatus.FAILED
    )
    assert (await _fresh(db_session, Payment, processing.id)).status == (
        PaymentStatus.PENDING
    )
