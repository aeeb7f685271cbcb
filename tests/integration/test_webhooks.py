"""Integration tests for the Stripe webhook receiver."""

import json
import time

import pytest
from libs.common.config import get_settings
from services.payments_service.models import (
    Payment,
    PaymentStatus,
    ProcessedWebhookEvent,
)
from services.payments_service.stripe_client import compute_webhook_signature
from services.store_service.models import (
    Order,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    Task,
)
from sqlalchemy import select
from tests.factories import OrderFactory, PaymentFactory

SECRET = "whsec_integration"


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", SECRET)
    get_settings.cache_clear()
    return SECRET


def _event(event_id, event_type, data_object):
    return {"id": event_id, "type": event_type, "data": {"object": data_object}}


async def _deliver(client, event, path="/api/webhooks/stripe", secret=SECRET):
    body = json.dumps(event).encode()
    timestamp = int(time.time())
    signature = compute_webhook_signature(body, timestamp, secret)
    return await client.post(
        path,
        content=body,
        headers={
            "stripe-signature": f"t={timestamp},v1={signature}",
            "content-type": "application/json",
        },
    )


@pytest.fixture
def card_order(db_session, customer):
    """A card order with the pending payment its PaymentIntent created."""

    async def _build(**overrides):
        order = OrderFactory.create(
            customer.id, payment_method=PaymentMethod.CREDIT_CARD, **overrides
        )
        db_session.add(order)
        await db_session.flush()
        payment = PaymentFactory.create(
            order.id, customer.id, transaction_id="pi_hook_1"
        )
        db_session.add(payment)
        await db_session.commit()
        return order.id, payment.id

    return _build


async def _order_state(db, order_id):
    result = await db.execute(
        select(Order.status, Order.payment_status).where(Order.id == order_id)
    )
    return tuple(result.one())


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_not_configured(client):
    response = await _deliver(client, _event("evt_0", "ping", {}))
    assert response.status_code == 503


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_rejects_bad_signatures(client, webhook_secret):
    event = _event("evt_1", "payment_intent.succeeded", {"id": "pi_x"})

    response = await _deliver(client, event, secret="whsec_wrong")
    assert response.status_code == 400

    response = await client.post("/api/webhooks/stripe", content=b"{}")
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("path", ["/api/webhooks/stripe", "/api/payments/webhook"])
async def test_intent_succeeded_marks_order_paid(
    client, db_session, admin_user, webhook_secret, card_order, path
):
    order_id, payment_id = await card_order()
    event = _event(
        "evt_paid",
        "payment_intent.succeeded",
        {"id": "pi_hook_1", "amount": 4390, "currency": "cad"},
    )

    response = await _deliver(client, event, path=path)

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert await _order_state(db_session, order_id) == (
        OrderStatus.PROCESSING,
        OrderPaymentStatus.COMPLETED,
    )
    status = (
        await db_session.execute(select(Payment.status).where(Payment.id == payment_id))
    ).scalar_one()
    assert status == PaymentStatus.COMPLETED
    titles = (
        await db_session.execute(
            select(Task.title).where(Task.related_id == str(order_id))
        )
    ).scalars().all()
    assert [t.split(" HP-")[0] for t in titles] == ["Process Paid Order"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_replayed_event_is_applied_once(
    client, db_session, webhook_secret, card_order
):
    order_id, _ = await card_order()
    event = _event(
        "evt_once",
        "payment_intent.succeeded",
        {"id": "pi_hook_1", "amount": 4390},
    )

    for _ in range(2):
        response = await _deliver(client, event)
        assert response.status_code == 200

    events = (
        await db_session.execute(select(ProcessedWebhookEvent.event_id))
    ).scalars().all()
    assert events == ["evt_once"]
    tasks = (
        await db_session.execute(
            select(Task.id).where(Task.related_id == str(order_id))
        )
    ).all()
    assert len(tasks) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_intent_matched_by_metadata(
    client, db_session, customer, webhook_secret
):
    order = OrderFactory.create(customer.id, payment_method=PaymentMethod.CREDIT_CARD)
    db_session.add(order)
    await db_session.commit()
    order_id = order.id
    event = _event(
        "evt_meta",
        "payment_intent.succeeded",
        {"id": "pi_new", "amount": 4390, "metadata": {"order_id": str(order_id)}},
    )

    response = await _deliver(client, event)

    assert response.status_code == 200
    payment = (
        await db_session.execute(select(Payment).where(Payment.order_id == order_id))
    ).scalar_one()
    assert payment.transaction_id == "pi_new"
    assert payment.status == PaymentStatus.COMPLETED


@pytest.mark.asyncio
@pytest.mark.integration
async def test_intent_failed(client, db_session, webhook_secret, card_order):
    order_id, payment_id = await card_order()
    event = _event(
        "evt_failed",
        "payment_intent.payment_failed",
        {"id": "pi_hook_1", "last_payment_error": {"message": "Card declined"}},
    )

    response = await _deliver(client, event)

    assert response.status_code == 200
    assert await _order_state(db_session, order_id) == (
        OrderStatus.PENDING_APPROVAL,
        OrderPaymentStatus.FAILED,
    )
    payment = await db_session.get(Payment, payment_id, populate_existing=True)
    assert payment.status == PaymentStatus.FAILED
    assert payment.notes == "Card declined"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_charge_refunded(client, db_session, webhook_secret, card_order):
    order_id, _ = await card_order(
        status=OrderStatus.DELIVERED,
        payment_status=OrderPaymentStatus.COMPLETED,
    )
    event = _event("evt_refund", "charge.refunded", {"payment_intent": "pi_hook_1"})

    response = await _deliver(client, event)

    assert response.status_code == 200
    assert await _order_state(db_session, order_id) == (
        OrderStatus.REFUNDED,
        OrderPaymentStatus.REFUNDED,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_event_types_are_acknowledged(
    client, db_session, webhook_secret
):
    response = await _deliver(client, _event("evt_other", "customer.created", {}))

    assert response.status_code == 200
    events = (
        await db_session.execute(select(ProcessedWebhookEvent.event_type))
    ).scalars().all()
    assert events == ["customer.created"]


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "payload",
    [
        [],
        "payment_intent.succeeded",
        {"id": "evt_bad_data", "type": "charge.refunded", "data": ["pi_hook_1"]},
        {"id": "evt_bad_obj", "type": "charge.refunded", "data": {"object": "pi"}},
    ],
)
async def test_signed_payload_must_be_an_event_object(
    client, db_session, webhook_secret, payload
):
    response = await _deliver(client, payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid event payload"
    events = (await db_session.execute(select(ProcessedWebhookEvent.id))).all()
    assert events == []
