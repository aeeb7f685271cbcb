"""Stripe webhook receiver."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.payments_service.models import PaymentProvider, ProcessedWebhookEvent
from services.payments_service.services.payment_processing import (
    apply_charge_refunded,
    apply_intent_failed,
    apply_intent_succeeded,
)
from services.payments_service.stripe_client import (
    WebhookSignatureError,
    verify_webhook_signature,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["webhooks"])
logger = get_logger(__name__)

EVENT_HANDLERS = {
    "payment_intent.succeeded": apply_intent_succeeded,
    "payment_intent.payment_failed": apply_intent_failed,
    "charge.refunded": apply_charge_refunded,
}


async def _already_processed(db: AsyncSession, event_id: str) -> bool:
    result = await db.execute(
        select(ProcessedWebhookEvent.id).where(
            ProcessedWebhookEvent.provider == PaymentProvider.STRIPE,
            ProcessedWebhookEvent.event_id == event_id,
        )
    )
    return result.first() is not None


@router.post("/webhooks/stripe")
@router.post("/payments/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Stripe webhook endpoint (no auth; verified by the Stripe-Signature header).

    Each event id is applied at most once; replays are acknowledged.
    """
    settings = get_settings()
    raw = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header",
        )
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook processing is not configured",
        )

    try:
        verify_webhook_signature(
            raw,
            signature,
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
    except WebhookSignatureError as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise HTTPException(status_code=400, detail=f"Invalid signature: {e}")

    try:
        event = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid event payload")
    data = event.get("data") or {}
    data_object = (data.get("object") or {}) if isinstance(data, dict) else None
    if not isinstance(data_object, dict):
        raise HTTPException(status_code=400, detail="Invalid event payload")

    event_id = event.get("id")
    event_type = event.get("type", "")
    if not event_id:
        raise HTTPException(status_code=400, detail="Event id missing")

    if await _already_processed(db, event_id):
        logger.info("Stripe event %s already processed; skipping", event_id)
        return {"received": True}

    handler = EVENT_HANDLERS.get(event_type)
    if handler is not None:
        order = await handler(db, data_object)
        logger.info(
            "Processed Stripe event %s (%s)",
            event_id,
            event_type,
            extra={
                "extra_fields": {
                    "order_id": str(order.id) if order is not None else None
                }
            },
        )
    else:
        logger.debug("Ignoring Stripe event type %s", event_type)

    db.add(
        ProcessedWebhookEvent(
            provider=PaymentProvider.STRIPE,
            event_id=event_id,
            event_type=event_type,
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # Another delivery of the same event won the race
        await db.rollback()
        logger.info("Stripe event %s recorded concurrently; skipping", event_id)

    return {"received": True}
