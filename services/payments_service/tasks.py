"""Background jobs: commission release, stale order expiry, Stripe reconciliation."""

from datetime import timedelta

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.payments_service import stripe_client
from services.payments_service.models import (
    Commission,
    CommissionStatus,
    Payment,
    PaymentProvider,
    PaymentStatus,
)
from services.payments_service.services.payment_processing import (
    apply_intent_failed,
    apply_intent_succeeded,
)
from services.store_service.models import Order, OrderPaymentStatus, OrderStatus
from services.store_service.services.order_workflow import (
    OrderTransitionError,
    load_order_for_update,
    transition_order,
)
from sqlalchemy import select

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
RECONCILE_AFTER_MINUTES = 10
BATCH_LIMIT = 200


async def release_commissions_for_delivered_orders(
    session_factory=AsyncSessionLocal,
) -> int:
    """Pending -> Pending Payout once the order has been delivered for the hold period."""
    settings = get_settings()
    cutoff = utc_now() - timedelta(days=settings.COMMISSION_HOLD_DAYS)

    async with session_factory() as db:
        result = await db.execute(
            select(Commission)
            .join(Order, Order.id == Commission.order_id)
            .where(
                Commission.status == CommissionStatus.PENDING,
                Order.status == OrderStatus.DELIVERED,
                Order.delivered_at <= cutoff,
            )
            .with_for_update(of=Commission)
            .limit(BATCH_LIMIT)
        )
        commissions = list(result.scalars().all())
        for commission in commissions:
            commission.status = CommissionStatus.PENDING_PAYOUT
        await db.commit()

    if commissions:
        logger.info("Released %d commission(s) for payout", len(commissions))
    return len(commissions)


async def expire_stale_orders(session_factory=AsyncSessionLocal) -> int:
    """Cancel unpaid orders still awaiting approval after the payment timeout."""
    settings = get_settings()
    cutoff = utc_now() - timedelta(hours=settings.ORDER_PAYMENT_TIMEOUT_HOURS)
    expired = 0

    async with session_factory() as db:
        result = await db.execute(
            select(Order.id)
            .where(
                Order.status == OrderStatus.PENDING_APPROVAL,
                Order.payment_status == OrderPaymentStatus.PENDING,
                Order.created_at <= cutoff,
            )
            .order_by(Order.created_at.asc())
            .limit(BATCH_LIMIT)
        )
        order_ids = list(result.scalars().all())

        for order_id in order_ids:
            order = await load_order_for_update(db, order_id)
            if (
                order is None
                or order.status != OrderStatus.PENDING_APPROVAL
                or order.payment_status != OrderPaymentStatus.PENDING
            ):
                await db.rollback()
                continue
            try:
                await transition_order(
                    db,
                    order,
                    OrderStatus.CANCELLED,
                    performed_by=SYSTEM_ACTOR,
                    notes=(
                        "Payment not received within "
                        f"{settings.ORDER_PAYMENT_TIMEOUT_HOURS} hours"
                    ),
                )
            except OrderTransitionError as exc:
                await db.rollback()
                logger.warning("Could not expire order %s: %s", order_id, exc)
                continue
            await db.commit()
            expired += 1

    if expired:
        logger.info("Expired %d unpaid order(s)", expired)
    return expired


async def reconcile_pending_stripe_payments(session_factory=AsyncSessionLocal) -> int:
    """Ask Stripe about card payments that never got a webhook."""
    settings = get_settings()
    if not settings.stripe_enabled:
        return 0

    cutoff = utc_now() - timedelta(minutes=RECONCILE_AFTER_MINUTES)
    client = stripe_client.get_stripe_client()
    updated = 0

    async with session_factory() as db:
        result = await db.execute(
            select(Payment.id, Payment.transaction_id)
            .where(
                Payment.status == PaymentStatus.PENDING,
                Payment.provider == PaymentProvider.STRIPE,
                Payment.transaction_id.is_not(None),
                Payment.created_at <= cutoff,
            )
            .order_by(Payment.created_at.asc())
            .limit(BATCH_LIMIT)
        )
        pending = list(result.all())

        for payment_id, intent_id in pending:
            try:
                intent = await client.retrieve_payment_intent(intent_id)
            except stripe_client.StripeError as exc:
                logger.warning(
                    "Could not fetch PaymentIntent %s: %s", intent_id, exc.message
                )
                continue

            intent_data = {
                "id": intent.id,
                "amount": intent.amount,
                "currency": intent.currency,
                "metadata": intent.metadata,
            }
            if intent.status == "succeeded":
                await apply_intent_succeeded(
                    db, intent_data, performed_by="reconciliation"
                )
            elif intent.status == "canceled":
                await apply_intent_failed(
                    db, intent_data, performed_by="reconciliation"
                )
            else:
                continue
            await db.commit()
            updated += 1
            logger.info(
                "Reconciled payment %s from PaymentIntent status %s",
                payment_id,
                intent.status,
            )

    return updated
