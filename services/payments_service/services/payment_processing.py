"""
Payment state changes shared by the Stripe webhook, manual confirmation and
the reconciliation job.

Every function works inside the caller's transaction; callers commit.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.payments_service.models import (
    Payment,
    PaymentProvider,
    PaymentStatus,
)
from services.store_service.models import (
    AuditEntityType,
    Order,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
)
from services.store_service.services import tasks as task_service
from services.store_service.services.audit import log_audit
from services.store_service.services.order_workflow import (
    can_transition,
    load_order_for_update,
    record_history,
    transition_order,
)
from services.store_service.services.pricing import quantize_money
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def find_payment_by_transaction(
    db: AsyncSession, transaction_id: str
) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.transaction_id == transaction_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def mark_order_paid(
    db: AsyncSession,
    order: Order,
    payment: Payment,
    *,
    performed_by: str,
    transaction_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> None:
    """
    Complete a payment and the order's payment status.

    Orders still awaiting approval move to Processing; open payment-review
    tasks for the order are completed.
    """
    now = utc_now()
    payment.status = PaymentStatus.COMPLETED
    payment.confirmed_at = now
    payment.confirmed_by = str(performed_by)
    if transaction_id:
        payment.transaction_id = transaction_id

    order.payment_status = OrderPaymentStatus.COMPLETED
    order.paid_at = now

    if order.status == OrderStatus.PENDING_APPROVAL:
        await transition_order(
            db,
            order,
            OrderStatus.PROCESSING,
            performed_by=performed_by,
            notes=notes or "Payment received",
        )
    else:
        record_history(
            db, order, changed_by=performed_by, notes=notes or "Payment received"
        )

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        category=TaskCategory.PAYMENT_REVIEW,
        completed_by=performed_by,
        notes="Payment confirmed",
    )
    await log_audit(
        db,
        entity_type=AuditEntityType.PAYMENT,
        entity_id=payment.id,
        action="payment_completed",
        performed_by=performed_by,
        new_value={
            "order_id": str(order.id),
            "amount": str(payment.amount),
            "transaction_id": payment.transaction_id,
        },
    )


async def _order_and_payment_for_intent(
    db: AsyncSession, intent: dict
) -> tuple[Optional[Order], Optional[Payment]]:
    intent_id = intent.get("id")
    payment = await find_payment_by_transaction(db, intent_id) if intent_id else None

    order_id = payment.order_id if payment else None
    if order_id is None:
        raw_order_id = (intent.get("metadata") or {}).get("order_id")
        try:
            order_id = uuid.UUID(str(raw_order_id)) if raw_order_id else None
        except ValueError:
            order_id = None
    if order_id is None:
        return None, payment

    order = await load_order_for_update(db, order_id)
    return order, payment


async def apply_intent_succeeded(
    db: AsyncSession, intent: dict, *, performed_by: str = "stripe"
) -> Optional[Order]:
    """Record a succeeded PaymentIntent. Returns the order, or None when it is unknown."""
    order, payment = await _order_and_payment_for_intent(db, intent)
    if order is None:
        logger.warning(
            "PaymentIntent %s succeeded but no order could be matched",
            intent.get("id"),
        )
        return None

    if payment is None:
        payment = Payment(
            order_id=order.id,
            user_id=order.user_id,
            amount=quantize_money(int(intent.get("amount") or 0) / 100),
            currency=intent.get("currency") or "cad",
            payment_method=PaymentMethod.CREDIT_CARD,
            provider=PaymentProvider.STRIPE,
            status=PaymentStatus.PENDING,
            transaction_id=intent.get("id"),
        )
        db.add(payment)
        await db.flush()

    if payment.status == PaymentStatus.COMPLETED or order.is_paid:
        logger.info("Order %s already paid; ignoring intent", order.order_number)
        return order

    received = quantize_money(int(intent.get("amount") or 0) / 100)
    if received != quantize_money(order.total_amount):
        logger.warning(
            "Amount mismatch on order %s: received %s, expected %s",
            order.order_number,
            received,
            order.total_amount,
        )

    await mark_order_paid(
        db,
        order,
        payment,
        performed_by=performed_by,
        transaction_id=intent.get("id"),
        notes="Card payment received",
    )
    await task_service.create_task(
        db,
        title=f"{task_service.PROCESS_PAID_ORDER} {order.order_number}",
        description=f"Card payment of ${order.total_amount} received.",
        category=TaskCategory.ORDER_REVIEW,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assign_to_admin=True,
    )
    return order


async def apply_intent_failed(
    db: AsyncSession, intent: dict, *, performed_by: str = "stripe"
) -> Optional[Order]:
    order, payment = await _order_and_payment_for_intent(db, intent)
    if payment is not None and payment.status != PaymentStatus.COMPLETED:
        payment.status = PaymentStatus.FAILED
        error = intent.get("last_payment_error") or {}
        if error.get("message"):
            payment.notes = error["message"]

    if order is not None and not order.is_paid:
        order.payment_status = OrderPaymentStatus.FAILED
        record_history(db, order, changed_by=performed_by, notes="Card payment failed")
    return order


async def apply_charge_refunded(
    db: AsyncSession, charge: dict, *, performed_by: str = "stripe"
) -> Optional[Order]:
    intent_id = charge.get("payment_intent")
    if not intent_id:
        return None
    order, payment = await _order_and_payment_for_intent(db, {"id": intent_id})
    if payment is not None:
        payment.status = PaymentStatus.REFUNDED
    if order is None:
        return None

    if can_transition(order.status, OrderStatus.REFUNDED):
        await transition_order(
            db,
            order,
            OrderStatus.REFUNDED,
            performed_by=performed_by,
            notes="Refunded through Stripe",
        )
    else:
        order.payment_status = OrderPaymentStatus.REFUNDED
        record_history(
            db, order, changed_by=performed_by, notes="Refunded through Stripe"
        )
        logger.warning(
            "Order %s refunded in Stripe while %s; status left unchanged",
            order.order_number,
            order.status.value,
        )
    return order
