"""
Order fulfillment state machine.

All status changes go through ``transition_order`` so every change is checked
against ``ALLOWED_TRANSITIONS`` and writes its history row, task updates,
inventory and commission side effects and audit entry in the caller's
transaction. Callers lock the order with ``load_order_for_update`` first and
commit afterwards.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.members_service.models import Referral, ReferralStatus
from services.payments_service.services.commissions import (
    calculate_order_commission,
    cancel_order_commissions,
    release_order_commissions,
)
from services.store_service.models import (
    AuditEntityType,
    Order,
    OrderPaymentStatus,
    OrderStatus,
    OrderStatusHistory,
    TaskRelatedEntity,
)
from services.store_service.services.audit import log_audit
from services.store_service.services.inventory import (
    commit_order_sale,
    release_order_reservations,
)
from services.store_service.services.tasks import cancel_tasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_APPROVAL: frozenset(
        {
            OrderStatus.PROCESSING,
            OrderStatus.READY_FOR_FULFILLMENT,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.PROCESSING: frozenset(
        {
            OrderStatus.READY_FOR_FULFILLMENT,
            OrderStatus.CANCELLED,
            OrderStatus.REFUNDED,
        }
    ),
    OrderStatus.READY_FOR_FULFILLMENT: frozenset(
        {OrderStatus.AWAITING_FULFILLMENT, OrderStatus.CANCELLED}
    ),
    OrderStatus.AWAITING_FULFILLMENT: frozenset(
        {OrderStatus.PENDING_FULFILLMENT_VERIFICATION, OrderStatus.CANCELLED}
    ),
    OrderStatus.PENDING_FULFILLMENT_VERIFICATION: frozenset(
        {
            OrderStatus.AWAITING_SHIPMENT,
            OrderStatus.AWAITING_FULFILLMENT,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.AWAITING_SHIPMENT: frozenset(
        {OrderStatus.SHIPPED, OrderStatus.CANCELLED}
    ),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.REFUNDED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


class OrderTransitionError(Exception):
    """Raised when a status change is not allowed from the order's current status."""

    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move order from {current.value} to {target.value}")


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


async def load_order_for_update(
    db: AsyncSession, order_id: uuid.UUID
) -> Optional[Order]:
    """Fetch an order with its items, holding a row lock until commit."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def record_history(
    db: AsyncSession,
    order: Order,
    *,
    changed_by: str,
    notes: Optional[str] = None,
) -> OrderStatusHistory:
    entry = OrderStatusHistory(
        order_id=order.id,
        status=order.status,
        payment_status=order.payment_status,
        notes=notes,
        changed_by=str(changed_by),
    )
    db.add(entry)
    return entry


async def transition_order(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    *,
    performed_by: str,
    notes: Optional[str] = None,
) -> Order:
    """
    Move an order to ``target`` and apply the side effects of entering it.

    Raises:
        OrderTransitionError: when ``target`` is not reachable from the current status.
    """
    current = order.status
    if not can_transition(current, target):
        raise OrderTransitionError(current, target)

    now = utc_now()
    order.status = target

    if target == OrderStatus.CANCELLED:
        order.cancelled_at = now
        await release_order_reservations(
            db, order, performed_by=performed_by, notes="Order cancelled"
        )
        await cancel_tasks(
            db,
            related_to=TaskRelatedEntity.ORDER,
            related_id=order.id,
            notes="Order cancelled",
        )
        await cancel_order_commissions(db, order.id, "Order cancelled")

    elif target == OrderStatus.REFUNDED:
        order.payment_status = OrderPaymentStatus.REFUNDED
        if order.shipped_at is None:
            await release_order_reservations(
                db, order, performed_by=performed_by, notes="Order refunded"
            )
        await cancel_tasks(
            db,
            related_to=TaskRelatedEntity.ORDER,
            related_id=order.id,
            notes="Order refunded",
        )
        await cancel_order_commissions(db, order.id, "Order refunded")

    elif target == OrderStatus.SHIPPED:
        order.shipped_at = now
        await commit_order_sale(db, order, performed_by=performed_by)
        await calculate_order_commission(db, order)

    elif target == OrderStatus.DELIVERED:
        order.delivered_at = now
        await release_order_commissions(db, order.id)
        await _convert_referral(db, order)

    record_history(db, order, changed_by=performed_by, notes=notes)
    await log_audit(
        db,
        entity_type=AuditEntityType.ORDER,
        entity_id=order.id,
        action="status_changed",
        performed_by=performed_by,
        old_value={"status": current.value},
        new_value={"status": target.value},
        notes=notes,
    )
    await db.flush()

    logger.info(
        "Order %s moved from %s to %s",
        order.order_number,
        current.value,
        target.value,
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "performed_by": str(performed_by),
            }
        },
    )
    return order


async def _convert_referral(db: AsyncSession, order: Order) -> None:
    result = await db.execute(
        select(Referral).where(
            Referral.referred_user_id == order.user_id,
            Referral.status == ReferralStatus.REGISTERED,
        )
    )
    for referral in result.scalars().all():
        referral.status = ReferralStatus.CONVERTED
        referral.converted_at = utc_now()
