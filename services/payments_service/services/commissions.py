"""Referral commission lifecycle: calculate at shipping, release at delivery, cancel on refunds."""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.members_service.models import User
from services.payments_service.models import (
    Commission,
    CommissionStatus,
    CommissionType,
)
from services.store_service.models import Order, OrderType
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

UNPAID_STATUSES = (CommissionStatus.PENDING, CommissionStatus.PENDING_PAYOUT)


def compute_commission_amount(order_total: Decimal, rate: Decimal) -> Decimal:
    """Commission = order total x rate, rounded half up to cents."""
    amount = Decimal(str(order_total)) * Decimal(str(rate))
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def commission_type_for(order: Order) -> CommissionType:
    if order.type == OrderType.WHOLESALE:
        return CommissionType.WHOLESALE_REFERRAL
    return CommissionType.ORDER_REFERRAL


async def resolve_referrer(db: AsyncSession, order: Order) -> Optional[User]:
    """The code applied at checkout wins; otherwise the buyer's own referrer.

    Self-referrals resolve to None.
    """
    referrer = None
    if order.applied_referral_code:
        result = await db.execute(
            select(User).where(User.referral_code == order.applied_referral_code)
        )
        referrer = result.scalar_one_or_none()

    if referrer is None:
        buyer = await db.get(User, order.user_id)
        if buyer is not None and buyer.referred_by_id:
            referrer = await db.get(User, buyer.referred_by_id)

    if referrer is not None and referrer.id == order.user_id:
        logger.info(
            "Ignoring self-referral on order %s",
            order.order_number,
            extra={"extra_fields": {"order_id": str(order.id)}},
        )
        return None
    return referrer


async def get_order_commission(
    db: AsyncSession, order_id: uuid.UUID
) -> Optional[Commission]:
    result = await db.execute(
        select(Commission)
        .where(Commission.order_id == order_id)
        .order_by(Commission.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def calculate_order_commission(
    db: AsyncSession, order: Order
) -> tuple[Optional[Commission], bool]:
    """
    Create the referral commission for an order if it has a referrer.

    Idempotent: an existing commission is returned as-is.

    Returns:
        ``(commission, created)``; ``(None, False)`` when there is no referrer.
    """
    existing = await get_order_commission(db, order.id)
    if existing is not None:
        return existing, False

    referrer = await resolve_referrer(db, order)
    if referrer is None:
        return None, False

    settings = get_settings()
    rate = (
        referrer.commission_rate
        if referrer.commission_rate is not None
        else settings.DEFAULT_COMMISSION_RATE
    )
    commission = Commission(
        user_id=referrer.id,
        order_id=order.id,
        amount=compute_commission_amount(order.total_amount, rate),
        rate=rate,
        type=commission_type_for(order),
        status=CommissionStatus.PENDING,
    )
    db.add(commission)
    await db.flush()

    logger.info(
        "Commission %s created for order %s",
        commission.amount,
        order.order_number,
        extra={
            "extra_fields": {
                "commission_id": str(commission.id),
                "referrer_id": str(referrer.id),
                "order_id": str(order.id),
            }
        },
    )
    return commission, True


async def release_order_commissions(db: AsyncSession, order_id: uuid.UUID) -> int:
    """Pending -> Pending Payout for an order's commissions."""
    result = await db.execute(
        select(Commission).where(
            Commission.order_id == order_id,
            Commission.status == CommissionStatus.PENDING,
        )
    )
    commissions = list(result.scalars().all())
    for commission in commissions:
        commission.status = CommissionStatus.PENDING_PAYOUT
    return len(commissions)


async def cancel_order_commissions(
    db: AsyncSession, order_id: uuid.UUID, reason: str
) -> int:
    """Cancel an order's commissions that have not been paid out."""
    result = await db.execute(
        select(Commission).where(
            Commission.order_id == order_id,
            Commission.status.in_(UNPAID_STATUSES),
        )
    )
    commissions = list(result.scalars().all())
    now = utc_now()
    for commission in commissions:
        commission.status = CommissionStatus.CANCELLED
        commission.notes = f"{reason} ({now.date().isoformat()})"
    return len(commissions)
