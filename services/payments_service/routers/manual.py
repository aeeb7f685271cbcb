"""Manual payments: e-transfer and Bitcoin submissions and admin confirmation."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit, api_limit, payment_limit
from libs.db.session import get_async_db
from services.payments_service.models import Payment, PaymentProvider, PaymentStatus
from services.payments_service.schemas import (
    ManualConfirmRequest,
    ManualPaymentRequest,
    PaymentResponse,
)
from services.payments_service.services.payment_processing import mark_order_paid
from services.store_service.models import (
    Order,
    OrderStatus,
    PaymentMethod,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
)
from services.store_service.services import tasks as task_service
from services.store_service.services.order_workflow import load_order_for_update
from services.store_service.services.pricing import quantize_money
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)
settings = get_settings()

CLOSED_ORDER_STATUSES = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)


@router.post(
    "/manual", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED
)
@payment_limit
async def submit_manual_payment(
    request: Request,
    payload: ManualPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Record an e-transfer or Bitcoin payment the customer says they sent."""
    order = await db.get(Order, payload.order_id)
    if not order or order.user_id != current_user.user_uuid:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.is_paid:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.status in CLOSED_ORDER_STATUSES:
        raise HTTPException(
            status_code=400, detail=f"Order is {order.status.value}"
        )

    method = PaymentMethod(payload.payment_method)
    details = payload.transaction_details or {}
    payment = Payment(
        order_id=order.id,
        user_id=order.user_id,
        amount=quantize_money(payload.amount),
        currency=settings.CURRENCY,
        payment_method=method,
        provider=PaymentProvider.MANUAL,
        status=PaymentStatus.PENDING_CONFIRMATION,
        transaction_id=details.get("transaction_id") or details.get("tx_hash"),
        reference_number=details.get("reference") or details.get("reference_number"),
        payment_details=details,
    )
    db.add(payment)
    await db.flush()

    await task_service.create_task(
        db,
        title=f"{task_service.REVIEW_MANUAL_PAYMENT} {order.order_number}",
        description=(
            f"{method.value} payment of ${payment.amount} submitted "
            f"for an order totalling ${order.total_amount}"
        ),
        category=TaskCategory.PAYMENT_REVIEW,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assign_to_admin=True,
    )
    await db.commit()
    await db.refresh(payment)

    logger.info(
        "Manual %s payment submitted for order %s",
        method.value,
        order.order_number,
        extra={"extra_fields": {"payment_id": str(payment.id)}},
    )
    return payment


async def _confirm_manual_payment(
    db: AsyncSession,
    payload: ManualConfirmRequest,
    method: PaymentMethod,
    admin: AuthUser,
) -> dict:
    order = await load_order_for_update(db, payload.order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.is_paid:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.status in CLOSED_ORDER_STATUSES:
        raise HTTPException(status_code=400, detail=f"Order is {order.status.value}")

    result = await db.execute(
        select(Payment)
        .where(
            Payment.order_id == order.id,
            Payment.payment_method == method,
            Payment.status.in_(
                [PaymentStatus.PENDING_CONFIRMATION, PaymentStatus.PENDING]
            ),
        )
        .order_by(Payment.created_at.desc())
        .limit(1)
        .with_for_update()
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        payment = Payment(
            order_id=order.id,
            user_id=order.user_id,
            amount=order.total_amount,
            currency=settings.CURRENCY,
            payment_method=method,
            provider=PaymentProvider.MANUAL,
            status=PaymentStatus.PENDING_CONFIRMATION,
        )
        db.add(payment)
        await db.flush()

    await mark_order_paid(
        db,
        order,
        payment,
        performed_by=admin.user_id,
        transaction_id=payload.transaction_id,
        notes=payload.notes or f"{method.value} payment confirmed",
    )
    await db.commit()

    logger.info(
        "%s payment confirmed for order %s",
        method.value,
        order.order_number,
        extra={"extra_fields": {"admin_id": admin.user_id}},
    )
    return {
        "message": f"{method.value} payment confirmed",
        "order_id": str(order.id),
        "payment_id": str(payment.id),
        "order_status": order.status.value,
        "payment_status": order.payment_status.value,
    }


@router.post("/manual/btc-confirm")
@admin_limit
async def confirm_bitcoin_payment(
    request: Request,
    payload: ManualConfirmRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await _confirm_manual_payment(db, payload, PaymentMethod.BITCOIN, admin)


@router.post("/manual/etransfer-confirm")
@admin_limit
async def confirm_etransfer_payment(
    request: Request,
    payload: ManualConfirmRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await _confirm_manual_payment(db, payload, PaymentMethod.E_TRANSFER, admin)


@router.get("/order/{order_id}", response_model=list[PaymentResponse])
@api_limit
async def list_order_payments(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order: Optional[Order] = await db.get(Order, order_id)
    if not order or (
        not current_user.is_admin and order.user_id != current_user.user_uuid
    ):
        raise HTTPException(status_code=404, detail="Order not found")

    result = await db.execute(
        select(Payment)
        .where(Payment.order_id == order.id)
        .order_by(Payment.created_at.desc())
    )
    return result.scalars().all()
