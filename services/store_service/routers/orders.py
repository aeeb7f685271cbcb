"""Customer order history and self-service cancellation."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderPaymentStatus, OrderStatus
from services.store_service.routers._helpers import get_order_or_404
from services.store_service.schemas import (
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
)
from services.store_service.services.order_workflow import (
    load_order_for_update,
    transition_order,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders/me", tags=["orders"])
logger = get_logger(__name__)


@router.get("", response_model=OrderListResponse)
@api_limit
async def list_my_orders(
    request: Request,
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Order).where(Order.user_id == current_user.user_uuid)
    if status:
        query = query.where(Order.status == status)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(Order.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
@api_limit
async def get_my_order(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_order_or_404(db, order_id, user_id=current_user.user_uuid)
    return OrderDetailResponse.model_validate(order)


@router.post("/{order_id}/cancel")
@api_limit
async def cancel_my_order(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Owners may cancel an unpaid order that has not been approved yet."""
    order = await load_order_for_update(db, order_id)
    if not order or order.user_id != current_user.user_uuid:
        raise HTTPException(status_code=404, detail="Order not found")

    if order.status != OrderStatus.PENDING_APPROVAL:
        raise HTTPException(
            status_code=400,
            detail=f"Orders in status {order.status.value} can no longer be cancelled",
        )
    if order.payment_status == OrderPaymentStatus.COMPLETED:
        raise HTTPException(
            status_code=400,
            detail="Paid orders cannot be cancelled; contact support for a refund",
        )

    await transition_order(
        db,
        order,
        OrderStatus.CANCELLED,
        performed_by=current_user.user_id,
        notes="Cancelled by customer",
    )
    await db.commit()
    return {"message": f"Order {order.order_number} cancelled"}
