"""Distributor portal: assigned orders, fulfillment submission and held stock."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from libs.auth.dependencies import require_distributor
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import (
    FulfillmentStatus,
    Order,
    OrderFulfillment,
    OrderStatus,
    StockLevel,
    StockLocation,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
)
from services.store_service.routers._helpers import (
    STOCK_LEVEL_LOAD_OPTIONS,
    get_order_or_404,
    stock_level_to_response,
)
from services.store_service.schemas import (
    DistributorOrderDetailResponse,
    FulfillOrderRequest,
    OrderListResponse,
    OrderResponse,
    StockLevelResponse,
    UserSummary,
)
from services.store_service.services import tasks as task_service
from services.store_service.services.order_workflow import (
    OrderTransitionError,
    load_order_for_update,
    transition_order,
)
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/distributor", tags=["distributor"])
logger = get_logger(__name__)

# Work waiting on the distributor sorts first
STATUS_PRIORITY = case(
    (Order.status == OrderStatus.AWAITING_FULFILLMENT, 0),
    (Order.status == OrderStatus.PENDING_FULFILLMENT_VERIFICATION, 1),
    else_=2,
)


@router.get("/orders", response_model=OrderListResponse)
@api_limit
async def list_assigned_orders(
    request: Request,
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    current_user: AuthUser = Depends(require_distributor),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Order).where(Order.distributor_id == current_user.user_uuid)
    if status:
        query = query.where(Order.status == status)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(STATUS_PRIORITY, Order.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.get("/orders/{order_id}", response_model=DistributorOrderDetailResponse)
@api_limit
async def get_assigned_order(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_distributor),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_order_or_404(
        db,
        order_id,
        distributor_id=current_user.user_uuid,
        extra_options=(selectinload(Order.customer),),
    )
    detail = DistributorOrderDetailResponse.model_validate(order)
    detail.customer = (
        UserSummary.model_validate(order.customer) if order.customer else None
    )
    return detail


@router.post("/orders/{order_id}/fulfill")
@api_limit
async def fulfill_order(
    request: Request,
    order_id: uuid.UUID,
    payload: FulfillOrderRequest,
    current_user: AuthUser = Depends(require_distributor),
    db: AsyncSession = Depends(get_async_db),
):
    """Submit tracking and/or proof of fulfillment for admin verification."""
    if not payload.tracking_number and not payload.fulfillment_proof_url:
        raise HTTPException(
            status_code=400,
            detail="Provide a tracking number or a fulfillment proof",
        )

    order = await load_order_for_update(db, order_id)
    if not order or order.distributor_id != current_user.user_uuid:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status != OrderStatus.AWAITING_FULFILLMENT:
        raise HTTPException(
            status_code=400,
            detail=f"Order is {order.status.value}, not awaiting fulfillment",
        )

    db.add(
        OrderFulfillment(
            order_id=order.id,
            distributor_id=current_user.user_uuid,
            tracking_number=payload.tracking_number,
            proof_url=payload.fulfillment_proof_url,
            notes=payload.notes,
            status=FulfillmentStatus.PENDING,
        )
    )
    if payload.tracking_number:
        order.tracking_number = payload.tracking_number
    if payload.fulfillment_proof_url:
        order.fulfillment_proof_url = payload.fulfillment_proof_url
    order.fulfilled_at = utc_now()

    try:
        await transition_order(
            db,
            order,
            OrderStatus.PENDING_FULFILLMENT_VERIFICATION,
            performed_by=current_user.user_id,
            notes=payload.notes or "Fulfillment submitted",
        )
    except OrderTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        completed_by=current_user.user_id,
        title_prefix=task_service.FULFILL_ORDER,
        assigned_to=current_user.user_uuid,
    )
    await task_service.create_task(
        db,
        title=f"{task_service.VERIFY_FULFILLMENT} {order.order_number}",
        description="Review the distributor's tracking details and proof",
        category=TaskCategory.FULFILLMENT,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assign_to_admin=True,
    )
    await db.commit()

    logger.info(
        "Fulfillment submitted for order %s",
        order.order_number,
        extra={"extra_fields": {"distributor_id": current_user.user_id}},
    )
    return {"message": "Fulfillment submitted for verification", "status": order.status}


@router.get("/inventory", response_model=list[StockLevelResponse])
@api_limit
async def get_my_inventory(
    request: Request,
    current_user: AuthUser = Depends(require_distributor),
    db: AsyncSession = Depends(get_async_db),
):
    """Stock held at locations the caller owns."""
    result = await db.execute(
        select(StockLevel)
        .join(StockLocation, StockLocation.id == StockLevel.location_id)
        .where(StockLocation.distributor_id == current_user.user_uuid)
        .options(*STOCK_LEVEL_LOAD_OPTIONS)
        .order_by(StockLevel.updated_at.desc())
    )
    return [stock_level_to_response(level) for level in result.scalars().all()]
