"""Admin order management: approval, distributor assignment, verification, shipping."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser, Role
from libs.common.datetime_utils import utc_now
from libs.common.emails.store import send_order_shipped_email
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.members_service.models import User, UserStatus
from services.payments_service.models import Payment
from services.store_service.models import (
    AuditEntityType,
    FulfillmentStatus,
    Order,
    OrderFulfillment,
    OrderPaymentStatus,
    OrderStatus,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
)
from services.store_service.routers._helpers import get_order_or_404
from services.store_service.schemas import (
    AdminOrderDetailResponse,
    AssignDistributorRequest,
    OrderDetailResponse,
    OrderFulfillmentResponse,
    OrderListResponse,
    OrderPaymentSummary,
    OrderResponse,
    OrderStatusUpdateRequest,
    ShipOrderRequest,
    UserSummary,
    VerifyFulfillmentRequest,
)
from services.store_service.services import tasks as task_service
from services.store_service.services.audit import log_audit
from services.store_service.services.order_workflow import (
    OrderTransitionError,
    load_order_for_update,
    record_history,
    transition_order,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])
logger = get_logger(__name__)


async def _lock_order_or_404(db: AsyncSession, order_id: uuid.UUID) -> Order:
    order = await load_order_for_update(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _transition(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    admin: AuthUser,
    notes: Optional[str] = None,
) -> None:
    try:
        await transition_order(
            db, order, target, performed_by=admin.user_id, notes=notes
        )
    except OrderTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _require_status(order: Order, *allowed: OrderStatus) -> None:
    if order.status not in allowed:
        expected = " or ".join(s.value for s in allowed)
        raise HTTPException(
            status_code=400,
            detail=f"Order must be {expected} (currently {order.status.value})",
        )


async def _create_fulfill_task(
    db: AsyncSession, order: Order, distributor_id: uuid.UUID, description: str
) -> None:
    await task_service.create_task(
        db,
        title=f"{task_service.FULFILL_ORDER} {order.order_number}",
        description=description,
        category=TaskCategory.FULFILLMENT,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assigned_to=distributor_id,
    )


# ============================================================================
# READ
# ============================================================================


@router.get("", response_model=OrderListResponse)
@admin_limit
async def list_orders(
    request: Request,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[OrderPaymentStatus] = None,
    distributor_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Order)
    if status:
        query = query.where(Order.status == status)
    if payment_status:
        query = query.where(Order.payment_status == payment_status)
    if distributor_id:
        query = query.where(Order.distributor_id == distributor_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.join(User, User.id == Order.user_id).where(
            or_(
                Order.order_number.ilike(term),
                User.email.ilike(term),
                User.name.ilike(term),
            )
        )

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


@router.get("/{order_id}", response_model=AdminOrderDetailResponse)
@admin_limit
async def get_order(
    request: Request,
    order_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_order_or_404(
        db,
        order_id,
        extra_options=(
            selectinload(Order.customer),
            selectinload(Order.distributor),
        ),
    )
    payments = await db.execute(
        select(Payment)
        .where(Payment.order_id == order.id)
        .order_by(Payment.created_at.asc())
    )

    return AdminOrderDetailResponse(
        **OrderDetailResponse.model_validate(order).model_dump(),
        fulfillments=[
            OrderFulfillmentResponse.model_validate(f) for f in order.fulfillments
        ],
        payments=[
            OrderPaymentSummary.model_validate(p) for p in payments.scalars().all()
        ],
        customer=UserSummary.model_validate(order.customer) if order.customer else None,
        distributor=(
            UserSummary.model_validate(order.distributor) if order.distributor else None
        ),
    )


# ============================================================================
# WORKFLOW ACTIONS
# ============================================================================


@router.post("/{order_id}/approve")
@admin_limit
async def approve_order(
    request: Request,
    order_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve an order so it can be assigned to a distributor."""
    order = await _lock_order_or_404(db, order_id)
    await _transition(
        db, order, OrderStatus.READY_FOR_FULFILLMENT, admin, notes="Order approved"
    )

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        completed_by=admin.user_id,
        title_prefix=task_service.APPROVE_ORDER,
    )
    await task_service.create_task(
        db,
        title=f"{task_service.ASSIGN_DISTRIBUTOR} {order.order_number}",
        description="Pick a distributor to fulfill this order",
        category=TaskCategory.FULFILLMENT,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assign_to_admin=True,
    )
    await db.commit()
    return {"message": "Order approved", "status": order.status}


@router.post("/{order_id}/assign-distributor")
@admin_limit
async def assign_distributor(
    request: Request,
    order_id: uuid.UUID,
    payload: AssignDistributorRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Assign (or reassign) the distributor who fulfills an order."""
    distributor = await db.get(User, payload.distributor_id)
    if (
        not distributor
        or distributor.role != Role.DISTRIBUTOR
        or distributor.status != UserStatus.ACTIVE
    ):
        raise HTTPException(
            status_code=400, detail="Target user is not an active distributor"
        )

    order = await _lock_order_or_404(db, order_id)
    _require_status(
        order, OrderStatus.READY_FOR_FULFILLMENT, OrderStatus.AWAITING_FULFILLMENT
    )
    previous_distributor = order.distributor_id
    order.distributor_id = distributor.id
    note = f"Assigned to distributor {distributor.name}"

    if order.status == OrderStatus.READY_FOR_FULFILLMENT:
        await _transition(db, order, OrderStatus.AWAITING_FULFILLMENT, admin, notes=note)
    else:
        record_history(
            db,
            order,
            changed_by=admin.user_id,
            notes=f"Reassigned to distributor {distributor.name}",
        )

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        completed_by=admin.user_id,
        title_prefix=task_service.ASSIGN_DISTRIBUTOR,
    )
    await task_service.cancel_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        title_prefix=task_service.FULFILL_ORDER,
        notes="Order reassigned",
    )
    await _create_fulfill_task(
        db, order, distributor.id, "Pack and ship this order, then submit proof"
    )
    await log_audit(
        db,
        entity_type=AuditEntityType.ORDER,
        entity_id=order.id,
        action="distributor_assigned",
        performed_by=admin.user_id,
        old_value={"distributor_id": str(previous_distributor)}
        if previous_distributor
        else None,
        new_value={"distributor_id": str(distributor.id)},
    )
    await db.commit()
    return {
        "message": f"Order assigned to {distributor.name}",
        "status": order.status,
        "distributor_id": distributor.id,
    }


@router.post("/{order_id}/verify-fulfillment")
@admin_limit
async def verify_fulfillment(
    request: Request,
    order_id: uuid.UUID,
    payload: VerifyFulfillmentRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve or reject the fulfillment a distributor submitted."""
    notes = payload.notes.strip() if payload.notes else None
    if payload.action == "reject" and not notes:
        raise HTTPException(
            status_code=400, detail="Notes are required when rejecting a fulfillment"
        )

    order = await _lock_order_or_404(db, order_id)
    _require_status(order, OrderStatus.PENDING_FULFILLMENT_VERIFICATION)

    result = await db.execute(
        select(OrderFulfillment)
        .where(
            OrderFulfillment.order_id == order.id,
            OrderFulfillment.status == FulfillmentStatus.PENDING,
        )
        .order_by(OrderFulfillment.created_at.desc())
        .limit(1)
    )
    fulfillment = result.scalar_one_or_none()
    if fulfillment:
        fulfillment.reviewed_by = admin.user_id
        fulfillment.reviewed_at = utc_now()
        fulfillment.review_notes = notes

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        completed_by=admin.user_id,
        title_prefix=task_service.VERIFY_FULFILLMENT,
        notes=notes,
    )

    if payload.action == "approve":
        if fulfillment:
            fulfillment.status = FulfillmentStatus.APPROVED
        await _transition(
            db,
            order,
            OrderStatus.AWAITING_SHIPMENT,
            admin,
            notes=notes or "Fulfillment approved",
        )
        await task_service.create_task(
            db,
            title=f"{task_service.SHIP_ORDER} {order.order_number}",
            description="Confirm shipment and record tracking details",
            category=TaskCategory.FULFILLMENT,
            priority=TaskPriority.MEDIUM,
            related_to=TaskRelatedEntity.ORDER,
            related_id=order.id,
            assign_to_admin=True,
        )
        message = "Fulfillment approved"
    else:
        if fulfillment:
            fulfillment.status = FulfillmentStatus.REJECTED
        await _transition(
            db,
            order,
            OrderStatus.AWAITING_FULFILLMENT,
            admin,
            notes=f"Fulfillment rejected: {notes}",
        )
        if order.distributor_id:
            await _create_fulfill_task(
                db,
                order,
                order.distributor_id,
                f"Fulfillment was rejected: {notes}",
            )
        message = "Fulfillment rejected"

    await db.commit()
    return {"message": message, "status": order.status}


@router.post("/{order_id}/ship")
@admin_limit
async def ship_order(
    request: Request,
    order_id: uuid.UUID,
    payload: ShipOrderRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await _lock_order_or_404(db, order_id)
    _require_status(order, OrderStatus.AWAITING_SHIPMENT)

    if payload.tracking_number:
        order.tracking_number = payload.tracking_number
    if payload.carrier:
        order.carrier = payload.carrier

    await _transition(db, order, OrderStatus.SHIPPED, admin, notes="Order shipped")
    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        completed_by=admin.user_id,
        title_prefix=task_service.SHIP_ORDER,
    )
    await db.commit()

    customer = await db.get(User, order.user_id)
    if customer:
        await send_order_shipped_email(
            to_email=customer.email,
            customer_name=customer.name,
            order_number=order.order_number,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
        )

    return {
        "message": "Order shipped",
        "status": order.status,
        "tracking_number": order.tracking_number,
    }


@router.put("/{order_id}/status")
@admin_limit
async def update_order_status(
    request: Request,
    order_id: uuid.UUID,
    payload: OrderStatusUpdateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Manual status change through the same transition rules."""
    order = await _lock_order_or_404(db, order_id)
    previous = order.status
    await _transition(db, order, payload.status, admin, notes=payload.reason)
    await db.commit()
    return {
        "message": f"Order status changed from {previous.value} to {order.status.value}",
        "status": order.status,
    }
