"""Referral commissions: calculation, admin review and payouts, referrer view."""

import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit, api_limit
from libs.db.session import get_async_db
from services.members_service.models import User
from services.payments_service.models import Commission, CommissionStatus, PayoutBatch
from services.payments_service.schemas import (
    CommissionCancelRequest,
    CommissionListResponse,
    CommissionResponse,
    CommissionSummary,
    MyCommissionsResponse,
    PayoutDetails,
    PayoutRequest,
    PayoutResponse,
    PendingPayoutGroup,
)
from services.payments_service.services.commissions import calculate_order_commission
from services.store_service.models import AuditEntityType, Order, OrderStatus
from services.store_service.services.audit import log_audit
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["commissions"])
logger = get_logger(__name__)

SUMMARY_FIELDS = {
    CommissionStatus.PENDING: "pending",
    CommissionStatus.PENDING_PAYOUT: "pending_payout",
    CommissionStatus.PAID: "paid",
    CommissionStatus.CANCELLED: "cancelled",
}


async def summarize_commissions(
    db: AsyncSession, user_id: Optional[uuid.UUID] = None
) -> CommissionSummary:
    """Commission totals per status, optionally for one referrer."""
    query = select(Commission.status, func.coalesce(func.sum(Commission.amount), 0))
    if user_id:
        query = query.where(Commission.user_id == user_id)
    result = await db.execute(query.group_by(Commission.status))

    summary = CommissionSummary()
    for commission_status, amount in result.all():
        setattr(
            summary,
            SUMMARY_FIELDS[commission_status],
            Decimal(str(amount)).quantize(Decimal("0.01")),
        )
    return summary


# ============================================================================
# CALCULATION
# ============================================================================


@router.post("/orders/{order_id}/calculate-commission")
@admin_limit
async def calculate_commission(
    request: Request,
    order_id: uuid.UUID,
    response: Response,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create the referral commission for a shipped or delivered order (idempotent)."""
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.status not in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        raise HTTPException(
            status_code=400,
            detail="Commission can only be calculated for shipped or delivered orders",
        )

    commission, created = await calculate_order_commission(db, order)
    if commission is None:
        return {"message": "No referrer for this order; no commission created"}
    if not created:
        return {
            "message": "Commission already calculated",
            "commission_id": commission.id,
        }

    await log_audit(
        db,
        entity_type=AuditEntityType.COMMISSION,
        entity_id=commission.id,
        action="commission_calculated",
        performed_by=admin.user_id,
        new_value={
            "order_id": str(order.id),
            "amount": str(commission.amount),
            "rate": str(commission.rate),
        },
    )
    await db.commit()

    response.status_code = status.HTTP_201_CREATED
    return {
        "message": "Commission created",
        "commission_id": commission.id,
        "amount": commission.amount,
        "user_id": commission.user_id,
    }


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/commissions", response_model=CommissionListResponse)
@admin_limit
async def list_commissions(
    request: Request,
    status: Optional[CommissionStatus] = None,
    user_id: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Commission)
    if status:
        query = query.where(Commission.status == status)
    if user_id:
        query = query.where(Commission.user_id == user_id)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(Commission.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return CommissionListResponse(
        commissions=[
            CommissionResponse.model_validate(c) for c in result.scalars().all()
        ],
        summary=await summarize_commissions(db, user_id),
        **page_payload(total, page, limit),
    )


@router.get("/admin/commissions/pending", response_model=list[PendingPayoutGroup])
@admin_limit
async def list_pending_payouts(
    request: Request,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Commissions ready to pay, grouped per referrer."""
    result = await db.execute(
        select(Commission, User)
        .join(User, User.id == Commission.user_id)
        .where(Commission.status == CommissionStatus.PENDING_PAYOUT)
        .order_by(Commission.created_at.asc())
    )

    groups: dict[uuid.UUID, dict] = defaultdict(
        lambda: {"commissions": [], "total_amount": Decimal("0")}
    )
    for commission, user in result.all():
        group = groups[user.id]
        group["name"] = user.name
        group["email"] = user.email
        group["commissions"].append(CommissionResponse.model_validate(commission))
        group["total_amount"] += commission.amount

    return [
        PendingPayoutGroup(
            user_id=user_id,
            name=group["name"],
            email=group["email"],
            total_amount=group["total_amount"],
            commission_count=len(group["commissions"]),
            commissions=group["commissions"],
        )
        for user_id, group in groups.items()
    ]


@router.post("/admin/commissions/payout", response_model=PayoutResponse)
@admin_limit
async def payout_commissions(
    request: Request,
    payload: PayoutRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Pay out commissions in Pending Payout; anything else is skipped."""
    requested = list(dict.fromkeys(payload.commission_ids))
    result = await db.execute(
        select(Commission).where(Commission.id.in_(requested)).with_for_update()
    )
    found = {c.id: c for c in result.scalars().all()}

    payable = [
        found[cid]
        for cid in requested
        if cid in found and found[cid].status == CommissionStatus.PENDING_PAYOUT
    ]
    skipped = [cid for cid in requested if cid not in {c.id for c in payable}]

    if not payable:
        return PayoutResponse(
            message="No commissions were eligible for payout",
            details=PayoutDetails(
                processed_count=0, skipped_ids=skipped, total_amount=Decimal("0.00")
            ),
        )

    total_amount = sum((c.amount for c in payable), Decimal("0"))
    batch = PayoutBatch(
        payout_method=payload.payout_method,
        reference=payload.payout_reference,
        total_amount=total_amount,
        commission_count=len(payable),
        processed_by=admin.user_id,
    )
    db.add(batch)
    await db.flush()

    now = utc_now()
    for commission in payable:
        commission.status = CommissionStatus.PAID
        commission.payout_batch_id = batch.id
        commission.payment_date = now
        commission.payment_reference = payload.payout_reference

    await log_audit(
        db,
        entity_type=AuditEntityType.COMMISSION,
        entity_id=batch.id,
        action="commissions_paid",
        performed_by=admin.user_id,
        new_value={
            "commission_ids": [str(c.id) for c in payable],
            "total_amount": str(total_amount),
            "payout_method": payload.payout_method.value,
        },
    )
    await db.commit()

    logger.info(
        "Paid out %d commission(s) totalling %s",
        len(payable),
        total_amount,
        extra={"extra_fields": {"batch_id": str(batch.id)}},
    )
    return PayoutResponse(
        message=f"Paid out {len(payable)} commission(s)",
        details=PayoutDetails(
            batch_id=batch.id,
            processed_count=len(payable),
            skipped_ids=skipped,
            total_amount=total_amount,
        ),
    )


@router.post("/admin/commissions/{commission_id}/cancel")
@admin_limit
async def cancel_commission(
    request: Request,
    commission_id: uuid.UUID,
    payload: CommissionCancelRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    commission = await db.get(Commission, commission_id)
    if not commission:
        raise HTTPException(status_code=404, detail="Commission not found")
    if commission.status in (CommissionStatus.PAID, CommissionStatus.CANCELLED):
        raise HTTPException(
            status_code=400,
            detail=f"Commission is already {commission.status.value}",
        )

    previous = commission.status
    commission.status = CommissionStatus.CANCELLED
    commission.notes = payload.reason
    await log_audit(
        db,
        entity_type=AuditEntityType.COMMISSION,
        entity_id=commission.id,
        action="commission_cancelled",
        performed_by=admin.user_id,
        old_value={"status": previous.value},
        new_value={"status": CommissionStatus.CANCELLED.value},
        notes=payload.reason,
    )
    await db.commit()
    return {"message": "Commission cancelled", "commission_id": commission.id}


# ============================================================================
# REFERRER
# ============================================================================


@router.get("/users/me/commissions", response_model=MyCommissionsResponse)
@api_limit
async def list_my_commissions(
    request: Request,
    status: Optional[CommissionStatus] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Commission).where(Commission.user_id == current_user.user_uuid)
    if status:
        query = query.where(Commission.status == status)
    result = await db.execute(query.order_by(Commission.created_at.desc()))
    return MyCommissionsResponse(
        commissions=[
            CommissionResponse.model_validate(c) for c in result.scalars().all()
        ],
        summary=await summarize_commissions(db, current_user.user_uuid),
    )
