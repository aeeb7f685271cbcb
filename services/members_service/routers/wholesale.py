"""Wholesale applications: buyer submission and admin review."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.emails.store import send_wholesale_decision_email
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit, api_limit
from libs.db.session import get_async_db
from services.members_service.models import (
    User,
    UserRole,
    WholesaleApplication,
    WholesaleApplicationStatus,
)
from services.members_service.schemas import (
    WholesaleApplicationListResponse,
    WholesaleApplicationResponse,
    WholesaleApplyRequest,
    WholesaleApplyResponse,
    WholesaleRejectRequest,
)
from services.store_service.models import (
    AuditEntityType,
    TaskCategory,
    TaskRelatedEntity,
)
from services.store_service.services import tasks as task_service
from services.store_service.services.audit import log_audit
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/wholesale", tags=["wholesale"])
admin_router = APIRouter(prefix="/admin/wholesale", tags=["admin-wholesale"])
logger = get_logger(__name__)


# ============================================================================
# BUYER ENDPOINTS
# ============================================================================


@router.post(
    "/apply",
    response_model=WholesaleApplyResponse,
    status_code=status.HTTP_201_CREATED,
)
@api_limit
async def apply_for_wholesale(
    request: Request,
    payload: WholesaleApplyRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await db.get(User, current_user.user_uuid)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.role == UserRole.WHOLESALE_BUYER:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already an approved wholesale buyer",
        )

    existing = await db.execute(
        select(WholesaleApplication.id).where(
            WholesaleApplication.user_id == user.id,
            WholesaleApplication.status.in_(
                [
                    WholesaleApplicationStatus.PENDING,
                    WholesaleApplicationStatus.APPROVED,
                ]
            ),
        )
    )
    if existing.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have a pending or approved wholesale application",
        )

    application = WholesaleApplication(
        user_id=user.id,
        business_name=payload.business_name,
        tax_id=payload.tax_id,
        business_type=payload.business_type,
        address=payload.address.model_dump(),
        phone=payload.phone,
        website=payload.website,
        notes=payload.notes,
        status=WholesaleApplicationStatus.PENDING,
    )
    db.add(application)
    await db.flush()

    await task_service.create_task(
        db,
        title=f"{task_service.REVIEW_WHOLESALE}: {payload.business_name}",
        description=f"{user.name} ({user.email}) applied for a wholesale account.",
        category=TaskCategory.USER_MANAGEMENT,
        related_to=TaskRelatedEntity.WHOLESALE_APPLICATION,
        related_id=application.id,
        assign_to_admin=True,
    )
    await db.commit()

    logger.info(
        "Wholesale application submitted",
        extra={
            "extra_fields": {
                "application_id": str(application.id),
                "user_id": str(user.id),
            }
        },
    )
    return WholesaleApplyResponse(
        message="Your wholesale application has been submitted for review.",
        application_id=application.id,
    )


@router.get("/application", response_model=WholesaleApplicationResponse)
@api_limit
async def get_my_application(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(WholesaleApplication)
        .where(WholesaleApplication.user_id == current_user.user_uuid)
        .order_by(WholesaleApplication.created_at.desc())
        .limit(1)
    )
    application = result.scalar_one_or_none()
    if not application:
        raise HTTPException(status_code=404, detail="No wholesale application found")
    return application


# ============================================================================
# ADMIN REVIEW
# ============================================================================


async def _get_application_or_404(
    db: AsyncSession, application_id: uuid.UUID
) -> WholesaleApplication:
    application = await db.get(WholesaleApplication, application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


def _ensure_pending(application: WholesaleApplication) -> None:
    if application.status != WholesaleApplicationStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Application has already been {application.status.value}",
        )


@admin_router.get("/applications", response_model=WholesaleApplicationListResponse)
@admin_limit
async def list_applications(
    request: Request,
    status_filter: Optional[WholesaleApplicationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(WholesaleApplication)
    if status_filter:
        query = query.where(WholesaleApplication.status == status_filter)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(WholesaleApplication.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return WholesaleApplicationListResponse(
        applications=[
            WholesaleApplicationResponse.model_validate(a)
            for a in result.scalars().all()
        ],
        **page_payload(total, page, limit),
    )


@admin_router.get(
    "/applications/{application_id}", response_model=WholesaleApplicationResponse
)
@admin_limit
async def get_application(
    request: Request,
    application_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await _get_application_or_404(db, application_id)


@admin_router.post("/applications/{application_id}/approve")
@admin_limit
async def approve_application(
    request: Request,
    application_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve an application and grant the Wholesale Buyer role."""
    application = await _get_application_or_404(db, application_id)
    _ensure_pending(application)

    user = await db.get(User, application.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Applicant not found")

    now = utc_now()
    application.status = WholesaleApplicationStatus.APPROVED
    application.reviewed_by = current_user.user_uuid
    application.reviewed_at = now

    old_role = user.role
    user.role = UserRole.WHOLESALE_BUYER
    user.wholesale_approved_at = now
    user.wholesale_approved_by = current_user.user_uuid

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.WHOLESALE_APPLICATION,
        related_id=application.id,
        completed_by=current_user.user_id,
        notes="Application approved",
    )
    await log_audit(
        db,
        entity_type=AuditEntityType.WHOLESALE_APPLICATION,
        entity_id=application.id,
        action="wholesale_approved",
        performed_by=current_user.user_id,
        old_value={"status": "pending", "role": old_role.value},
        new_value={"status": "approved", "role": user.role.value},
    )
    await db.commit()

    await send_wholesale_decision_email(user.email, user.name, approved=True)
    return {"message": "Wholesale application approved", "user_id": str(user.id)}


@admin_router.post("/applications/{application_id}/reject")
@admin_limit
async def reject_application(
    request: Request,
    application_id: uuid.UUID,
    payload: WholesaleRejectRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    application = await _get_application_or_404(db, application_id)
    _ensure_pending(application)

    application.status = WholesaleApplicationStatus.REJECTED
    application.reviewed_by = current_user.user_uuid
    application.reviewed_at = utc_now()
    application.rejection_reason = payload.reason

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.WHOLESALE_APPLICATION,
        related_id=application.id,
        completed_by=current_user.user_id,
        notes="Application rejected",
    )
    await log_audit(
        db,
        entity_type=AuditEntityType.WHOLESALE_APPLICATION,
        entity_id=application.id,
        action="wholesale_rejected",
        performed_by=current_user.user_id,
        new_value={"status": "rejected", "reason": payload.reason},
    )
    await db.commit()

    user = await db.get(User, application.user_id)
    if user:
        await send_wholesale_decision_email(
            user.email, user.name, approved=False, reason=payload.reason
        )
    return {"message": "Wholesale application rejected"}
