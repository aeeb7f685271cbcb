"""Admin user management: listing, role/status changes and commission rates."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.members_service.models import User, UserRole, UserStatus
from services.members_service.routers._helpers import get_user_or_404
from services.members_service.schemas import (
    AdminUserDetail,
    AdminUserListResponse,
    AdminUserUpdate,
    UserResponse,
)
from services.store_service.models import AuditEntityType, Order, TaskRelatedEntity
from services.store_service.services import tasks as task_service
from services.store_service.services.audit import log_audit
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/users", tags=["admin-users"])
logger = get_logger(__name__)


def _snapshot(user: User) -> dict:
    return {
        "name": user.name,
        "role": user.role.value,
        "status": user.status.value,
        "commission_rate": (
            str(user.commission_rate) if user.commission_rate is not None else None
        ),
    }


@router.get("", response_model=AdminUserListResponse)
@admin_limit
async def list_users(
    request: Request,
    role: Optional[UserRole] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if status_filter:
        query = query.where(User.status == status_filter)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(or_(User.name.ilike(term), User.email.ilike(term)))

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(User.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return AdminUserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.get("/{user_id}", response_model=AdminUserDetail)
@admin_limit
async def get_user(
    request: Request,
    user_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    order_count = (
        await db.execute(select(func.count(Order.id)).where(Order.user_id == user.id))
    ).scalar_one()
    detail = AdminUserDetail.model_validate(user)
    detail.order_count = order_count
    return detail


@router.patch("/{user_id}", response_model=UserResponse)
@admin_limit
async def update_user(
    request: Request,
    user_id: uuid.UUID,
    payload: AdminUserUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)

    if user.id == current_user.user_uuid and (
        (payload.role is not None and payload.role != UserRole.ADMIN)
        or (payload.status is not None and payload.status != UserStatus.ACTIVE)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot demote or deactivate your own account",
        )

    before = _snapshot(user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await log_audit(
        db,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        action="user_updated",
        performed_by=current_user.user_id,
        old_value=before,
        new_value=_snapshot(user),
    )
    await db.commit()
    await db.refresh(user)
    return user


async def _set_status(
    db: AsyncSession,
    user: User,
    new_status: UserStatus,
    performed_by: str,
    action: str,
) -> None:
    old_status = user.status
    user.status = new_status
    await log_audit(
        db,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        action=action,
        performed_by=performed_by,
        old_value={"status": old_status.value},
        new_value={"status": new_status.value},
    )
    await db.commit()
    logger.info(
        "User %s: %s -> %s",
        user.id,
        old_status.value,
        new_status.value,
        extra={"extra_fields": {"performed_by": performed_by}},
    )


@router.post("/{user_id}/activate")
@admin_limit
async def activate_user(
    request: Request,
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    if user.status == UserStatus.ACTIVE:
        return {"message": "User is already active", "status": user.status.value}

    await task_service.complete_tasks(
        db,
        related_to=TaskRelatedEntity.USER,
        related_id=user.id,
        completed_by=current_user.user_id,
        notes="Account activated",
    )
    await _set_status(db, user, UserStatus.ACTIVE, current_user.user_id, "user_activated")
    return {"message": "User activated", "status": UserStatus.ACTIVE.value}


@router.post("/{user_id}/suspend")
@admin_limit
async def suspend_user(
    request: Request,
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    if user.id == current_user.user_uuid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot suspend your own account",
        )
    if user.status == UserStatus.SUSPENDED:
        return {"message": "User is already suspended", "status": user.status.value}

    await _set_status(
        db, user, UserStatus.SUSPENDED, current_user.user_id, "user_suspended"
    )
    return {"message": "User suspended", "status": UserStatus.SUSPENDED.value}
