"""Audit log browsing for admins."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.store_service.models import AuditEntityType, AuditLog
from services.store_service.schemas import AuditLogListResponse, AuditLogResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/logs", tags=["admin-logs"])


@router.get("", response_model=AuditLogListResponse)
@admin_limit
async def list_audit_logs(
    request: Request,
    entity_type: Optional[AuditEntityType] = None,
    entity_id: Optional[str] = None,
    performed_by: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(AuditLog)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)
    if performed_by:
        query = query.where(AuditLog.performed_by == performed_by)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(AuditLog.performed_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in result.scalars().all()],
        **page_payload(total, page, limit),
    )
