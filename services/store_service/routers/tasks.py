"""Back-office task queue for admins and distributors."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit, api_limit
from libs.db.session import get_async_db
from services.store_service.models import (
    AuditEntityType,
    Task,
    TaskCategory,
    TaskPriority,
    TaskStatus,
)
from services.store_service.schemas import (
    TaskCompleteRequest,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
)
from services.store_service.services.audit import log_audit
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["tasks"])

OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

PRIORITY_ORDER = case(
    (Task.priority == TaskPriority.URGENT, 0),
    (Task.priority == TaskPriority.HIGH, 1),
    (Task.priority == TaskPriority.MEDIUM, 2),
    else_=3,
)


async def _get_task_for_user(
    db: AsyncSession, task_id: uuid.UUID, current_user: AuthUser
) -> Task:
    task = await db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if not current_user.is_admin and task.assigned_to != current_user.user_uuid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage tasks assigned to you",
        )
    return task


def _mark_completed(task: Task, completed_by: str) -> None:
    task.status = TaskStatus.COMPLETED
    task.completed_at = utc_now()
    task.completed_by = completed_by


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/tasks", response_model=TaskListResponse)
@admin_limit
async def list_tasks(
    request: Request,
    status: Optional[TaskStatus] = None,
    category: Optional[TaskCategory] = None,
    priority: Optional[TaskPriority] = None,
    assigned_to: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Task)
    if status:
        query = query.where(Task.status == status)
    if category:
        query = query.where(Task.category == category)
    if priority:
        query = query.where(Task.priority == priority)
    if assigned_to:
        query = query.where(Task.assigned_to == assigned_to)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(Task.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(t) for t in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.get("/admin/tasks/pending", response_model=list[TaskResponse])
@admin_limit
async def list_pending_tasks(
    request: Request,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Open tasks, most urgent first."""
    result = await db.execute(
        select(Task)
        .where(Task.status.in_(OPEN_STATUSES))
        .order_by(PRIORITY_ORDER, Task.created_at.asc())
    )
    return result.scalars().all()


@router.post(
    "/admin/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED
)
@admin_limit
async def create_task(
    request: Request,
    payload: TaskCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    task = Task(**payload.model_dump(), status=TaskStatus.PENDING)
    db.add(task)
    await db.flush()
    await log_audit(
        db,
        entity_type=AuditEntityType.TASK,
        entity_id=task.id,
        action="task_created",
        performed_by=current_user.user_id,
        new_value={"title": task.title, "category": task.category.value},
    )
    await db.commit()
    await db.refresh(task)
    return task


# ============================================================================
# ASSIGNEE
# ============================================================================


@router.get("/users/me/tasks", response_model=list[TaskResponse])
@api_limit
async def list_my_tasks(
    request: Request,
    status: Optional[TaskStatus] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Task).where(Task.assigned_to == current_user.user_uuid)
    if status:
        query = query.where(Task.status == status)
    result = await db.execute(query.order_by(PRIORITY_ORDER, Task.created_at.desc()))
    return result.scalars().all()


@router.get("/tasks/{task_id}", response_model=TaskResponse)
@api_limit
async def get_task(
    request: Request,
    task_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await _get_task_for_user(db, task_id, current_user)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
@api_limit
async def update_task(
    request: Request,
    task_id: uuid.UUID,
    payload: TaskUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    task = await _get_task_for_user(db, task_id, current_user)
    changes = payload.model_dump(exclude_unset=True)

    if "assigned_to" in changes and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can reassign tasks",
        )

    old_value = TaskResponse.model_validate(task).model_dump(
        mode="json", include=set(changes)
    )
    for field, value in changes.items():
        if field == "status" and value == TaskStatus.COMPLETED:
            _mark_completed(task, current_user.user_id)
        else:
            setattr(task, field, value)

    await log_audit(
        db,
        entity_type=AuditEntityType.TASK,
        entity_id=task.id,
        action="task_updated",
        performed_by=current_user.user_id,
        old_value=old_value,
        new_value=payload.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    await db.refresh(task)
    return task


@router.post("/tasks/{task_id}/complete", response_model=TaskResponse)
@api_limit
async def complete_task(
    request: Request,
    task_id: uuid.UUID,
    payload: Optional[TaskCompleteRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    task = await _get_task_for_user(db, task_id, current_user)
    if task.status == TaskStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Task is already completed")
    if task.status == TaskStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Task has been cancelled")

    _mark_completed(task, current_user.user_id)
    if payload and payload.notes:
        task.notes = payload.notes
    await db.commit()
    await db.refresh(task)
    return task
