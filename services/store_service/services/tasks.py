"""Task table helpers: create, complete and cancel work items tied to an entity."""

import uuid
from typing import Optional, Union

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.members_service.models import User, UserRole, UserStatus
from services.store_service.models import (
    Task,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
    TaskStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Title prefixes identify which step of a workflow a task belongs to.
APPROVE_ORDER = "Approve Order"
ASSIGN_DISTRIBUTOR = "Assign Distributor"
FULFILL_ORDER = "Fulfill Order"
VERIFY_FULFILLMENT = "Verify Fulfillment"
SHIP_ORDER = "Ship Order"
PROCESS_PAID_ORDER = "Process Paid Order"
CONFIRM_ETRANSFER = "Confirm E-Transfer Payment"
CONFIRM_BITCOIN = "Confirm Bitcoin Payment"
REVIEW_MANUAL_PAYMENT = "Review Manual Payment"
REVIEW_WHOLESALE = "Review Wholesale Application"
REVIEW_DISTRIBUTOR = "Review Distributor Registration"


async def get_first_admin_id(db: AsyncSession) -> Optional[uuid.UUID]:
    """Oldest active admin; default assignee for admin tasks."""
    result = await db.execute(
        select(User.id)
        .where(User.role == UserRole.ADMIN, User.status == UserStatus.ACTIVE)
        .order_by(User.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_task(
    db: AsyncSession,
    *,
    title: str,
    category: TaskCategory,
    related_to: Optional[TaskRelatedEntity] = None,
    related_id: Union[uuid.UUID, str, None] = None,
    assigned_to: Optional[uuid.UUID] = None,
    priority: TaskPriority = TaskPriority.MEDIUM,
    description: Optional[str] = None,
    assign_to_admin: bool = False,
) -> Task:
    """Add a pending task. With ``assign_to_admin`` an unset assignee defaults to the first admin."""
    if assigned_to is None and assign_to_admin:
        assigned_to = await get_first_admin_id(db)

    task = Task(
        title=title,
        description=description,
        category=category,
        priority=priority,
        related_to=related_to,
        related_id=str(related_id) if related_id is not None else None,
        assigned_to=assigned_to,
        status=TaskStatus.PENDING,
    )
    db.add(task)
    return task


async def find_open_tasks(
    db: AsyncSession,
    *,
    related_to: TaskRelatedEntity,
    related_id: Union[uuid.UUID, str],
    title_prefix: Optional[str] = None,
    category: Optional[TaskCategory] = None,
    assigned_to: Optional[uuid.UUID] = None,
) -> list[Task]:
    query = select(Task).where(
        Task.related_to == related_to,
        Task.related_id == str(related_id),
        Task.status.in_([TaskStatus.PENDING, TaskStatus.IN_PROGRESS]),
    )
    if title_prefix:
        query = query.where(Task.title.startswith(title_prefix))
    if category:
        query = query.where(Task.category == category)
    if assigned_to:
        query = query.where(Task.assigned_to == assigned_to)
    result = await db.execute(query)
    return list(result.scalars().all())


async def complete_tasks(
    db: AsyncSession,
    *,
    related_to: TaskRelatedEntity,
    related_id: Union[uuid.UUID, str],
    completed_by: str,
    title_prefix: Optional[str] = None,
    category: Optional[TaskCategory] = None,
    assigned_to: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> int:
    """Complete matching open tasks. Returns how many were closed."""
    tasks = await find_open_tasks(
        db,
        related_to=related_to,
        related_id=related_id,
        title_prefix=title_prefix,
        category=category,
        assigned_to=assigned_to,
    )
    now = utc_now()
    for task in tasks:
        task.status = TaskStatus.COMPLETED
        task.completed_at = now
        task.completed_by = str(completed_by)
        if notes:
            task.notes = notes
    return len(tasks)


async def cancel_tasks(
    db: AsyncSession,
    *,
    related_to: TaskRelatedEntity,
    related_id: Union[uuid.UUID, str],
    title_prefix: Optional[str] = None,
    notes: Optional[str] = None,
) -> int:
    """Cancel matching open tasks. Returns how many were cancelled."""
    tasks = await find_open_tasks(
        db, related_to=related_to, related_id=related_id, title_prefix=title_prefix
    )
    for task in tasks:
        task.status = TaskStatus.CANCELLED
        if notes:
            task.notes = notes
    if tasks:
        logger.info(
            "Cancelled %d open task(s) for %s %s",
            len(tasks),
            related_to.value,
            related_id,
        )
    return len(tasks)
