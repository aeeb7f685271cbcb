"""Task, audit log and upload schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.store_service.models import (
    AuditEntityType,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
    TaskStatus,
)

# ============================================================================
# TASKS
# ============================================================================


class TaskCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    related_to: Optional[TaskRelatedEntity] = None
    related_id: Optional[str] = Field(None, max_length=64)
    assigned_to: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class TaskUpdate(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class TaskCompleteRequest(BaseModel):
    notes: Optional[str] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    category: TaskCategory
    related_to: Optional[TaskRelatedEntity] = None
    related_id: Optional[str] = None
    assigned_to: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int
    page: int
    limit: int
    total_pages: int


# ============================================================================
# AUDIT LOGS
# ============================================================================


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entity_type: AuditEntityType
    entity_id: str
    action: str
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    performed_by: str
    performed_at: datetime
    notes: Optional[str] = None


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int


# ============================================================================
# UPLOADS
# ============================================================================


class UploadResponse(BaseModel):
    url: str
    path: str
