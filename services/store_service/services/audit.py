"""Audit trail helper shared by back-office routers."""

import uuid
from typing import Optional, Union

from services.store_service.models import AuditEntityType, AuditLog
from sqlalchemy.ext.asyncio import AsyncSession


async def log_audit(
    db: AsyncSession,
    entity_type: AuditEntityType,
    entity_id: Union[uuid.UUID, str],
    action: str,
    performed_by: str,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    notes: Optional[str] = None,
) -> AuditLog:
    """Log an audit event. The caller owns the transaction."""
    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_value=old_value,
        new_value=new_value,
        performed_by=str(performed_by),
        notes=notes,
    )
    db.add(audit_log)
    return audit_log
