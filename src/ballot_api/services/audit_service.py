"""Audit logging service.

Provides immutable audit trail recording and querying for administrative
actions: manual status changes, exports and restores.
"""

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.models.audit_log import AuditLog


async def log_access(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    username: str,
    action: str,
    resource_type: str,
    resource_ids: list[str] | None = None,
    request_metadata: dict | None = None,
) -> AuditLog:
    """Create an immutable audit log record.

    Args:
        session: The database session.
        user_id: The acting administrator's ID.
        username: The acting administrator's username.
        action: The action performed (status_change, export, restore, delete).
        resource_type: The resource type affected.
        resource_ids: List of affected resource IDs.
        request_metadata: Additional context metadata.

    Returns:
        The created AuditLog record.
    """
    audit_log = AuditLog(
        user_id=user_id,
        username=username,
        action=action,
        resource_type=resource_type,
        resource_ids=resource_ids,
        request_metadata=request_metadata,
    )
    session.add(audit_log)
    await session.commit()
    return audit_log


async def query_audit_logs(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AuditLog], int]:
    """Query audit logs with optional filters.

    Returns:
        Tuple of (audit log records, total count).
    """
    filters = []
    if user_id is not None:
        filters.append(AuditLog.user_id == user_id)
    if action is not None:
        filters.append(AuditLog.action == action)
    if resource_type is not None:
        filters.append(AuditLog.resource_type == resource_type)
    if start_time is not None:
        filters.append(AuditLog.timestamp >= start_time)
    if end_time is not None:
        filters.append(AuditLog.timestamp <= end_time)

    total = (await session.execute(select(func.count(AuditLog.id)).where(*filters))).scalar_one()

    offset = (page - 1) * page_size
    query = select(AuditLog).where(*filters).order_by(AuditLog.timestamp.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    return list(result.scalars().all()), total
