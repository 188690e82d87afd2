"""Audit log API endpoints.

GET /audit-logs — query the administrative audit trail
"""

import math
import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.dependencies import get_async_session, require_role
from ballot_api.models.user import User
from ballot_api.schemas.audit import AuditLogResponse, PaginatedAuditLogResponse
from ballot_api.schemas.common import PaginationMeta
from ballot_api.services import audit_service

audit_router = APIRouter(prefix="/audit-logs", tags=["audit"])


@audit_router.get("", response_model=PaginatedAuditLogResponse)
async def list_audit_logs(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(require_role("admin"))],
    user_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None, description="status_change, export, restore or delete"),
    resource_type: str | None = Query(default=None),
    start_time: datetime | None = Query(default=None),
    end_time: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedAuditLogResponse:
    """Query the audit trail. Admin-only."""
    logs, total = await audit_service.query_audit_logs(
        session,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        start_time=start_time,
        end_time=end_time,
        page=page,
        page_size=page_size,
    )
    return PaginatedAuditLogResponse(
        items=[AuditLogResponse.model_validate(log) for log in logs],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)) if total > 0 else 0,
        ),
    )
