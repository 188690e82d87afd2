"""Audit log Pydantic v2 schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel

from ballot_api.schemas.common import PaginationMeta


class AuditLogResponse(BaseModel):
    """One audit trail record."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    timestamp: datetime
    user_id: uuid.UUID
    username: str
    action: str
    resource_type: str
    resource_ids: list[str] | None = None
    request_metadata: dict | None = None


class PaginatedAuditLogResponse(BaseModel):
    """Paginated list of audit log records."""

    items: list[AuditLogResponse]
    pagination: PaginationMeta
