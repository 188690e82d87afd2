"""AuditLog model for immutable administrative action tracking."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ballot_api.models.base import Base, UUIDMixin


class AuditLog(Base, UUIDMixin):
    """Immutable record of administrative events. Write-only (no updates or deletes)."""

    __tablename__ = "audit_logs"

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_ids: Mapped[list | None] = mapped_column(JSON, nullable=True)
    request_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)
