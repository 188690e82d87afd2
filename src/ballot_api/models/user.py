"""User model for authentication and role-based access control."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, true
from sqlalchemy.orm import Mapped, mapped_column

from ballot_api.models.base import Base, TimestampMixin, UUIDMixin


class UserRole(enum.StrEnum):
    """Account roles. Administrator accounts survive a restore."""

    ADMIN = "admin"
    VOTER = "voter"


class User(Base, UUIDMixin, TimestampMixin):
    """Authenticated account of the system with role-based access control."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (CheckConstraint("role IN ('admin', 'voter')", name="ck_users_role"),)
