"""Voter ORM model."""

import enum
import uuid

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from ballot_api.models.base import Base, TimestampMixin, UUIDMixin


class VoterStatus(enum.StrEnum):
    """Participation status. CAST is only reached through a committed ballot."""

    REGISTERED = "REGISTERED"
    UNCAST = "UNCAST"
    CAST = "CAST"


class Voter(Base, UUIDMixin, TimestampMixin):
    """A participant registered to at most one election at a time."""

    __tablename__ = "voters"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    election_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="SET NULL"),
        nullable=True,
    )
    year_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("years.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=VoterStatus.REGISTERED)
    credentials_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        CheckConstraint("status IN ('REGISTERED', 'UNCAST', 'CAST')", name="ck_voter_status"),
        Index("idx_voters_election_id", "election_id"),
    )
