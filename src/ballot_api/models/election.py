"""Election ORM models.

Provides Election and the records it owns: Position, Party and Candidate.
Deleting an election cascades to its positions, parties, candidates and
votes; voters are detached rather than deleted.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ballot_api.models.base import Base, TimestampMixin, UUIDMixin


class ElectionStatus(enum.StrEnum):
    """Lifecycle status of an election. COMPLETED is terminal."""

    DRAFT = "DRAFT"
    INACTIVE = "INACTIVE"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Election(Base, UUIDMixin, TimestampMixin):
    """A scheduled voting event with its own positions, parties and voters."""

    __tablename__ = "elections"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ElectionStatus.INACTIVE)
    hide_name: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    positions: Mapped[list["Position"]] = relationship(
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="Position.sort_order",
    )
    parties: Mapped[list["Party"]] = relationship(back_populates="election", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'INACTIVE', 'ACTIVE', 'COMPLETED')",
            name="ck_election_status",
        ),
        CheckConstraint("start_at < end_at", name="ck_election_window"),
        Index("idx_elections_status", "status"),
        Index("idx_elections_end_at", "end_at"),
    )


class Position(Base, UUIDMixin, TimestampMixin):
    """An office contested in an election; one selection per ballot."""

    __tablename__ = "positions"

    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("years.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    max_candidates: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    election: Mapped["Election"] = relationship(back_populates="positions")
    candidates: Mapped[list["Candidate"]] = relationship(back_populates="position", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("election_id", "name", name="uq_positions_election_name"),)


class Party(Base, UUIDMixin, TimestampMixin):
    """A named affiliation grouping candidates within one election."""

    __tablename__ = "parties"

    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    election: Mapped["Election"] = relationship(back_populates="parties")

    __table_args__ = (UniqueConstraint("election_id", "name", name="uq_parties_election_name"),)


class Candidate(Base, UUIDMixin, TimestampMixin):
    """A person running for a position under a party."""

    __tablename__ = "candidates"

    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    party_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("parties.id"),
        nullable=False,
        index=True,
    )
    year_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("years.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)

    position: Mapped["Position"] = relationship(back_populates="candidates")
