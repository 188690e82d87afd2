"""Vote ORM model.

At most one vote exists per (voter, position); the unique constraint is
what rejects a racing duplicate ballot.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ballot_api.models.base import Base, UUIDMixin


class Vote(Base, UUIDMixin):
    """One persisted (voter, position, candidate) selection."""

    __tablename__ = "votes"

    voter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("voters.id", ondelete="CASCADE"),
        nullable=False,
    )
    position_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
    )
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
    )
    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
    )
    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("voter_id", "position_id", name="uq_votes_voter_position"),
        Index("idx_votes_election_id", "election_id"),
        Index("idx_votes_candidate_id", "candidate_id"),
    )
