"""Pydantic v2 schemas for ballot submission."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class BallotSubmission(BaseModel):
    """A complete ballot: one candidate per position of the voter's election."""

    selections: dict[uuid.UUID, uuid.UUID] = Field(
        description="Mapping of position id to the selected candidate id",
    )


class BallotReceipt(BaseModel):
    """Confirmation returned after a ballot committed."""

    voter_id: uuid.UUID
    election_id: uuid.UUID
    votes_recorded: int
    cast_at: datetime
