"""Pydantic v2 schemas for election endpoints.

Covers election creation and listing, manual status actions, and the
reconciliation sweep response shared by every trigger path.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ballot_api.schemas.common import PaginationMeta

# --- Request schemas ---


class ElectionCreateRequest(BaseModel):
    """Request body for creating a new election."""

    name: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    start_at: datetime
    end_at: datetime
    status: Literal["DRAFT", "INACTIVE"] = Field(
        default="INACTIVE",
        description="DRAFT elections are never activated automatically; INACTIVE ones open at start_at.",
    )
    hide_name: bool = False


class StatusActionRequest(BaseModel):
    """Manual status action performed by an administrator."""

    action: Literal["publish", "pause", "start"] = Field(
        description="publish: DRAFT->INACTIVE, pause: ACTIVE->INACTIVE, start: INACTIVE->ACTIVE",
    )


# --- Response schemas ---


class ElectionSummary(BaseModel):
    """Election summary for list endpoints."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    start_at: datetime
    end_at: datetime
    status: str
    hide_name: bool = False


class ElectionDetailResponse(ElectionSummary):
    """Full election detail response."""

    description: str | None = None
    created_by_id: uuid.UUID | None = None
    position_count: int = 0
    voter_count: int = 0
    created_at: datetime
    updated_at: datetime


class PaginatedElectionListResponse(BaseModel):
    """Paginated list of elections."""

    items: list[ElectionSummary]
    pagination: PaginationMeta


class StatusChange(BaseModel):
    """One election status transition that was committed."""

    id: uuid.UUID
    name: str
    previous_status: str
    status: str


class ReconcileResponse(BaseModel):
    """Result of a reconciliation sweep."""

    updated_count: int
    updated_elections: list[StatusChange] = Field(default_factory=list)
    checked_at: datetime
