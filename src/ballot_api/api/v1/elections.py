"""Election API endpoints.

POST /elections/status/cron — scheduler-triggered status reconciliation
POST /elections/status/refresh — on-demand status reconciliation
GET /elections — list elections
POST /elections — create election
GET /elections/{id} — election detail
DELETE /elections/{id} — delete election and its scoped records
POST /elections/{id}/status — manual status action
"""

import math
import uuid
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.dependencies import get_async_session, require_role, verify_cron_secret
from ballot_api.models.user import User
from ballot_api.schemas.common import ErrorResponse, PaginationMeta
from ballot_api.schemas.election import (
    ElectionCreateRequest,
    ElectionDetailResponse,
    PaginatedElectionListResponse,
    ReconcileResponse,
    StatusActionRequest,
    StatusChange,
)
from ballot_api.services import election_service, election_status_service

elections_router = APIRouter(prefix="/elections", tags=["elections"])


async def _reconcile(session: AsyncSession) -> ReconcileResponse:
    checked_at = datetime.now(UTC)
    changes = await election_status_service.reconcile_election_statuses(session, now=checked_at)
    return ReconcileResponse(updated_count=len(changes), updated_elections=changes, checked_at=checked_at)


# --- Status reconciliation ---


@elections_router.post(
    "/status/cron",
    response_model=ReconcileResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def reconcile_from_scheduler(
    _authorized: Annotated[None, Depends(verify_cron_secret)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ReconcileResponse:
    """Reconcile election statuses. Requires the scheduler secret."""
    return await _reconcile(session)


@elections_router.post("/status/refresh", response_model=ReconcileResponse)
async def reconcile_on_demand(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ReconcileResponse:
    """Reconcile election statuses on behalf of a viewing client. Public endpoint.

    Idempotent: a call made right after another reports no changes.
    """
    return await _reconcile(session)


# --- List & create ---


@elections_router.get("", response_model=PaginatedElectionListResponse)
async def list_elections(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    status: str | None = Query(default=None, description="Filter by status"),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Results per page"),
) -> PaginatedElectionListResponse:
    """List elections with an optional status filter. Public endpoint."""
    items, total = await election_service.list_elections(session, status=status, page=page, page_size=page_size)
    return PaginatedElectionListResponse(
        items=items,
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)) if total > 0 else 0,
        ),
    )


@elections_router.post(
    "",
    response_model=ElectionDetailResponse,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
)
async def create_election(
    request: ElectionCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(require_role("admin"))],
) -> ElectionDetailResponse:
    """Create a new election. Admin-only."""
    election = await election_service.create_election(session, request, owner=current_user)
    return await election_service.build_detail_response(session, election)


# --- Detail, delete & manual status ---


@elections_router.get("/{election_id}", response_model=ElectionDetailResponse)
async def get_election(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ElectionDetailResponse:
    """Get election detail by ID. Public endpoint."""
    election = await election_service.get_election_by_id(session, election_id)
    if election is None:
        raise HTTPException(status_code=404, detail="Election not found.")
    return await election_service.build_detail_response(session, election)


@elections_router.delete("/{election_id}", response_model=dict, responses={404: {"model": ErrorResponse}})
async def delete_election(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(require_role("admin"))],
) -> dict:
    """Delete an election with its positions, parties, candidates and votes. Admin-only.

    Voters registered to the election are kept and detached.
    """
    affected = await election_service.delete_election(session, election_id, actor=current_user)
    return {"success": True, "affected": affected}


@elections_router.post(
    "/{election_id}/status",
    response_model=StatusChange,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def change_status(
    election_id: uuid.UUID,
    request: StatusActionRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(require_role("admin"))],
) -> StatusChange:
    """Publish, pause or start an election. Admin-only."""
    return await election_status_service.change_election_status(
        session,
        election_id,
        request.action,
        actor=current_user,
    )
