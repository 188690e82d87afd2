"""Ballot API endpoints.

POST /ballots — cast the signed-in voter's ballot
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.dependencies import get_async_session, get_current_voter_id
from ballot_api.schemas.ballot import BallotReceipt, BallotSubmission
from ballot_api.schemas.common import ErrorResponse
from ballot_api.services import ballot_service

ballots_router = APIRouter(prefix="/ballots", tags=["ballots"])


@ballots_router.post(
    "",
    response_model=BallotReceipt,
    status_code=201,
    responses={
        401: {"model": ErrorResponse, "description": "not-authenticated"},
        409: {"model": ErrorResponse, "description": "already-voted, election-not-open or conflict"},
        422: {"model": ErrorResponse, "description": "incomplete-ballot or invalid-selection"},
        503: {"model": ErrorResponse, "description": "store-unavailable"},
    },
)
async def cast_ballot(
    submission: BallotSubmission,
    voter_id: Annotated[uuid.UUID, Depends(get_current_voter_id)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> BallotReceipt:
    """Cast a complete ballot, one candidate per position. Accepted at most once per voter."""
    return await ballot_service.cast_ballot(session, voter_id, submission.selections)
