"""Ballot service: at-most-once ballot casting.

A ballot is accepted inside one transaction that re-reads the voter and
election under row locks, writes one vote per position, and only then
marks the voter as having cast.  The unique (voter, position) constraint
on votes is the final arbiter when two submissions race.
"""

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import get_settings
from ballot_api.core.database import apply_local_timeouts
from ballot_api.core.errors import (
    BallotApiError,
    BallotValidationError,
    DuplicateVoteError,
    NotAuthenticatedError,
    StateConflictError,
    StoreUnavailableError,
)
from ballot_api.models.election import Candidate, Election, ElectionStatus, Position
from ballot_api.models.vote import Vote
from ballot_api.models.voter import Voter, VoterStatus
from ballot_api.schemas.ballot import BallotReceipt


async def cast_ballot(
    session: AsyncSession,
    voter_id: uuid.UUID,
    selections: Mapping[uuid.UUID, uuid.UUID],
) -> BallotReceipt:
    """Record a voter's complete ballot exactly once.

    Args:
        session: Async database session.
        voter_id: The voter casting the ballot.
        selections: Mapping of position id to selected candidate id.

    Returns:
        A receipt for the committed ballot.

    Raises:
        BallotValidationError: If the selections are empty, do not cover
            exactly the election's positions, or name a candidate that does
            not run for the selected position.
        NotAuthenticatedError: If the voter no longer exists.
        StateConflictError: If the voter already cast a ballot or the
            election is not open.
        DuplicateVoteError: If a concurrent ballot for the same voter won.
        StoreUnavailableError: If the store timed out or is unreachable.
    """
    if not selections:
        msg = "A ballot must include a selection for every position."
        raise BallotValidationError(msg, code="incomplete-ballot")

    settings = get_settings()
    with logger.contextualize(voter_id=str(voter_id)):
        try:
            await apply_local_timeouts(
                session,
                statement_timeout_ms=settings.ballot_statement_timeout_ms,
                lock_timeout_ms=settings.ballot_statement_timeout_ms,
            )
            receipt = await _cast_in_transaction(session, voter_id, selections)
            await session.commit()
        except BallotApiError:
            await session.rollback()
            raise
        except IntegrityError as e:
            await session.rollback()
            logger.warning("Rejected duplicate ballot")
            msg = "This ballot conflicts with one already recorded."
            raise DuplicateVoteError(msg) from e
        except OperationalError as e:
            await session.rollback()
            logger.exception("Store unavailable while casting ballot")
            msg = "The ballot could not be recorded right now; try again shortly."
            raise StoreUnavailableError(msg) from e

        logger.bind(election_id=str(receipt.election_id)).info("Ballot cast")
    return receipt


async def _cast_in_transaction(
    session: AsyncSession,
    voter_id: uuid.UUID,
    selections: Mapping[uuid.UUID, uuid.UUID],
) -> BallotReceipt:
    voter = (
        await session.execute(
            select(Voter).where(Voter.id == voter_id).with_for_update().execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if voter is None:
        msg = "Voter record not found; sign in again."
        raise NotAuthenticatedError(msg)
    if voter.status == VoterStatus.CAST:
        msg = "You have already cast your ballot."
        raise StateConflictError(msg, code="already-voted")

    election = None
    if voter.election_id is not None:
        election = (
            await session.execute(
                select(Election)
                .where(Election.id == voter.election_id)
                .with_for_update(read=True)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
    if election is None or election.status != ElectionStatus.ACTIVE:
        msg = "The election is not open for voting."
        raise StateConflictError(msg, code="election-not-open")

    position_ids = set(
        (await session.execute(select(Position.id).where(Position.election_id == election.id))).scalars().all()
    )
    if set(selections) != position_ids:
        msg = "A ballot must include exactly one selection for every position."
        raise BallotValidationError(msg, code="incomplete-ballot")

    result = await session.execute(
        select(Candidate.id, Candidate.position_id).where(
            Candidate.election_id == election.id,
            Candidate.id.in_(set(selections.values())),
        )
    )
    candidate_positions = {candidate_id: position_id for candidate_id, position_id in result}
    for position_id, candidate_id in selections.items():
        if candidate_positions.get(candidate_id) != position_id:
            msg = f"Candidate {candidate_id} is not running for position {position_id}."
            raise BallotValidationError(msg, code="invalid-selection")

    cast_at = datetime.now(UTC)
    session.add_all(
        Vote(
            voter_id=voter.id,
            position_id=position_id,
            candidate_id=candidate_id,
            election_id=election.id,
            voted_at=cast_at,
        )
        for position_id, candidate_id in selections.items()
    )
    # Votes must hit the unique constraint before the voter is marked as cast.
    await session.flush()
    voter.status = VoterStatus.CAST
    await session.flush()

    return BallotReceipt(
        voter_id=voter.id,
        election_id=election.id,
        votes_recorded=len(selections),
        cast_at=cast_at,
    )
