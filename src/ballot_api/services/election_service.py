"""Election service: creation, lookup, listing and cascade deletion."""

import uuid

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.errors import NotFoundError, ScheduleValidationError, StoreUnavailableError
from ballot_api.lib.schedule import validate_window
from ballot_api.lib.snapshot import election_cascade_order
from ballot_api.models.election import Election, Position
from ballot_api.models.user import User
from ballot_api.models.voter import Voter
from ballot_api.schemas.election import ElectionCreateRequest, ElectionDetailResponse, ElectionSummary
from ballot_api.services.audit_service import log_access


async def create_election(
    session: AsyncSession,
    request: ElectionCreateRequest,
    owner: User | None = None,
) -> Election:
    """Create a new election.

    Args:
        session: Async database session.
        request: Election creation request.
        owner: Administrator who owns the election.

    Returns:
        The created Election instance.

    Raises:
        ScheduleValidationError: If the window does not open before it closes.
    """
    try:
        validate_window(request.start_at, request.end_at)
    except ValueError as e:
        raise ScheduleValidationError(str(e)) from e

    election = Election(
        name=request.name,
        description=request.description,
        start_at=request.start_at,
        end_at=request.end_at,
        status=request.status,
        hide_name=request.hide_name,
        created_by_id=owner.id if owner is not None else None,
    )
    session.add(election)
    await session.commit()
    await session.refresh(election)
    logger.info("Created election {} ({})", election.id, election.name)
    return election


async def get_election_by_id(
    session: AsyncSession,
    election_id: uuid.UUID,
) -> Election | None:
    """Get an election by ID.

    Returns:
        Election instance or None if not found.
    """
    result = await session.execute(select(Election).where(Election.id == election_id))
    return result.scalar_one_or_none()


async def build_detail_response(session: AsyncSession, election: Election) -> ElectionDetailResponse:
    """Build an ElectionDetailResponse including position and voter counts."""
    position_count = (
        await session.execute(select(func.count(Position.id)).where(Position.election_id == election.id))
    ).scalar_one()
    voter_count = (
        await session.execute(select(func.count(Voter.id)).where(Voter.election_id == election.id))
    ).scalar_one()
    return ElectionDetailResponse(
        id=election.id,
        name=election.name,
        description=election.description,
        start_at=election.start_at,
        end_at=election.end_at,
        status=election.status,
        hide_name=election.hide_name,
        created_by_id=election.created_by_id,
        position_count=position_count,
        voter_count=voter_count,
        created_at=election.created_at,
        updated_at=election.updated_at,
    )


async def list_elections(
    session: AsyncSession,
    *,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ElectionSummary], int]:
    """List elections with optional status filter and pagination.

    Args:
        session: Async database session.
        status: Filter by election status.
        page: Page number (1-indexed).
        page_size: Results per page.

    Returns:
        Tuple of (election summaries, total count).
    """
    query = select(Election)
    count_query = select(func.count(Election.id))
    if status:
        query = query.where(Election.status == status)
        count_query = count_query.where(Election.status == status)

    total = (await session.execute(count_query)).scalar_one()

    offset = (page - 1) * page_size
    query = query.order_by(Election.start_at.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    items = [ElectionSummary.model_validate(election) for election in result.scalars().all()]
    return items, total


async def delete_election(
    session: AsyncSession,
    election_id: uuid.UUID,
    actor: User | None = None,
) -> dict[str, int]:
    """Delete one election and everything scoped to it in one transaction.

    Votes, candidates, positions and parties are removed.  Voters are kept
    but detached from the election.

    Args:
        session: Async database session.
        election_id: The election to delete.
        actor: Administrator performing the deletion, recorded in the audit
            log when given.

    Returns:
        Rows affected per entity kind.

    Raises:
        NotFoundError: If the election does not exist.
        StoreUnavailableError: If the store rejected or timed out the deletion.
    """
    audit_identity = (actor.id, actor.username) if actor is not None else None
    affected: dict[str, int] = {}
    try:
        exists = (await session.execute(select(Election.id).where(Election.id == election_id))).scalar_one_or_none()
        if exists is None:
            msg = "Election not found."
            raise NotFoundError(msg)

        for kind in election_cascade_order():
            model = kind.model
            if kind.on_election_delete == "detach":
                stmt = update(model).where(model.election_id == election_id).values(election_id=None)
            else:
                stmt = delete(model).where(model.election_id == election_id)
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            affected[kind.key] = result.rowcount

        result = await session.execute(
            delete(Election).where(Election.id == election_id).execution_options(synchronize_session=False)
        )
        affected["elections"] = result.rowcount
        await session.commit()
    except NotFoundError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Failed to delete election {}", election_id)
        msg = "The election could not be deleted right now; try again shortly."
        raise StoreUnavailableError(msg) from e

    logger.info("Deleted election {}: {}", election_id, affected)
    if audit_identity is not None:
        await log_access(
            session,
            user_id=audit_identity[0],
            username=audit_identity[1],
            action="delete",
            resource_type="election",
            resource_ids=[str(election_id)],
            request_metadata={"affected": affected},
        )
    return affected
