"""Election status service: time-driven reconciliation and manual transitions.

Every trigger (scheduler endpoint, on-demand refresh, CLI, background loop)
goes through ``reconcile_election_statuses``.  Each status change is a single
conditional UPDATE guarded by the status that was read, so concurrent sweeps
never apply or report the same transition twice.
"""

import asyncio
import uuid
from datetime import UTC, datetime
from typing import Literal

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import get_settings
from ballot_api.core.database import apply_local_timeouts
from ballot_api.core.errors import NotFoundError, StateConflictError, StoreUnavailableError
from ballot_api.core.notifications import StatusNotifier, status_notifier
from ballot_api.lib.schedule import ensure_utc, target_status
from ballot_api.models.election import Election, ElectionStatus
from ballot_api.models.user import User
from ballot_api.schemas.election import StatusChange
from ballot_api.services.audit_service import log_access

StatusAction = Literal["publish", "pause", "start"]

# action -> (required current status, new status)
_MANUAL_TRANSITIONS: dict[str, tuple[ElectionStatus, ElectionStatus]] = {
    "publish": (ElectionStatus.DRAFT, ElectionStatus.INACTIVE),
    "pause": (ElectionStatus.ACTIVE, ElectionStatus.INACTIVE),
    "start": (ElectionStatus.INACTIVE, ElectionStatus.ACTIVE),
}


async def _apply_transition(
    session: AsyncSession,
    election_id: uuid.UUID,
    observed: str,
    new_status: ElectionStatus,
    now: datetime,
) -> bool:
    """Compare-and-swap one election's status.

    Returns:
        True when this call changed the row, False when another writer got
        there first.
    """
    values: dict = {"status": new_status.value, "updated_at": now}
    if new_status is ElectionStatus.COMPLETED:
        values["hide_name"] = False
    result = await session.execute(
        update(Election)
        .where(Election.id == election_id, Election.status == observed)
        .values(**values)
    )
    return result.rowcount == 1


async def reconcile_election_statuses(
    session: AsyncSession,
    now: datetime | None = None,
    notifier: StatusNotifier | None = None,
) -> list[StatusChange]:
    """Bring every non-completed election's status in line with the clock.

    Each election is committed on its own.  A failure on one election is
    rolled back and logged, and the sweep continues with the next.

    Args:
        session: Async database session.
        now: Evaluation instant; defaults to the current UTC time.
        notifier: Receives each committed change; defaults to the
            application notifier.

    Returns:
        The transitions this call actually applied.  Transitions won by a
        concurrent sweep are not included.

    Raises:
        StoreUnavailableError: If the initial read fails.
    """
    now = ensure_utc(now or datetime.now(UTC))
    notifier = notifier or status_notifier
    settings = get_settings()

    try:
        result = await session.execute(
            select(Election.id, Election.name, Election.status, Election.start_at, Election.end_at).where(
                Election.status != ElectionStatus.COMPLETED.value
            )
        )
        candidates = result.all()
        # End the read transaction so each update below runs in its own.
        await session.rollback()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Failed to read elections for status reconciliation")
        msg = "Election store is unavailable; try again shortly."
        raise StoreUnavailableError(msg) from e

    changes: list[StatusChange] = []
    for row in candidates:
        target = target_status(now, row.start_at, row.end_at, row.status)
        if target.value == row.status:
            continue
        with logger.contextualize(election_id=str(row.id)):
            try:
                await apply_local_timeouts(session, statement_timeout_ms=settings.reconcile_statement_timeout_ms)
                applied = await _apply_transition(session, row.id, row.status, target, now)
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to update election status")
                continue

            if not applied:
                logger.debug("Election status already changed by another writer")
                continue

            change = StatusChange(id=row.id, name=row.name, previous_status=row.status, status=target.value)
            changes.append(change)
            try:
                await notifier.election_status_changed(change)
            except Exception:
                logger.exception("Status notifier failed")

    if changes:
        logger.info("Reconciled {} election status change(s)", len(changes))
    return changes


async def change_election_status(
    session: AsyncSession,
    election_id: uuid.UUID,
    action: StatusAction,
    actor: User | None = None,
    now: datetime | None = None,
) -> StatusChange:
    """Apply an administrator's manual status action.

    Args:
        session: Async database session.
        election_id: The election to change.
        action: ``publish`` (DRAFT to INACTIVE), ``pause`` (ACTIVE to
            INACTIVE) or ``start`` (INACTIVE to ACTIVE).
        actor: The administrator performing the action, recorded in the
            audit log when given.
        now: Evaluation instant; defaults to the current UTC time.

    Returns:
        The applied transition.

    Raises:
        NotFoundError: If the election does not exist.
        StateConflictError: If the action is not allowed from the current
            status, or the election has already ended.
        StoreUnavailableError: If the store times out.
    """
    now = ensure_utc(now or datetime.now(UTC))
    if action not in _MANUAL_TRANSITIONS:
        msg = f"Unknown status action '{action}'."
        raise StateConflictError(msg)
    required, new_status = _MANUAL_TRANSITIONS[action]
    audit_identity = (actor.id, actor.username) if actor is not None else None

    election = await session.get(Election, election_id, populate_existing=True)
    if election is None:
        msg = "Election not found."
        raise NotFoundError(msg)

    observed = election.status
    name = election.name
    if observed != required.value:
        msg = f"Cannot {action} an election that is {observed}."
        raise StateConflictError(msg)
    if action == "start" and now >= ensure_utc(election.end_at):
        msg = "Cannot start an election that has already ended."
        raise StateConflictError(msg)

    try:
        applied = await _apply_transition(session, election_id, observed, new_status, now)
        if not applied:
            await session.rollback()
            msg = "Election status changed concurrently; reload and try again."
            raise StateConflictError(msg)
        await session.commit()
    except OperationalError as e:
        await session.rollback()
        logger.exception("Timed out changing status of election {}", election_id)
        msg = "Election store is unavailable; try again shortly."
        raise StoreUnavailableError(msg) from e

    change = StatusChange(id=election_id, name=name, previous_status=observed, status=new_status.value)
    logger.info("Election {} {}: {} -> {}", election_id, action, observed, new_status.value)

    if audit_identity is not None:
        await log_access(
            session,
            user_id=audit_identity[0],
            username=audit_identity[1],
            action="status_change",
            resource_type="election",
            resource_ids=[str(election_id)],
            request_metadata={"action": action, "from": observed, "to": new_status.value},
        )
    return change


async def status_refresh_loop(interval: int) -> None:
    """Background asyncio loop that reconciles election statuses.

    Args:
        interval: Seconds between reconciliation sweeps.
    """
    from ballot_api.core.database import get_session_factory

    logger.info("Election status refresh loop started (interval={}s)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            factory = get_session_factory()
            async with factory() as session:
                await reconcile_election_statuses(session)
        except asyncio.CancelledError:
            logger.info("Election status refresh loop cancelled")
            break
        except Exception:
            logger.exception("Election status refresh loop error")
