"""CLI commands for the election lifecycle.

Provides creation, status reconciliation, manual status actions and
cascade deletion.
"""

import asyncio
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Annotated

import typer

if TYPE_CHECKING:
    from ballot_api.schemas.election import ElectionCreateRequest

election_app = typer.Typer()


@election_app.command("create")
def create(
    name: Annotated[str, typer.Option("--name", help="Election name")],
    start_at: Annotated[str, typer.Option("--start", help="Opening time (ISO 8601, UTC if no offset)")],
    end_at: Annotated[str, typer.Option("--end", help="Closing time (ISO 8601, UTC if no offset)")],
    draft: Annotated[bool, typer.Option("--draft", help="Create as DRAFT so it is never opened automatically")] = False,
) -> None:
    """Create a new election."""
    from pydantic import ValidationError

    from ballot_api.lib.schedule import validate_window
    from ballot_api.schemas.election import ElectionCreateRequest

    try:
        request = ElectionCreateRequest(
            name=name,
            start_at=datetime.fromisoformat(start_at),
            end_at=datetime.fromisoformat(end_at),
            status="DRAFT" if draft else "INACTIVE",
        )
        validate_window(request.start_at, request.end_at)
    except (ValueError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    asyncio.run(_create_impl(request))


async def _create_impl(request: "ElectionCreateRequest") -> None:
    """Async implementation of the create command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.services import election_service

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            election = await election_service.create_election(session, request)
            typer.echo(f"Created election {election.id}: {election.name} [{election.status}]")
    finally:
        await dispose_engine()


@election_app.command("reconcile")
def reconcile(
    now: Annotated[
        str | None,
        typer.Option("--now", help="Evaluate as of this instant (ISO 8601) instead of the current time"),
    ] = None,
) -> None:
    """Bring every election's status in line with its schedule."""
    evaluated_at = datetime.fromisoformat(now) if now else None
    asyncio.run(_reconcile_impl(evaluated_at))


async def _reconcile_impl(now: datetime | None) -> None:
    """Async implementation of the reconcile command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.services.election_status_service import reconcile_election_statuses

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            changes = await reconcile_election_statuses(session, now=now)
            for change in changes:
                typer.echo(f"{change.id} {change.name}: {change.previous_status} -> {change.status}")
            typer.echo(f"Updated {len(changes)} election(s)")
    finally:
        await dispose_engine()


@election_app.command("status")
def status(
    election_id: Annotated[str, typer.Argument(help="Election UUID")],
    action: Annotated[str, typer.Argument(help="publish, pause or start")],
) -> None:
    """Apply a manual status action to an election."""
    asyncio.run(_status_impl(uuid.UUID(election_id), action))


async def _status_impl(election_id: uuid.UUID, action: str) -> None:
    """Async implementation of the status command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.core.errors import BallotApiError
    from ballot_api.services.election_status_service import change_election_status

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            change = await change_election_status(session, election_id, action)  # type: ignore[arg-type]
            typer.echo(f"{change.name}: {change.previous_status} -> {change.status}")
    except BallotApiError as e:
        typer.echo(f"Error ({e.code}): {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@election_app.command("delete")
def delete(
    election_id: Annotated[str, typer.Argument(help="Election UUID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete an election with its positions, parties, candidates and votes."""
    if not yes:
        typer.confirm(f"Delete election {election_id} and all its votes?", abort=True)
    asyncio.run(_delete_impl(uuid.UUID(election_id)))


async def _delete_impl(election_id: uuid.UUID) -> None:
    """Async implementation of the delete command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.core.errors import BallotApiError
    from ballot_api.services.election_service import delete_election

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            affected = await delete_election(session, election_id)
            typer.echo(", ".join(f"{key}: {count}" for key, count in affected.items()))
    except BallotApiError as e:
        typer.echo(f"Error ({e.code}): {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
