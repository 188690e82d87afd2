"""CLI commands for snapshot export and restore."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

backup_app = typer.Typer()


@backup_app.command("export")
def export(
    output: Annotated[Path, typer.Argument(help="Destination JSON file")],
) -> None:
    """Write a full snapshot of the data set to a JSON file."""
    asyncio.run(_export_impl(output))


async def _export_impl(output: Path) -> None:
    """Async implementation of the export command."""
    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.services.backup_service import export_snapshot

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            document = await export_snapshot(session)
    finally:
        await dispose_engine()

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(document, indent=2))
    counts = document["metadata"]["record_counts"]
    typer.echo(f"Wrote snapshot to {output} ({sum(counts.values())} records)")


@backup_app.command("restore")
def restore(
    source: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Snapshot JSON file")],
    admin: Annotated[str, typer.Option("--admin", help="Username of the administrator performing the restore")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Replace all data with a snapshot. Administrator accounts are preserved."""
    try:
        document = json.loads(source.read_text())
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {source} is not valid JSON: {e}", err=True)
        raise typer.Exit(code=1) from e
    if not yes:
        typer.confirm("This replaces every election, voter and vote. Continue?", abort=True)
    asyncio.run(_restore_impl(document, admin))


async def _restore_impl(document: object, admin_username: str) -> None:
    """Async implementation of the restore command."""
    from sqlalchemy import select

    from ballot_api.core.config import get_settings
    from ballot_api.core.database import dispose_engine, get_session_factory, init_engine
    from ballot_api.core.errors import BallotApiError, RestoreFailedError
    from ballot_api.models.user import User, UserRole
    from ballot_api.services.backup_service import restore_snapshot

    settings = get_settings()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            admin = (
                await session.execute(
                    select(User).where(User.username == admin_username, User.role == UserRole.ADMIN.value)
                )
            ).scalar_one_or_none()
            if admin is None:
                typer.echo(f"Error: no administrator named '{admin_username}'", err=True)
                raise typer.Exit(code=1)
            result = await restore_snapshot(session, document, admin)
            for key, count in result.record_counts.items():
                typer.echo(f"{key:<12} {count}")
            typer.echo(result.message)
    except RestoreFailedError as e:
        typer.echo(f"Error ({e.code}): {e.message}\n{e.detail or ''}", err=True)
        raise typer.Exit(code=1) from e
    except BallotApiError as e:
        typer.echo(f"Error ({e.code}): {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
