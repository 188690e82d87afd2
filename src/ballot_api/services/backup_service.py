"""Backup service: full snapshot export and transactional restore.

Export reads every entity kind of the snapshot graph.  Restore validates
the whole document first, then replaces the data set inside a single
transaction: rows are deleted child-first and inserted parent-first so no
foreign key is ever left dangling.  Administrator accounts are never
deleted or replaced by a restore.
"""

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import get_settings
from ballot_api.core.database import apply_local_timeouts
from ballot_api.core.errors import RestoreFailedError, SnapshotValidationError, StoreUnavailableError
from ballot_api.lib.schedule import validate_window
from ballot_api.lib.snapshot import EntityKind, decode_row, deletion_order, encode_row, insertion_order
from ballot_api.models.user import User, UserRole
from ballot_api.schemas.backup import SNAPSHOT_FORMAT_VERSION, RestoreResponse, SnapshotMetadata
from ballot_api.services.audit_service import log_access

REQUIRED_KEYS = ("metadata", "users", "elections")


async def export_snapshot(session: AsyncSession, *, actor: User | None = None) -> dict[str, Any]:
    """Read the whole data set into a snapshot document.

    Args:
        session: Async database session.
        actor: Administrator requesting the export, recorded in the audit
            log when given.

    Returns:
        JSON-ready dict with one list per entity kind and a ``metadata``
        block.
    """
    document: dict[str, Any] = {}
    record_counts: dict[str, int] = {}
    for kind in insertion_order():
        table = kind.model.__table__
        result = await session.execute(select(table).order_by(table.c.id))
        rows = [encode_row(kind, row._mapping) for row in result]
        document[kind.key] = rows
        record_counts[kind.key] = len(rows)

    metadata = SnapshotMetadata(
        format_version=SNAPSHOT_FORMAT_VERSION,
        timestamp=datetime.now(UTC),
        record_counts=record_counts,
    )
    document["metadata"] = metadata.model_dump(mode="json")
    logger.info("Exported snapshot: {}", record_counts)

    if actor is not None:
        await log_access(
            session,
            user_id=actor.id,
            username=actor.username,
            action="export",
            resource_type="snapshot",
            request_metadata={"record_counts": record_counts},
        )
    return document


def _parse_metadata(raw: Any) -> SnapshotMetadata:
    try:
        metadata = SnapshotMetadata.model_validate(raw)
    except ValidationError as e:
        msg = f"Snapshot metadata is invalid: {e.errors()[0]['msg']}"
        raise SnapshotValidationError(msg) from e

    major = metadata.format_version.split(".", 1)[0]
    expected = SNAPSHOT_FORMAT_VERSION.split(".", 1)[0]
    if major != expected:
        msg = f"Unsupported snapshot format version {metadata.format_version} (expected {expected}.x)."
        raise SnapshotValidationError(msg)
    return metadata


def _decode_kind(kind: EntityKind, collection: Any, now: datetime) -> list[dict[str, Any]]:
    if collection is None:
        return []
    if not isinstance(collection, list):
        msg = f"'{kind.key}' must be a list."
        raise SnapshotValidationError(msg)
    return [decode_row(kind, item, index, now=now) for index, item in enumerate(collection)]


def parse_snapshot(document: Any, *, now: datetime | None = None) -> dict[str, list[dict[str, Any]]]:
    """Validate a snapshot document and decode its rows.

    Nothing is read from or written to the store.

    Args:
        document: The uploaded snapshot.
        now: Fallback for missing timestamps.

    Returns:
        Decoded rows per entity kind key, administrator accounts removed.

    Raises:
        SnapshotValidationError: If any part of the document is malformed.
    """
    if not isinstance(document, Mapping):
        msg = "Snapshot must be a JSON object."
        raise SnapshotValidationError(msg)
    missing = [key for key in REQUIRED_KEYS if key not in document]
    if missing:
        msg = f"Snapshot is missing required section(s): {', '.join(missing)}."
        raise SnapshotValidationError(msg)

    _parse_metadata(document["metadata"])
    now = now or datetime.now(UTC)

    rows: dict[str, list[dict[str, Any]]] = {}
    for kind in insertion_order():
        rows[kind.key] = _decode_kind(kind, document.get(kind.key), now)

    roles = {role.value for role in UserRole}
    for index, user in enumerate(rows["users"]):
        if user["role"] not in roles:
            msg = f"users[{index}] has an unknown role '{user['role']}'."
            raise SnapshotValidationError(msg)
    rows["users"] = [user for user in rows["users"] if user["role"] != UserRole.ADMIN]

    for index, election in enumerate(rows["elections"]):
        try:
            validate_window(election["start_at"], election["end_at"])
        except ValueError as e:
            msg = f"elections[{index}]: {e}"
            raise SnapshotValidationError(msg) from e
    return rows


def _insert_statement(session: AsyncSession, kind: EntityKind) -> Any:
    """Build an INSERT for ``kind`` that skips rows colliding with any unique key."""
    table = kind.model.__table__
    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    return insert(table).on_conflict_do_nothing()


async def _delete_existing(session: AsyncSession) -> dict[str, int]:
    deleted: dict[str, int] = {}
    for kind in deletion_order():
        stmt = delete(kind.model)
        if kind.model is User:
            stmt = stmt.where(User.role != UserRole.ADMIN.value)
        result = await session.execute(stmt)
        deleted[kind.key] = result.rowcount
    return deleted


async def _reown_orphaned_elections(
    session: AsyncSession,
    elections: list[dict[str, Any]],
    admin_id: uuid.UUID,
) -> None:
    """Point elections whose owner is not in the store at ``admin_id``."""
    present = set((await session.execute(select(User.id))).scalars().all())
    for election in elections:
        if election["created_by_id"] not in present:
            election["created_by_id"] = admin_id


async def _insert_rows(
    session: AsyncSession,
    rows: dict[str, list[dict[str, Any]]],
    batch_size: int,
    admin_id: uuid.UUID,
) -> tuple[dict[str, int], dict[str, int]]:
    inserted: dict[str, int] = {}
    skipped: dict[str, int] = {}
    for kind in insertion_order():
        batch_rows = rows.get(kind.key, [])
        # Accounts are inserted first; skipped ones must not keep elections.
        if kind.key == "elections":
            await _reown_orphaned_elections(session, batch_rows, admin_id)
        count = 0
        for i in range(0, len(batch_rows), batch_size):
            stmt = _insert_statement(session, kind).values(batch_rows[i : i + batch_size])
            result = await session.execute(stmt)
            count += result.rowcount
        inserted[kind.key] = count
        if count < len(batch_rows):
            skipped[kind.key] = len(batch_rows) - count
            logger.warning("Skipped {} duplicate {} row(s) during restore", skipped[kind.key], kind.key)
    return inserted, skipped


async def restore_snapshot(
    session: AsyncSession,
    document: Any,
    acting_admin: User,
    *,
    now: datetime | None = None,
) -> RestoreResponse:
    """Replace the data set with the contents of a snapshot.

    The document is fully validated before anything is touched.  Deletion
    and insertion then run in one transaction; on any failure the previous
    data set is left exactly as it was.

    Args:
        session: Async database session.
        document: The snapshot document (as produced by ``export_snapshot``).
        acting_admin: The administrator performing the restore.  Elections
            whose owner is not present after the restore are re-owned by
            this account.
        now: Fallback for timestamps missing from the document.

    Returns:
        RestoreResponse with the rows inserted, deleted and skipped per kind.

    Raises:
        SnapshotValidationError: If the document is malformed.
        StoreUnavailableError: If a lock or statement timeout was hit.
        RestoreFailedError: If the store rejected the restore.
    """
    rows = parse_snapshot(document, now=now)
    admin_id, admin_username = acting_admin.id, acting_admin.username
    settings = get_settings()

    with logger.contextualize(actor=admin_username):
        try:
            await apply_local_timeouts(
                session,
                statement_timeout_ms=settings.restore_statement_timeout_ms,
                lock_timeout_ms=settings.restore_lock_timeout_ms,
            )
            deleted = await _delete_existing(session)
            inserted, skipped = await _insert_rows(session, rows, settings.restore_batch_size, admin_id)
            await session.commit()
        except OperationalError as e:
            await session.rollback()
            logger.exception("Restore timed out; previous data left intact")
            msg = "The store is busy; the restore was not applied. Try again shortly."
            raise StoreUnavailableError(msg) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception("Restore failed; previous data left intact")
            msg = "Restore failed; the previous data set was left intact."
            raise RestoreFailedError(msg, detail=str(getattr(e, "orig", None) or e)) from e

        logger.info("Restored snapshot: inserted={} deleted={}", inserted, deleted)
    await log_access(
        session,
        user_id=admin_id,
        username=admin_username,
        action="restore",
        resource_type="snapshot",
        request_metadata={"record_counts": inserted, "deleted_counts": deleted, "skipped_counts": skipped},
    )
    return RestoreResponse(
        message="Data restored successfully.",
        record_counts=inserted,
        deleted_counts=deleted,
        skipped_counts=skipped,
    )

