"""Backup API endpoints.

GET /backup — export a full snapshot
POST /backup/restore — replace all data with a snapshot
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.dependencies import get_async_session, require_role
from ballot_api.models.user import User
from ballot_api.schemas.backup import RestoreResponse
from ballot_api.schemas.common import ErrorResponse
from ballot_api.services import backup_service

backups_router = APIRouter(prefix="/backup", tags=["backup"])


@backups_router.get("", response_model=dict)
async def export_backup(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(require_role("admin"))],
) -> dict[str, Any]:
    """Export every election, voter, vote and reference record. Admin-only."""
    return await backup_service.export_snapshot(session, actor=current_user)


@backups_router.post(
    "/restore",
    response_model=RestoreResponse,
    responses={
        400: {"model": ErrorResponse, "description": "invalid-snapshot"},
        500: {"model": ErrorResponse, "description": "restore-failed"},
        503: {"model": ErrorResponse, "description": "store-unavailable"},
    },
)
async def restore_backup(
    document: Annotated[Any, Body(description="Snapshot document produced by GET /backup")],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(require_role("admin"))],
) -> RestoreResponse:
    """Replace all data with a snapshot. Admin-only.

    Administrator accounts are preserved.  On failure nothing changes.
    """
    return await backup_service.restore_snapshot(session, document, current_user)
