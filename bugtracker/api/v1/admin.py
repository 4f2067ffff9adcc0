"""
Platform-admin maintenance routes.
"""
from __future__ import annotations

from fastapi import APIRouter

from bugtracker.core.dependencies import AdminUser, DBSession
from bugtracker.services.maintenance_service import OrphanPurgeResult, purge_orphans

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/maintenance/purge-orphans",
    response_model=OrphanPurgeResult,
    summary="Delete tickets, comments, activity and notifications whose parent is gone",
)
async def purge_orphan_records(
    _admin: AdminUser,
    db: DBSession,
) -> OrphanPurgeResult:
    return await purge_orphans(db)
