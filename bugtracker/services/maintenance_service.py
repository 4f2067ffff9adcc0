"""
Orphan cleanup.

Deleting a project leaves its tickets behind, and deleting a ticket leaves its
comments and activity behind. purge_orphans removes those rows explicitly, in
dependency order, so a single run also catches rows orphaned by its own
earlier steps.
"""
from __future__ import annotations

import logging

from pydantic import BaseModel
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.models.activity import Activity
from bugtracker.models.comment import Comment
from bugtracker.models.notification import Notification
from bugtracker.models.project import Project
from bugtracker.models.ticket import Ticket

logger = logging.getLogger(__name__)


class OrphanPurgeResult(BaseModel):
    tickets: int
    comments: int
    activities: int
    notifications: int


async def _delete(db: AsyncSession, statement) -> int:  # type: ignore[no-untyped-def]
    result = await db.execute(statement.execution_options(synchronize_session=False))
    return result.rowcount or 0


async def purge_orphans(db: AsyncSession) -> OrphanPurgeResult:
    project_ids = select(Project.id)
    ticket_ids = select(Ticket.id)

    tickets = await _delete(db, delete(Ticket).where(Ticket.project_id.not_in(project_ids)))
    comments = await _delete(db, delete(Comment).where(Comment.ticket_id.not_in(ticket_ids)))
    activities = await _delete(
        db, delete(Activity).where(Activity.ticket_id.not_in(ticket_ids))
    )
    notifications = await _delete(
        db,
        delete(Notification).where(
            or_(
                and_(
                    Notification.ticket_id.is_not(None),
                    Notification.ticket_id.not_in(ticket_ids),
                ),
                and_(
                    Notification.project_id.is_not(None),
                    Notification.project_id.not_in(project_ids),
                ),
            )
        ),
    )

    result = OrphanPurgeResult(
        tickets=tickets,
        comments=comments,
        activities=activities,
        notifications=notifications,
    )
    logger.info("Orphan purge finished: %s", result.model_dump())
    return result
