"""
Per-project ticket numbering.

Numbers are allocated as max(ticket_number) + 1 under a row lock on the
project. The (project_id, ticket_number) unique constraint is the backstop:
an insert that still collides is rolled back to its savepoint and retried
with a fresh number, a bounded number of times.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.config import settings
from bugtracker.core.exceptions import ConflictException
from bugtracker.crud.ticket import crud_ticket
from bugtracker.models.project import Project
from bugtracker.models.ticket import Ticket

logger = logging.getLogger(__name__)


def ticket_key(project_key: str, number: int) -> str:
    return f"{project_key}-{number}"


async def next_ticket_number(db: AsyncSession, project_id: uuid.UUID) -> int:
    return await crud_ticket.max_ticket_number(db, project_id=project_id) + 1


async def lock_project(db: AsyncSession, project_id: uuid.UUID) -> None:
    """SELECT ... FOR UPDATE on the project row. SQLite ignores the clause."""
    await db.execute(select(Project.id).where(Project.id == project_id).with_for_update())


async def allocate_ticket(
    db: AsyncSession,
    *,
    project: Project,
    fields: dict[str, Any],
    max_retries: int | None = None,
) -> Ticket:
    """
    Insert a new ticket for project with the next free number.
    fields holds every other column of the ticket. Raises ConflictException
    once max_retries inserts in a row have hit the unique constraint.
    """
    attempts = max_retries or settings.TICKET_NUMBER_MAX_RETRIES
    await lock_project(db, project.id)

    for attempt in range(1, attempts + 1):
        number = await next_ticket_number(db, project.id)
        ticket = Ticket(
            project_id=project.id,
            ticket_number=number,
            ticket_key=ticket_key(project.key, number),
            **fields,
        )
        try:
            async with db.begin_nested():
                db.add(ticket)
                await db.flush()
        except IntegrityError:
            logger.warning(
                "Ticket number collision: project_id=%s number=%s attempt=%s/%s",
                project.id,
                number,
                attempt,
                attempts,
            )
            continue
        return ticket

    raise ConflictException(
        f"Could not allocate a ticket number in project {project.key}, please retry"
    )
