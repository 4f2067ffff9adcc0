"""
Ticket CRUD operations.
Extends CRUDBase with per-project filtering, numbering queries and statistics.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bugtracker.crud.base import CRUDBase
from bugtracker.models.ticket import Ticket
from bugtracker.schemas.ticket import TicketCreate, TicketFilter, TicketUpdate


class CRUDTicket(CRUDBase[Ticket, TicketCreate, TicketUpdate]):

    async def get_with_relations(
        self, db: AsyncSession, ticket_id: uuid.UUID
    ) -> Ticket | None:
        """Fetch a ticket with assignee and reporter eagerly loaded."""
        result = await db.execute(
            select(Ticket)
            .options(selectinload(Ticket.assignee), selectinload(Ticket.reporter))
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def max_ticket_number(self, db: AsyncSession, *, project_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.max(Ticket.ticket_number)).where(Ticket.project_id == project_id)
        )
        return result.scalar_one() or 0

    async def list_for_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        filters: TicketFilter,
    ) -> tuple[list[Ticket], int]:
        """Return (tickets, total) for one project, newest first."""
        query = (
            select(Ticket)
            .options(selectinload(Ticket.assignee), selectinload(Ticket.reporter))
            .where(Ticket.project_id == project_id)
        )
        count_query = (
            select(func.count()).select_from(Ticket).where(Ticket.project_id == project_id)
        )

        if filters.status is not None:
            query = query.where(Ticket.status == filters.status)
            count_query = count_query.where(Ticket.status == filters.status)

        if filters.priority is not None:
            query = query.where(Ticket.priority == filters.priority)
            count_query = count_query.where(Ticket.priority == filters.priority)

        if filters.type is not None:
            query = query.where(Ticket.type == filters.type)
            count_query = count_query.where(Ticket.type == filters.type)

        if filters.assignee_id is not None:
            query = query.where(Ticket.assignee_id == filters.assignee_id)
            count_query = count_query.where(Ticket.assignee_id == filters.assignee_id)

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        skip = (filters.page - 1) * filters.size
        query = (
            query.order_by(Ticket.created_at.desc(), Ticket.ticket_number.desc())
            .offset(skip)
            .limit(filters.size)
        )
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def count_by(
        self, db: AsyncSession, *, project_id: uuid.UUID, column: str
    ) -> dict[str, int]:
        """Return a dict mapping each value of column to its ticket count."""
        attr = getattr(Ticket, column)
        result = await db.execute(
            select(attr, func.count(Ticket.id))
            .where(Ticket.project_id == project_id)
            .group_by(attr)
        )
        return {row[0]: row[1] for row in result.all()}


crud_ticket = CRUDTicket(Ticket)
