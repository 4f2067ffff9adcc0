"""
Ticket business logic service.
Enforces project membership, allocates ticket numbers and records activity.
Notifications are left to the caller, which dispatches them after commit.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import BadRequestException, NotFoundException
from bugtracker.crud.ticket import crud_ticket
from bugtracker.models.project import Project
from bugtracker.models.ticket import Ticket
from bugtracker.models.user import User
from bugtracker.schemas.ticket import TicketCreate, TicketFilter, TicketStats, TicketUpdate
from bugtracker.services import permissions
from bugtracker.services.activity_service import (
    activity_recorder,
    diff_ticket_changes,
    ticket_snapshot,
)
from bugtracker.services.project_service import load_project
from bugtracker.services.ticket_numbering import allocate_ticket

# Columns that may be cleared with an explicit null.
NULLABLE_FIELDS = {"assignee_id", "due_date"}


@dataclass
class TicketUpdateResult:
    ticket: Ticket
    member_ids: list[uuid.UUID]
    newly_assigned_id: uuid.UUID | None


class TicketService:

    async def load_ticket(
        self, db: AsyncSession, *, ticket_id: uuid.UUID, current_user: User
    ) -> tuple[Ticket, Project]:
        """
        Ticket plus its project, checked for view access. A ticket whose
        project is gone is reported as missing.
        """
        ticket = await crud_ticket.get_with_relations(db, ticket_id)
        if ticket is None:
            raise NotFoundException("Ticket", str(ticket_id))
        project = await load_project(db, ticket.project_id)
        permissions.require_view(project, current_user.id)
        return ticket, project

    async def create_ticket(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        ticket_in: TicketCreate,
        current_user: User,
    ) -> Ticket:
        project = await load_project(db, project_id)
        permissions.require_contribute(project, current_user.id)
        self._assert_assignable(project, ticket_in.assignee_id)

        ticket = await allocate_ticket(
            db,
            project=project,
            fields={
                "title": ticket_in.title,
                "description": ticket_in.description,
                "type": ticket_in.type,
                "priority": ticket_in.priority,
                "status": "todo",
                "assignee_id": ticket_in.assignee_id,
                "reporter_id": current_user.id,
                "due_date": ticket_in.due_date,
                "tags": ticket_in.tags,
            },
        )
        await activity_recorder.record_created(db, ticket=ticket, user_id=current_user.id)
        return await crud_ticket.get_with_relations(db, ticket.id)  # type: ignore[return-value]

    async def get_ticket(
        self, db: AsyncSession, *, ticket_id: uuid.UUID, current_user: User
    ) -> Ticket:
        ticket, _ = await self.load_ticket(db, ticket_id=ticket_id, current_user=current_user)
        return ticket

    async def list_tickets(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        filters: TicketFilter,
        current_user: User,
    ) -> tuple[list[Ticket], int]:
        project = await load_project(db, project_id)
        permissions.require_view(project, current_user.id)
        return await crud_ticket.list_for_project(db, project_id=project_id, filters=filters)

    async def update_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        ticket_in: TicketUpdate,
        current_user: User,
    ) -> TicketUpdateResult:
        """
        Any member may change any field. Title, status and priority changes
        are recorded as activity, in that order.
        """
        ticket, project = await self.load_ticket(
            db, ticket_id=ticket_id, current_user=current_user
        )
        permissions.require_contribute(project, current_user.id)

        changes = {
            field: value
            for field, value in ticket_in.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if changes.get("assignee_id") is not None:
            self._assert_assignable(project, changes["assignee_id"])

        snapshot = ticket_snapshot(ticket)
        old_assignee = ticket.assignee_id
        records = diff_ticket_changes(snapshot, changes)

        await crud_ticket.update(db, db_obj=ticket, obj_in=changes)
        await activity_recorder.record_changes(
            db, ticket_id=ticket.id, user_id=current_user.id, records=records
        )

        new_assignee = changes.get("assignee_id")
        return TicketUpdateResult(
            ticket=await crud_ticket.get_with_relations(db, ticket.id),  # type: ignore[arg-type]
            member_ids=project.member_ids,
            newly_assigned_id=new_assignee if new_assignee != old_assignee else None,
        )

    async def delete_ticket(
        self, db: AsyncSession, *, ticket_id: uuid.UUID, current_user: User
    ) -> None:
        """Comments and activity of the ticket stay until the orphan purge."""
        ticket, project = await self.load_ticket(
            db, ticket_id=ticket_id, current_user=current_user
        )
        permissions.require_delete_ticket(project, ticket.reporter_id, current_user.id)
        await crud_ticket.remove(db, db_obj=ticket)

    async def ticket_stats(
        self, db: AsyncSession, *, project_id: uuid.UUID, current_user: User
    ) -> TicketStats:
        project = await load_project(db, project_id)
        permissions.require_view(project, current_user.id)

        by_status = await crud_ticket.count_by(db, project_id=project_id, column="status")
        return TicketStats(
            by_status=by_status,
            by_priority=await crud_ticket.count_by(db, project_id=project_id, column="priority"),
            by_type=await crud_ticket.count_by(db, project_id=project_id, column="type"),
            total=sum(by_status.values()),
        )

    # ── Private helpers ───────────────────────────────────────────────────────

    def _assert_assignable(self, project: Project, assignee_id: uuid.UUID | None) -> None:
        if assignee_id is not None and not permissions.is_member(project, assignee_id):
            raise BadRequestException("Assignee must be a member of the project")


ticket_service = TicketService()
