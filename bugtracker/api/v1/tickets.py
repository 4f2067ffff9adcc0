"""
Ticket routes.
Listing, creation and stats are nested under /projects/{project_id}/tickets;
single-ticket operations live under /tickets/{ticket_id}.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from bugtracker.core.dependencies import CurrentUser, DBSession, Dispatcher
from bugtracker.schemas.pagination import PaginatedResponse
from bugtracker.schemas.ticket import (
    TicketCreate,
    TicketFilter,
    TicketPriority,
    TicketRead,
    TicketStats,
    TicketStatus,
    TicketType,
    TicketUpdate,
)
from bugtracker.services.notification_service import TicketRef
from bugtracker.services.ticket_service import ticket_service

router = APIRouter(tags=["Tickets"])


def _ticket_filter_params(
    status: TicketStatus | None = Query(default=None),
    priority: TicketPriority | None = Query(default=None),
    type: TicketType | None = Query(default=None),
    assignee_id: uuid.UUID | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> TicketFilter:
    return TicketFilter(
        status=status,
        priority=priority,
        type=type,
        assignee_id=assignee_id,
        page=page,
        size=size,
    )


@router.get(
    "/projects/{project_id}/tickets",
    response_model=PaginatedResponse[TicketRead],
    summary="List a project's tickets",
)
async def list_tickets(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    filters: Annotated[TicketFilter, Depends(_ticket_filter_params)],
) -> PaginatedResponse[TicketRead]:
    tickets, total = await ticket_service.list_tickets(
        db, project_id=project_id, filters=filters, current_user=current_user
    )
    return PaginatedResponse(
        items=[TicketRead.model_validate(t) for t in tickets],
        total=total,
        page=filters.page,
        size=filters.size,
    )


@router.post(
    "/projects/{project_id}/tickets",
    response_model=TicketRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
)
async def create_ticket(
    project_id: uuid.UUID,
    ticket_in: TicketCreate,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: Dispatcher,
    background_tasks: BackgroundTasks,
) -> TicketRead:
    ticket = await ticket_service.create_ticket(
        db, project_id=project_id, ticket_in=ticket_in, current_user=current_user
    )
    response = TicketRead.model_validate(ticket)
    ref = TicketRef.from_ticket(ticket)
    await db.commit()

    if ticket.assignee_id is not None:
        background_tasks.add_task(
            dispatcher.ticket_assigned, ref, ticket.assignee_id, current_user.id
        )
    return response


@router.get(
    "/projects/{project_id}/tickets/stats",
    response_model=TicketStats,
    summary="Ticket counts by status, priority and type",
)
async def ticket_stats(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketStats:
    return await ticket_service.ticket_stats(
        db, project_id=project_id, current_user=current_user
    )


@router.get("/tickets/{ticket_id}", response_model=TicketRead, summary="Get a ticket")
async def get_ticket(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketRead:
    ticket = await ticket_service.get_ticket(db, ticket_id=ticket_id, current_user=current_user)
    return TicketRead.model_validate(ticket)


@router.put("/tickets/{ticket_id}", response_model=TicketRead, summary="Update a ticket")
async def update_ticket(
    ticket_id: uuid.UUID,
    ticket_in: TicketUpdate,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: Dispatcher,
    background_tasks: BackgroundTasks,
) -> TicketRead:
    result = await ticket_service.update_ticket(
        db, ticket_id=ticket_id, ticket_in=ticket_in, current_user=current_user
    )
    response = TicketRead.model_validate(result.ticket)
    ref = TicketRef.from_ticket(result.ticket)
    await db.commit()

    background_tasks.add_task(
        dispatcher.ticket_updated, ref, current_user.id, result.member_ids
    )
    if result.newly_assigned_id is not None:
        background_tasks.add_task(
            dispatcher.ticket_assigned, ref, result.newly_assigned_id, current_user.id
        )
    return response


@router.delete(
    "/tickets/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a ticket",
)
async def delete_ticket(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await ticket_service.delete_ticket(db, ticket_id=ticket_id, current_user=current_user)
