"""
Ticket activity routes.
The ticket service writes most entries; clients may post their own, e.g. for
a duplicate marker or an assignment made outside the API.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from bugtracker.core.dependencies import CurrentUser, DBSession
from bugtracker.crud.activity import crud_activity
from bugtracker.schemas.activity import ActivityCreate, ActivityRead
from bugtracker.schemas.pagination import PaginatedResponse
from bugtracker.services import permissions
from bugtracker.services.activity_service import activity_recorder
from bugtracker.services.ticket_service import ticket_service

router = APIRouter(tags=["Activity"])


@router.get(
    "/tickets/{ticket_id}/activity",
    response_model=PaginatedResponse[ActivityRead],
    summary="Activity trail of a ticket, oldest first",
)
async def list_activity(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=50, ge=1, le=200),
) -> PaginatedResponse[ActivityRead]:
    await ticket_service.load_ticket(db, ticket_id=ticket_id, current_user=current_user)
    activities, total = await crud_activity.list_by_ticket(
        db, ticket_id=ticket_id, skip=(page - 1) * size, limit=size
    )
    return PaginatedResponse(
        items=[ActivityRead.model_validate(a) for a in activities],
        total=total,
        page=page,
        size=size,
    )


@router.post(
    "/tickets/{ticket_id}/activity",
    response_model=ActivityRead,
    status_code=status.HTTP_201_CREATED,
    summary="Append an entry to a ticket's activity trail",
)
async def create_activity(
    ticket_id: uuid.UUID,
    activity_in: ActivityCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> ActivityRead:
    ticket, project = await ticket_service.load_ticket(
        db, ticket_id=ticket_id, current_user=current_user
    )
    permissions.require_contribute(project, current_user.id)

    activity = await activity_recorder.record_entry(
        db, ticket_id=ticket.id, user_id=current_user.id, activity_in=activity_in
    )
    return ActivityRead.model_validate(await crud_activity.get_with_user(db, activity.id))
