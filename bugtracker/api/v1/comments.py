"""
Comment routes.
/tickets/{ticket_id}/comments for listing and posting,
/comments/{comment_id} for editing and deleting.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Query, status

from bugtracker.core.dependencies import CurrentUser, DBSession, Dispatcher
from bugtracker.schemas.comment import CommentCreate, CommentRead, CommentUpdate
from bugtracker.schemas.pagination import PaginatedResponse
from bugtracker.services.comment_service import comment_service
from bugtracker.services.notification_service import TicketRef

router = APIRouter(tags=["Comments"])


@router.get(
    "/tickets/{ticket_id}/comments",
    response_model=PaginatedResponse[CommentRead],
    summary="List comments on a ticket",
)
async def list_comments(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=50, ge=1, le=200),
) -> PaginatedResponse[CommentRead]:
    comments, total = await comment_service.list_comments(
        db, ticket_id=ticket_id, current_user=current_user, page=page, size=size
    )
    return PaginatedResponse(
        items=[CommentRead.model_validate(c) for c in comments],
        total=total,
        page=page,
        size=size,
    )


@router.post(
    "/tickets/{ticket_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a ticket",
)
async def create_comment(
    ticket_id: uuid.UUID,
    comment_in: CommentCreate,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: Dispatcher,
    background_tasks: BackgroundTasks,
) -> CommentRead:
    comment, ticket, project = await comment_service.create_comment(
        db, ticket_id=ticket_id, comment_in=comment_in, current_user=current_user
    )
    response = CommentRead.model_validate(comment)
    ref = TicketRef.from_ticket(ticket)
    member_ids = project.member_ids
    await db.commit()

    background_tasks.add_task(
        dispatcher.ticket_commented, ref, response.text, current_user.id, member_ids
    )
    return response


@router.put(
    "/comments/{comment_id}",
    response_model=CommentRead,
    summary="Edit a comment",
)
async def update_comment(
    comment_id: uuid.UUID,
    comment_in: CommentUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> CommentRead:
    comment = await comment_service.update_comment(
        db, comment_id=comment_id, comment_in=comment_in, current_user=current_user
    )
    return CommentRead.model_validate(comment)


@router.delete(
    "/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a comment and its direct replies",
)
async def delete_comment(
    comment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await comment_service.delete_comment(db, comment_id=comment_id, current_user=current_user)
