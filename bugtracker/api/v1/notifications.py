"""
Notification routes.
Every route works on the caller's own notifications only.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from bugtracker.core.dependencies import CurrentUser, DBSession
from bugtracker.core.exceptions import ForbiddenException, NotFoundException
from bugtracker.crud.notification import crud_notification
from bugtracker.models.notification import Notification
from bugtracker.models.user import User
from bugtracker.schemas.notification import NotificationCount, NotificationPage, NotificationRead

router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def _get_own_notification(
    db: DBSession, notification_id: uuid.UUID, user: User
) -> Notification:
    notification = await crud_notification.get(db, notification_id)
    if notification is None:
        raise NotFoundException("Notification", str(notification_id))
    if notification.user_id != user.id:
        raise ForbiddenException("This notification belongs to another user")
    return notification


@router.get(
    "/",
    response_model=NotificationPage,
    summary="List my notifications, newest first",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> NotificationPage:
    notifications, total = await crud_notification.list_by_user(
        db,
        user_id=current_user.id,
        skip=(page - 1) * size,
        limit=size,
        unread_only=unread_only,
    )
    return NotificationPage(
        items=[NotificationRead.model_validate(n) for n in notifications],
        total=total,
        page=page,
        size=size,
        unread_count=await crud_notification.count_unread(db, user_id=current_user.id),
    )


@router.put(
    "/read-all",
    response_model=NotificationCount,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    db: DBSession,
) -> NotificationCount:
    count = await crud_notification.mark_all_read(db, user_id=current_user.id)
    return NotificationCount(count=count)


@router.delete(
    "/clear-read",
    response_model=NotificationCount,
    summary="Delete all read notifications",
)
async def clear_read(
    current_user: CurrentUser,
    db: DBSession,
) -> NotificationCount:
    count = await crud_notification.clear_read(db, user_id=current_user.id)
    return NotificationCount(count=count)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> NotificationRead:
    notification = await _get_own_notification(db, notification_id, current_user)
    notification = await crud_notification.mark_as_read(db, notification=notification)
    return NotificationRead.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    notification = await _get_own_notification(db, notification_id, current_user)
    await crud_notification.remove(db, db_obj=notification)
