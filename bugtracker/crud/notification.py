"""
Notification CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bugtracker.crud.base import CRUDBase
from bugtracker.models.notification import Notification
from bugtracker.schemas.notification import NotificationRead


class CRUDNotification(CRUDBase[Notification, NotificationRead, NotificationRead]):

    async def list_by_user(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        query = (
            select(Notification)
            .options(selectinload(Notification.action_by))
            .where(Notification.user_id == user_id)
        )
        count_query = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id)
        )

        if unread_only:
            query = query.where(Notification.is_read.is_(False))
            count_query = count_query.where(Notification.is_read.is_(False))

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        result = await db.execute(
            query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def mark_as_read(self, db: AsyncSession, *, notification: Notification) -> Notification:
        notification.is_read = True
        db.add(notification)
        await db.flush()
        # Reload with the actor eagerly; a lazy load is not possible under asyncio.
        result = await db.execute(
            select(Notification)
            .options(selectinload(Notification.action_by))
            .where(Notification.id == notification.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def mark_all_read(
        self, db: AsyncSession, *, user_id: uuid.UUID
    ) -> int:
        """Mark all unread notifications for a user as read. Returns count updated."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        return result.rowcount  # type: ignore[return-value]

    async def clear_read(self, db: AsyncSession, *, user_id: uuid.UUID) -> int:
        """Delete every read notification of a user. Returns count deleted."""
        result = await db.execute(
            delete(Notification).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(True),
            )
        )
        return result.rowcount  # type: ignore[return-value]

    async def count_unread(self, db: AsyncSession, *, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()


crud_notification = CRUDNotification(Notification)
