"""
Activity CRUD operations.
Entries are only ever inserted and read; there is no update path.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bugtracker.crud.base import CRUDBase
from bugtracker.models.activity import Activity
from bugtracker.schemas.activity import ActivityRead


class CRUDActivity(CRUDBase[Activity, ActivityRead, ActivityRead]):

    async def list_by_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[Activity], int]:
        count_result = await db.execute(
            select(func.count()).select_from(Activity).where(Activity.ticket_id == ticket_id)
        )
        total = count_result.scalar_one()

        result = await db.execute(
            select(Activity)
            .options(selectinload(Activity.user))
            .where(Activity.ticket_id == ticket_id)
            .order_by(Activity.created_at.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_with_user(
        self, db: AsyncSession, activity_id: uuid.UUID
    ) -> Activity | None:
        result = await db.execute(
            select(Activity)
            .options(selectinload(Activity.user))
            .where(Activity.id == activity_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


crud_activity = CRUDActivity(Activity)
