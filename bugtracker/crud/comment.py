"""
Comment CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bugtracker.crud.base import CRUDBase
from bugtracker.models.comment import Comment
from bugtracker.schemas.comment import CommentCreate, CommentUpdate


class CRUDComment(CRUDBase[Comment, CommentCreate, CommentUpdate]):

    async def create_comment(
        self,
        db: AsyncSession,
        *,
        text: str,
        ticket_id: uuid.UUID,
        user_id: uuid.UUID,
        parent_comment_id: uuid.UUID | None = None,
    ) -> Comment:
        comment = Comment(
            text=text,
            ticket_id=ticket_id,
            user_id=user_id,
            parent_comment_id=parent_comment_id,
        )
        db.add(comment)
        await db.flush()
        return comment

    async def list_by_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[Comment], int]:
        count_result = await db.execute(
            select(func.count()).select_from(Comment).where(Comment.ticket_id == ticket_id)
        )
        total = count_result.scalar_one()

        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.user))
            .where(Comment.ticket_id == ticket_id)
            .order_by(Comment.created_at.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_with_user(
        self, db: AsyncSession, comment_id: uuid.UUID
    ) -> Comment | None:
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.user))
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete_with_replies(self, db: AsyncSession, *, comment: Comment) -> int:
        """
        Delete a comment and its direct replies. Replies to those replies are
        left in place. Returns the number of rows deleted.
        """
        result = await db.execute(
            delete(Comment).where(
                or_(Comment.id == comment.id, Comment.parent_comment_id == comment.id)
            )
        )
        await db.flush()
        return result.rowcount  # type: ignore[return-value]


crud_comment = CRUDComment(Comment)
