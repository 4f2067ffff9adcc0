"""
Comment business logic service.
Comments inherit access from the ticket's project.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import BadRequestException, NotFoundException
from bugtracker.crud.comment import crud_comment
from bugtracker.db.base import utcnow
from bugtracker.models.comment import Comment
from bugtracker.models.project import Project
from bugtracker.models.ticket import Ticket
from bugtracker.models.user import User
from bugtracker.schemas.comment import CommentCreate, CommentUpdate
from bugtracker.services import permissions
from bugtracker.services.ticket_service import ticket_service


class CommentService:

    async def list_comments(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        current_user: User,
        page: int,
        size: int,
    ) -> tuple[list[Comment], int]:
        await ticket_service.load_ticket(db, ticket_id=ticket_id, current_user=current_user)
        return await crud_comment.list_by_ticket(
            db, ticket_id=ticket_id, skip=(page - 1) * size, limit=size
        )

    async def create_comment(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        comment_in: CommentCreate,
        current_user: User,
    ) -> tuple[Comment, Ticket, Project]:
        ticket, project = await ticket_service.load_ticket(
            db, ticket_id=ticket_id, current_user=current_user
        )
        permissions.require_contribute(project, current_user.id)

        if comment_in.parent_comment_id is not None:
            parent = await crud_comment.get(db, comment_in.parent_comment_id)
            if parent is None or parent.ticket_id != ticket.id:
                raise BadRequestException("Parent comment does not belong to this ticket")

        comment = await crud_comment.create_comment(
            db,
            text=comment_in.text,
            ticket_id=ticket.id,
            user_id=current_user.id,
            parent_comment_id=comment_in.parent_comment_id,
        )
        return await crud_comment.get_with_user(db, comment.id), ticket, project  # type: ignore[return-value]

    async def update_comment(
        self,
        db: AsyncSession,
        *,
        comment_id: uuid.UUID,
        comment_in: CommentUpdate,
        current_user: User,
    ) -> Comment:
        comment, _ = await self._load_comment(db, comment_id=comment_id, current_user=current_user)
        permissions.require_edit_comment(comment.user_id, current_user.id)

        await crud_comment.update(
            db,
            db_obj=comment,
            obj_in={"text": comment_in.text, "edited": True, "edited_at": utcnow()},
        )
        return await crud_comment.get_with_user(db, comment.id)  # type: ignore[return-value]

    async def delete_comment(
        self,
        db: AsyncSession,
        *,
        comment_id: uuid.UUID,
        current_user: User,
    ) -> int:
        """Deletes the comment and its direct replies. Returns rows deleted."""
        comment, project = await self._load_comment(
            db, comment_id=comment_id, current_user=current_user
        )
        permissions.require_delete_comment(project, comment.user_id, current_user.id)
        return await crud_comment.delete_with_replies(db, comment=comment)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _load_comment(
        self, db: AsyncSession, *, comment_id: uuid.UUID, current_user: User
    ) -> tuple[Comment, Project]:
        comment = await crud_comment.get(db, comment_id)
        if comment is None:
            raise NotFoundException("Comment", str(comment_id))
        _, project = await ticket_service.load_ticket(
            db, ticket_id=comment.ticket_id, current_user=current_user
        )
        return comment, project


comment_service = CommentService()
