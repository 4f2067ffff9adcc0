"""
Notification dispatcher.

Audience derivation is pure: the build_* functions turn an event into a list
of NotificationDraft, one per recipient, with the actor always left out.
NotificationDispatcher persists drafts through its own session, each in its
own savepoint, so one bad row never stops the rest of the batch. Routes run
it as a background task once their transaction has been committed.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from bugtracker.models.notification import Notification
from bugtracker.models.project import Project
from bugtracker.models.ticket import Ticket

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LENGTH = 50


# ── Event payloads ────────────────────────────────────────────────────────────
# Plain snapshots, so nothing depends on ORM state after the request session
# has closed.

@dataclass(frozen=True)
class TicketRef:
    id: uuid.UUID
    project_id: uuid.UUID
    ticket_key: str
    title: str

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketRef":
        return cls(
            id=ticket.id,
            project_id=ticket.project_id,
            ticket_key=ticket.ticket_key,
            title=ticket.title,
        )


@dataclass(frozen=True)
class ProjectRef:
    id: uuid.UUID
    title: str

    @classmethod
    def from_project(cls, project: Project) -> "ProjectRef":
        return cls(id=project.id, title=project.title)


@dataclass(frozen=True)
class NotificationDraft:
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    link: str
    action_by_id: uuid.UUID
    ticket_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None

    def to_model(self) -> Notification:
        return Notification(
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            link=self.link,
            action_by_id=self.action_by_id,
            ticket_id=self.ticket_id,
            project_id=self.project_id,
        )


# ── Audience derivation ───────────────────────────────────────────────────────

def comment_preview(text: str) -> str:
    if len(text) > COMMENT_PREVIEW_LENGTH:
        return text[:COMMENT_PREVIEW_LENGTH] + "..."
    return text


def ticket_link(ticket: TicketRef) -> str:
    return f"/projects/{ticket.project_id}/tickets/{ticket.id}"


def project_link(project: ProjectRef) -> str:
    return f"/projects/{project.id}"


def _audience(member_ids: Iterable[uuid.UUID], actor_id: uuid.UUID) -> list[uuid.UUID]:
    seen: list[uuid.UUID] = []
    for member_id in member_ids:
        if member_id != actor_id and member_id not in seen:
            seen.append(member_id)
    return seen


def _ticket_draft(
    ticket: TicketRef, user_id: uuid.UUID, actor_id: uuid.UUID, **fields: Any
) -> NotificationDraft:
    return NotificationDraft(
        user_id=user_id,
        link=ticket_link(ticket),
        action_by_id=actor_id,
        ticket_id=ticket.id,
        project_id=ticket.project_id,
        **fields,
    )


def build_ticket_commented(
    ticket: TicketRef,
    comment_text: str,
    author_id: uuid.UUID,
    member_ids: Iterable[uuid.UUID],
) -> list[NotificationDraft]:
    message = f"New comment on {ticket.ticket_key}: {comment_preview(comment_text)}"
    return [
        _ticket_draft(
            ticket, user_id, author_id,
            type="ticket_commented", title="New comment", message=message,
        )
        for user_id in _audience(member_ids, author_id)
    ]


def build_ticket_assigned(
    ticket: TicketRef, assignee_id: uuid.UUID, assigned_by: uuid.UUID
) -> list[NotificationDraft]:
    if assignee_id == assigned_by:
        return []
    return [
        _ticket_draft(
            ticket, assignee_id, assigned_by,
            type="ticket_assigned",
            title="New ticket assigned",
            message=f"You've been assigned to {ticket.ticket_key}: {ticket.title}",
        )
    ]


def build_ticket_updated(
    ticket: TicketRef, updated_by: uuid.UUID, member_ids: Iterable[uuid.UUID]
) -> list[NotificationDraft]:
    message = f"{ticket.ticket_key} was updated: {ticket.title}"
    return [
        _ticket_draft(
            ticket, user_id, updated_by,
            type="ticket_updated", title="Ticket updated", message=message,
        )
        for user_id in _audience(member_ids, updated_by)
    ]


def build_project_member_added(
    project: ProjectRef, new_member_id: uuid.UUID, added_by: uuid.UUID
) -> list[NotificationDraft]:
    if new_member_id == added_by:
        return []
    return [
        NotificationDraft(
            user_id=new_member_id,
            type="project_added",
            title="Added to project",
            message=f"You've been added to {project.title}",
            link=project_link(project),
            action_by_id=added_by,
            project_id=project.id,
        )
    ]


def build_project_role_changed(
    project: ProjectRef, member_id: uuid.UUID, new_role: str, changed_by: uuid.UUID
) -> list[NotificationDraft]:
    if member_id == changed_by:
        return []
    return [
        NotificationDraft(
            user_id=member_id,
            type="project_role_changed",
            title="Role updated",
            message=f"Your role in {project.title} was changed to {new_role}",
            link=project_link(project),
            action_by_id=changed_by,
            project_id=project.id,
        )
    ]


# ── Delivery ──────────────────────────────────────────────────────────────────

class NotificationDispatcher:
    """
    One method per event. session_factory is called with no arguments and
    must return an async context manager yielding an AsyncSession.
    """

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self._session_factory = session_factory

    async def deliver(self, drafts: list[NotificationDraft]) -> int:
        """Persist drafts independently. Returns how many were written."""
        if not drafts:
            return 0

        delivered = 0
        try:
            async with self._session_factory() as session:
                for draft in drafts:
                    try:
                        async with session.begin_nested():
                            session.add(draft.to_model())
                            await session.flush()
                    except SQLAlchemyError:
                        logger.exception(
                            "Failed to create notification: user_id=%s type=%s",
                            draft.user_id,
                            draft.type,
                        )
                        continue
                    delivered += 1
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Notification batch lost: %d drafts", len(drafts))
            return 0

        logger.debug("Delivered %d/%d notifications", delivered, len(drafts))
        return delivered

    async def ticket_commented(
        self,
        ticket: TicketRef,
        comment_text: str,
        author_id: uuid.UUID,
        member_ids: list[uuid.UUID],
    ) -> int:
        return await self.deliver(
            build_ticket_commented(ticket, comment_text, author_id, member_ids)
        )

    async def ticket_assigned(
        self, ticket: TicketRef, assignee_id: uuid.UUID, assigned_by: uuid.UUID
    ) -> int:
        return await self.deliver(build_ticket_assigned(ticket, assignee_id, assigned_by))

    async def ticket_updated(
        self, ticket: TicketRef, updated_by: uuid.UUID, member_ids: list[uuid.UUID]
    ) -> int:
        return await self.deliver(build_ticket_updated(ticket, updated_by, member_ids))

    async def project_member_added(
        self, project: ProjectRef, new_member_id: uuid.UUID, added_by: uuid.UUID
    ) -> int:
        return await self.deliver(
            build_project_member_added(project, new_member_id, added_by)
        )

    async def project_role_changed(
        self,
        project: ProjectRef,
        member_id: uuid.UUID,
        new_role: str,
        changed_by: uuid.UUID,
    ) -> int:
        return await self.deliver(
            build_project_role_changed(project, member_id, new_role, changed_by)
        )
