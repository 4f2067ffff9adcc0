"""
Project authorization policy.

Every decision is a pure function of a project snapshot (its owner_id and
membership rows) and the acting user's id. Nothing here touches the database;
callers load the project with its members first and raise NotFoundException
for missing resources before asking for a decision.

The require_* helpers turn a denied decision into ForbiddenException.
"""
from __future__ import annotations

import uuid
from typing import Protocol, Sequence

from bugtracker.core.exceptions import BadRequestException, ForbiddenException


class MemberLike(Protocol):
    user_id: uuid.UUID
    role: str


class ProjectLike(Protocol):
    owner_id: uuid.UUID

    @property
    def members(self) -> Sequence[MemberLike]: ...


# ── Membership queries ────────────────────────────────────────────────────────

def role_of(project: ProjectLike, user_id: uuid.UUID) -> str | None:
    for member in project.members:
        if member.user_id == user_id:
            return member.role
    return None


def is_member(project: ProjectLike, user_id: uuid.UUID) -> bool:
    return role_of(project, user_id) is not None


def is_admin_or_owner(project: ProjectLike, user_id: uuid.UUID) -> bool:
    return role_of(project, user_id) == "admin" or project.owner_id == user_id


# ── Policies ──────────────────────────────────────────────────────────────────

def can_view(project: ProjectLike, user_id: uuid.UUID) -> bool:
    """Projects, tickets, comments, activity and stats."""
    return is_member(project, user_id)


def can_contribute(project: ProjectLike, user_id: uuid.UUID) -> bool:
    """
    Create tickets and comments, update tickets.
    Any role qualifies, viewers included.
    """
    return is_member(project, user_id)


def can_manage_project(project: ProjectLike, user_id: uuid.UUID) -> bool:
    """Update or delete the project and manage its members."""
    return is_admin_or_owner(project, user_id)


def can_delete_ticket(project: ProjectLike, reporter_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return reporter_id == user_id or is_admin_or_owner(project, user_id)


def can_delete_comment(project: ProjectLike, author_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return author_id == user_id or is_admin_or_owner(project, user_id)


def can_edit_comment(author_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return author_id == user_id


# ── Enforcement ───────────────────────────────────────────────────────────────

def require_view(project: ProjectLike, user_id: uuid.UUID) -> None:
    if not can_view(project, user_id):
        raise ForbiddenException("You are not a member of this project")


def require_contribute(project: ProjectLike, user_id: uuid.UUID) -> None:
    if not can_contribute(project, user_id):
        raise ForbiddenException("You are not a member of this project")


def require_manage_project(project: ProjectLike, user_id: uuid.UUID) -> None:
    if not can_manage_project(project, user_id):
        raise ForbiddenException("Only the project owner or an admin can do this")


def require_delete_ticket(
    project: ProjectLike, reporter_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    if not can_delete_ticket(project, reporter_id, user_id):
        raise ForbiddenException(
            "Only the reporter, the project owner or an admin can delete this ticket"
        )


def require_delete_comment(
    project: ProjectLike, author_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    if not can_delete_comment(project, author_id, user_id):
        raise ForbiddenException(
            "Only the author, the project owner or an admin can delete this comment"
        )


def require_edit_comment(author_id: uuid.UUID, user_id: uuid.UUID) -> None:
    if not can_edit_comment(author_id, user_id):
        raise ForbiddenException("You can only edit your own comments")


def require_not_owner(project: ProjectLike, member_id: uuid.UUID, action: str) -> None:
    """The owner's admin membership is fixed, whoever asks."""
    if member_id == project.owner_id:
        raise BadRequestException(f"Cannot {action} the project owner")
