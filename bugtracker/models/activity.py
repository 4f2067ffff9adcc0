"""
Activity ORM model.
Append-only audit trail of ticket mutations, read back oldest first.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bugtracker.db.base import Base, utcnow

ACTIVITY_ACTIONS = (
    "created",
    "updated",
    "deleted",
    "status_changed",
    "priority_changed",
    "assigned",
    "unassigned",
    "commented",
    "duplicated",
)


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    ticket_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    action: Mapped[str] = mapped_column(
        Enum(*ACTIVITY_ACTIONS, name="activity_action_enum"),
        nullable=False,
    )
    field: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_value: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    new_value: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    description: Mapped[str] = mapped_column(String(5000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user: Mapped["User | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        primaryjoin="foreign(Activity.user_id) == User.id",
        viewonly=True,
    )

    __table_args__ = (Index("ix_activities_ticket_created", "ticket_id", "created_at"),)

    def __repr__(self) -> str:
        return (
            f"<Activity id={self.id} ticket_id={self.ticket_id} "
            f"action={self.action!r} field={self.field!r}>"
        )
