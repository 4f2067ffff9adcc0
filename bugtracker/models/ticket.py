"""
Ticket ORM model.
Tickets are numbered per project; (project_id, ticket_number) is unique at the
storage level and ticket_key is derived once at creation.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bugtracker.db.base import Base, utcnow

TICKET_TYPES = ("bug", "feature", "improvement", "task")
TICKET_PRIORITIES = ("low", "medium", "high", "critical")
TICKET_STATUSES = ("todo", "in-progress", "done")


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Plain reference: deleting a project leaves its tickets for the orphan purge.
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    ticket_number: Mapped[int] = mapped_column(Integer, nullable=False)
    ticket_key: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    type: Mapped[str] = mapped_column(
        Enum(*TICKET_TYPES, name="ticket_type_enum"),
        nullable=False,
        default="bug",
        server_default="bug",
    )
    priority: Mapped[str] = mapped_column(
        Enum(*TICKET_PRIORITIES, name="ticket_priority_enum"),
        nullable=False,
        default="medium",
        server_default="medium",
    )
    status: Mapped[str] = mapped_column(
        Enum(*TICKET_STATUSES, name="ticket_status_enum"),
        nullable=False,
        default="todo",
        server_default="todo",
    )
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )
    reporter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    assignee: Mapped["User | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        primaryjoin="foreign(Ticket.assignee_id) == User.id",
        viewonly=True,
    )
    reporter: Mapped["User | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        primaryjoin="foreign(Ticket.reporter_id) == User.id",
        viewonly=True,
    )

    __table_args__ = (
        UniqueConstraint("project_id", "ticket_number", name="uq_tickets_project_number"),
        Index("ix_tickets_project_created", "project_id", "created_at"),
        Index("ix_tickets_project_status", "project_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} key={self.ticket_key} status={self.status}>"
