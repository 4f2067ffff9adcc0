"""
Ticket Pydantic schemas.
Includes create/update/read variants, a filter schema for list endpoints and
the per-project statistics payload.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from bugtracker.schemas.user import UserReadPublic

TicketType = Literal["bug", "feature", "improvement", "task"]
TicketPriority = Literal["low", "medium", "high", "critical"]
TicketStatus = Literal["todo", "in-progress", "done"]


def _clean_tags(tags: list[str]) -> list[str]:
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


# ── Create ────────────────────────────────────────────────────────────────────

class TicketCreate(BaseModel):
    """New tickets always start in todo; status is not accepted here."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    type: TicketType = "bug"
    priority: TicketPriority = "medium"
    assignee_id: uuid.UUID | None = None
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


# ── Update ────────────────────────────────────────────────────────────────────

class TicketUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    type: TicketType | None = None
    priority: TicketPriority | None = None
    status: TicketStatus | None = None
    assignee_id: uuid.UUID | None = None
    due_date: datetime | None = None
    tags: list[str] | None = Field(default=None, max_length=20)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v) if v is not None else None


# ── Read ──────────────────────────────────────────────────────────────────────

class TicketRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    ticket_number: int
    ticket_key: str
    title: str
    description: str
    type: str
    priority: str
    status: str
    assignee_id: uuid.UUID | None
    reporter_id: uuid.UUID
    due_date: datetime | None
    tags: list[str]
    created_at: datetime
    updated_at: datetime
    assignee: UserReadPublic | None = None
    reporter: UserReadPublic | None = None

    model_config = {"from_attributes": True}


class TicketStats(BaseModel):
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_type: dict[str, int]
    total: int


# ── Filter ────────────────────────────────────────────────────────────────────

class TicketFilter(BaseModel):
    """Query parameters for filtering a project's ticket list."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    type: TicketType | None = None
    assignee_id: uuid.UUID | None = None
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)
