"""
Activity Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from bugtracker.schemas.user import UserReadPublic

# "created" is written by ticket creation only.
ActivityAction = Literal[
    "updated",
    "deleted",
    "status_changed",
    "priority_changed",
    "assigned",
    "unassigned",
    "commented",
    "duplicated",
]


class ActivityCreate(BaseModel):
    action: ActivityAction
    field: str | None = Field(default=None, max_length=50)
    old_value: str | None = Field(default=None, max_length=2000)
    new_value: str | None = Field(default=None, max_length=2000)
    description: str = Field(max_length=5000)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Description is required")
        return v


class ActivityRead(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID
    action: str
    field: str | None
    old_value: str | None
    new_value: str | None
    description: str
    created_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}
