"""
Comment Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from bugtracker.models.comment import COMMENT_MAX_LENGTH
from bugtracker.schemas.user import UserReadPublic


class CommentCreate(BaseModel):
    text: str = Field(max_length=COMMENT_MAX_LENGTH)
    parent_comment_id: uuid.UUID | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text is required")
        return v


class CommentUpdate(BaseModel):
    text: str = Field(max_length=COMMENT_MAX_LENGTH)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text is required")
        return v


class CommentRead(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID
    text: str
    parent_comment_id: uuid.UUID | None
    edited: bool
    edited_at: datetime | None
    created_at: datetime
    updated_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}
