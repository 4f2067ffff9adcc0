"""
Project and membership Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from bugtracker.schemas.user import UserReadPublic

ProjectStatus = Literal["active", "archived", "on-hold"]
MemberRole = Literal["admin", "developer", "viewer"]


# ── Create ────────────────────────────────────────────────────────────────────

class ProjectCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    key: str = Field(min_length=2, max_length=10)
    status: ProjectStatus = "active"
    color: str = Field(default="#3b82f6", max_length=20)
    icon: str = Field(default="📁", max_length=20)

    @field_validator("key")
    @classmethod
    def normalize_key(cls, v: str) -> str:
        v = v.strip().upper()
        if not v.isalnum():
            raise ValueError("Project key must be alphanumeric")
        return v


# ── Update ────────────────────────────────────────────────────────────────────

class ProjectUpdate(BaseModel):
    """The key is fixed at creation: ticket keys are derived from it."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    status: ProjectStatus | None = None
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=20)


# ── Members ───────────────────────────────────────────────────────────────────

class MemberAdd(BaseModel):
    email: EmailStr
    role: MemberRole = "developer"


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class ProjectMemberRead(BaseModel):
    user_id: uuid.UUID
    role: str
    added_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}


# ── Read ──────────────────────────────────────────────────────────────────────

class ProjectRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    key: str
    owner_id: uuid.UUID
    status: str
    color: str
    icon: str
    created_at: datetime
    updated_at: datetime
    owner: UserReadPublic | None = None
    members: list[ProjectMemberRead] = []

    model_config = {"from_attributes": True}
