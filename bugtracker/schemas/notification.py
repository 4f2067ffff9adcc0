"""
Notification Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from bugtracker.schemas.pagination import PaginatedResponse
from bugtracker.schemas.user import UserReadPublic


class NotificationRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    link: str | None
    ticket_id: uuid.UUID | None
    project_id: uuid.UUID | None
    is_read: bool
    action_by_id: uuid.UUID | None
    created_at: datetime
    action_by: UserReadPublic | None = None

    model_config = {"from_attributes": True}


class NotificationPage(PaginatedResponse[NotificationRead]):
    unread_count: int


class NotificationCount(BaseModel):
    count: int
