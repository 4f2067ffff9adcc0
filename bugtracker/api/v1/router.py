"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from bugtracker.api.v1 import (
    activity,
    admin,
    auth,
    comments,
    notifications,
    projects,
    tickets,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(tickets.router)
api_router.include_router(comments.router)
api_router.include_router(activity.router)
api_router.include_router(notifications.router)
api_router.include_router(admin.router)
