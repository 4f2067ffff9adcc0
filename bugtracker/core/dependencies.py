"""
FastAPI dependency injection functions.
Provides get_db, get_current_user, require_admin and the notification dispatcher.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bugtracker.core.exceptions import (
    ForbiddenException,
    InvalidTokenException,
    UnauthorizedException,
)
from bugtracker.core.security import decode_access_token
from bugtracker.crud.user import crud_user
from bugtracker.db.session import get_db, get_session_factory
from bugtracker.models.user import User
from bugtracker.services.notification_service import NotificationDispatcher

# Re-export get_db so routes can import from one place
__all__ = [
    "get_db",
    "get_current_user",
    "require_admin",
    "get_notification_dispatcher",
    "DBSession",
    "CurrentUser",
    "AdminUser",
    "Dispatcher",
]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> User:
    """
    Extract and validate the JWT access token from the Authorization header.
    Returns the authenticated User model.
    """
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")

    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenException("Malformed token: missing subject")

    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        raise InvalidTokenException("Malformed token: invalid subject format")

    user = await crud_user.get(db, user_id)
    if user is None:
        raise UnauthorizedException("User not found")
    if not user.is_active:
        raise UnauthorizedException("User account is deactivated")

    return user


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Platform administrators only."""
    if current_user.role != "admin":
        raise ForbiddenException("Admin privileges required")
    return current_user


def get_notification_dispatcher(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
