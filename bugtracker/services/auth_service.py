"""
Authentication service.
Handles registration, login, token refresh, and logout.
Business logic lives here; routes only call these methods.
"""
from __future__ import annotations

import logging
import uuid

from jose import JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import (
    ConflictException,
    InvalidTokenException,
    UnauthorizedException,
)
from bugtracker.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    hash_token,
    normalize_email,
    verify_password,
)
from bugtracker.crud.user import crud_user
from bugtracker.models.user import User
from bugtracker.schemas.user import Token, UserCreate

logger = logging.getLogger(__name__)


class AuthService:

    async def sign_up(
        self, db: AsyncSession, *, user_in: UserCreate
    ) -> User:
        """
        Create an account with the default preferences.
        Emails are unique case-insensitively; a concurrent duplicate that
        slips past the pre-check is caught on the unique index.
        """
        email = normalize_email(user_in.email)
        if await crud_user.email_taken(db, email):
            raise ConflictException("A user with this email already exists")

        try:
            async with db.begin_nested():
                user = await crud_user.create_user(
                    db,
                    name=user_in.name,
                    email=email,
                    hashed_password=hash_password(user_in.password),
                )
        except IntegrityError:
            raise ConflictException("A user with this email already exists")

        logger.info("User registered: user_id=%s", user.id)
        return user

    async def sign_in(
        self, db: AsyncSession, *, email: str, password: str
    ) -> Token:
        """
        Check the password and hand out a fresh token pair. Only the refresh
        token's hash is stored, and a new sign-in replaces it.
        """
        user = await crud_user.get_by_email(db, normalize_email(email))
        if user is None or not verify_password(password, user.hashed_password):
            raise UnauthorizedException("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedException("User account is deactivated")

        return await self._issue_tokens(db, user=user)

    async def rotate_tokens(
        self, db: AsyncSession, *, refresh_token: str
    ) -> Token:
        """
        Exchange a refresh token for a new pair. The presented token must be
        the one last issued to the user, so each refresh token works once.
        """
        try:
            payload = decode_refresh_token(refresh_token)
            user_id = uuid.UUID(payload.get("sub") or "")
        except (JWTError, ValueError):
            raise InvalidTokenException("Invalid or expired refresh token")

        user = await crud_user.get(db, user_id)
        if user is None or not user.is_active:
            raise UnauthorizedException("User not found or inactive")

        if user.refresh_token_hash != hash_token(refresh_token):
            raise InvalidTokenException("Refresh token has been revoked")

        return await self._issue_tokens(db, user=user)

    async def sign_out(self, db: AsyncSession, *, user: User) -> None:
        """Forget the refresh token; the access token lives out its short lifetime."""
        await crud_user.set_refresh_token_hash(db, user=user, token_hash=None)

    async def _issue_tokens(self, db: AsyncSession, *, user: User) -> Token:
        access_token = create_access_token(user.id, user.role)
        refresh_token = create_refresh_token(user.id)
        await crud_user.set_refresh_token_hash(
            db, user=user, token_hash=hash_token(refresh_token)
        )
        return Token(access_token=access_token, refresh_token=refresh_token)


auth_service = AuthService()
