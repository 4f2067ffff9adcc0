"""
User CRUD operations.
Emails reach this layer already normalized (see core.security.normalize_email).
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.crud.base import CRUDBase
from bugtracker.models.user import User
from bugtracker.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def email_taken(
        self, db: AsyncSession, email: str, *, exclude_id: uuid.UUID | None = None
    ) -> bool:
        """True if another account already uses email."""
        query = select(func.count()).select_from(User).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.scalar_one() > 0

    async def create_user(
        self,
        db: AsyncSession,
        *,
        name: str,
        email: str,
        hashed_password: str,
        role: str = "user",
    ) -> User:
        user = User(name=name, email=email, hashed_password=hashed_password, role=role)
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    async def set_refresh_token_hash(
        self, db: AsyncSession, *, user: User, token_hash: str | None
    ) -> None:
        """None revokes whatever refresh token is outstanding."""
        user.refresh_token_hash = token_hash
        await db.flush()


crud_user = CRUDUser(User)
