"""
Account self-service: profile, password, preferences and account deletion.
"""
from __future__ import annotations

import copy
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import BadRequestException, ConflictException
from bugtracker.core.security import hash_password, normalize_email, verify_password
from bugtracker.crud.project import crud_project
from bugtracker.crud.user import crud_user
from bugtracker.models.user import User, default_preferences
from bugtracker.schemas.user import PasswordChange, PreferencesUpdate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:

    async def update_profile(
        self, db: AsyncSession, *, user: User, user_in: UserUpdate
    ) -> User:
        changes = user_in.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise BadRequestException("Name must not be blank")

        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
            if await crud_user.email_taken(db, changes["email"], exclude_id=user.id):
                raise ConflictException("A user with this email already exists")

        try:
            async with db.begin_nested():
                return await crud_user.update(db, db_obj=user, obj_in=changes)
        except IntegrityError:
            raise ConflictException("A user with this email already exists")

    async def change_password(
        self, db: AsyncSession, *, user: User, body: PasswordChange
    ) -> None:
        if body.new_password != body.confirm_password:
            raise BadRequestException("New password and confirmation do not match")
        if not verify_password(body.current_password, user.hashed_password):
            raise BadRequestException("Current password is incorrect")
        if body.current_password == body.new_password:
            raise BadRequestException("New password must differ from current password")

        # Existing refresh tokens die with the old password.
        await crud_user.update(
            db,
            db_obj=user,
            obj_in={
                "hashed_password": hash_password(body.new_password),
                "refresh_token_hash": None,
            },
        )

    async def update_preferences(
        self, db: AsyncSession, *, user: User, prefs_in: PreferencesUpdate
    ) -> User:
        """Merge notification toggles into the stored preferences."""
        preferences = copy.deepcopy(user.preferences or default_preferences())
        if prefs_in.notifications is not None:
            toggles = prefs_in.notifications.model_dump(exclude_none=True)
            preferences.setdefault("notifications", {}).update(toggles)
        if prefs_in.theme is not None:
            preferences["theme"] = prefs_in.theme

        # JSON columns only notice reassignment, not in-place mutation.
        return await crud_user.update(db, db_obj=user, obj_in={"preferences": preferences})

    async def delete_account(self, db: AsyncSession, *, user: User, password: str) -> None:
        """
        Delete the account with its memberships and notifications.
        Owners must delete their projects first.
        """
        if not verify_password(password, user.hashed_password):
            raise BadRequestException("Password is incorrect")

        owned = await crud_project.count_owned_by(db, user_id=user.id)
        if owned:
            raise BadRequestException(
                f"You still own {owned} project(s); delete them before deleting your account"
            )

        await crud_user.remove(db, db_obj=user)
        logger.info("User account deleted: user_id=%s", user.id)


user_service = UserService()
