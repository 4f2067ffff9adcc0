"""
Account routes for the authenticated user.
GET/PUT/DELETE /users/me, PUT /users/me/password, PUT /users/me/preferences
"""
from __future__ import annotations

from fastapi import APIRouter, status

from bugtracker.core.dependencies import CurrentUser, DBSession
from bugtracker.schemas.user import (
    AccountDelete,
    PasswordChange,
    PreferencesUpdate,
    UserRead,
    UserUpdate,
)
from bugtracker.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserRead, summary="Get current user profile")
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)


@router.put("/me", response_model=UserRead, summary="Update current user profile")
async def update_me(
    user_in: UserUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> UserRead:
    updated = await user_service.update_profile(db, user=current_user, user_in=user_in)
    return UserRead.model_validate(updated)


@router.put(
    "/me/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change current user password",
)
async def change_password(
    body: PasswordChange,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await user_service.change_password(db, user=current_user, body=body)


@router.put(
    "/me/preferences",
    response_model=UserRead,
    summary="Update notification toggles and theme",
)
async def update_preferences(
    prefs_in: PreferencesUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> UserRead:
    updated = await user_service.update_preferences(db, user=current_user, prefs_in=prefs_in)
    return UserRead.model_validate(updated)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete the current account",
)
async def delete_me(
    body: AccountDelete,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await user_service.delete_account(db, user=current_user, password=body.password)
