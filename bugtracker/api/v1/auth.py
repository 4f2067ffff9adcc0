"""
Account sign-up and the token lifecycle.

Access tokens are short-lived bearer JWTs. Refresh tokens rotate on every use
and are revoked by signing out or changing the password.
"""
from __future__ import annotations

from fastapi import APIRouter, Request, status

from bugtracker.core.config import settings
from bugtracker.core.dependencies import CurrentUser, DBSession
from bugtracker.core.rate_limit import limiter
from bugtracker.schemas.user import LoginRequest, RefreshTokenRequest, Token, UserCreate, UserRead
from bugtracker.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def sign_up(payload: UserCreate, db: DBSession) -> UserRead:
    """The email is stored trimmed and lowercased; 409 if it is already in use."""
    return UserRead.model_validate(await auth_service.sign_up(db, user_in=payload))


@router.post(
    "/login",
    response_model=Token,
    summary="Exchange email and password for a token pair",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def sign_in(request: Request, payload: LoginRequest, db: DBSession) -> Token:
    return await auth_service.sign_in(db, email=payload.email, password=payload.password)


@router.post(
    "/refresh",
    response_model=Token,
    summary="Trade a refresh token for a new token pair",
)
async def rotate_tokens(payload: RefreshTokenRequest, db: DBSession) -> Token:
    """The presented refresh token stops working once this returns."""
    return await auth_service.rotate_tokens(db, refresh_token=payload.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke the caller's refresh token",
)
async def sign_out(current_user: CurrentUser, db: DBSession) -> None:
    await auth_service.sign_out(db, user=current_user)
