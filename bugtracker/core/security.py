"""
Security utilities: JWT issuing/verification, password hashing and policy.
Passwords are hashed with bcrypt via passlib. Tokens use python-jose.
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from bugtracker.core.config import settings

# ── Password hashing ──────────────────────────────────────────────────────────
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def validate_password_strength(password: str) -> str:
    """
    Enforce password policy:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one digit
    Returns the password unchanged if valid, raises ValueError otherwise.
    """
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")
    return password


def normalize_email(email: str) -> str:
    """Emails are unique case-insensitively; store them trimmed and lowercased."""
    return email.strip().lower()


# ── JWT helpers ───────────────────────────────────────────────────────────────

def _create_token(
    subject: uuid.UUID,
    token_type: str,
    secret_key: str,
    expire_delta: timedelta,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(subject),
        "type": token_type,
        "iat": now,
        "exp": now + expire_delta,
        "jti": secrets.token_hex(16),
    }
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, secret_key, algorithm=settings.ALGORITHM)


def _decode_token(token: str, secret_key: str, expected_type: str) -> dict[str, Any]:
    payload = jwt.decode(token, secret_key, algorithms=[settings.ALGORITHM])
    if payload.get("type") != expected_type:
        raise JWTError("Invalid token type")
    return payload


def create_access_token(user_id: uuid.UUID, role: str) -> str:
    """Short-lived token carrying the platform role."""
    return _create_token(
        subject=user_id,
        token_type="access",
        secret_key=settings.SECRET_KEY,
        expire_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        extra_claims={"role": role},
    )


def create_refresh_token(user_id: uuid.UUID) -> str:
    return _create_token(
        subject=user_id,
        token_type="refresh",
        secret_key=settings.REFRESH_SECRET_KEY,
        expire_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Raises JWTError on an invalid, expired or mistyped token."""
    return _decode_token(token, settings.SECRET_KEY, "access")


def decode_refresh_token(token: str) -> dict[str, Any]:
    """Raises JWTError on an invalid, expired or mistyped token."""
    return _decode_token(token, settings.REFRESH_SECRET_KEY, "refresh")


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token for safe DB storage."""
    return hashlib.sha256(token.encode()).hexdigest()
