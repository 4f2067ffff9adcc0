"""
Shared slowapi limiter.
The app middleware and the decorated routes must use the same instance,
otherwise per-route limits are tracked in a storage nobody else sees.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from bugtracker.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
