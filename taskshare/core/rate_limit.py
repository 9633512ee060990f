"""
Shared slowapi limiter. Routes decorate with ``limiter.limit(...)``;
the application installs it on ``app.state`` together with SlowAPIMiddleware.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from taskshare.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
