"""
Shared slowapi rate limiter.

One instance for the whole app so every decorated route shares the same
in-memory counters.  ``app.state.limiter`` must point at it.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

# Keyed by client IP
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded for %s on %s", get_remote_address(request), request.url.path)
    return JSONResponse(
        status_code=RateLimitedError.status_code,
        content={
            "detail": f"{RateLimitedError.default_detail}: {exc.detail}",
            "code": RateLimitedError.code,
            "success": False,
        },
    )
