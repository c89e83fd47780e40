# File: coursehub/core/limiter.py

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from coursehub.core.config import settings

# `get_remote_address` keys the counters on the client's IP address.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
)


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom exception handler for rate-limited requests to return a JSON response.
    """
    return JSONResponse(
        status_code=429,
        content={
            "error": f"Too Many Requests: rate limit exceeded ({exc.detail})",
            "code": "RATE_LIMITED",
            "message": "You have made too many requests in a short period. Please try again later.",
        },
    )
