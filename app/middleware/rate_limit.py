from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from app.core.config import settings
from app.core.errors import ErrorType
import logging

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60

def get_rate_limit_key(request: Request) -> str:
    """
    Requests are limited per client IP. Per-user quotas for metered
    actions are enforced separately by the entitlement check.
    """
    return get_remote_address(request)

# In-memory storage; each worker process keeps its own counts
limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.DEFAULT_RATE_LIMIT] if settings.RATE_LIMIT_ENABLED else [],
    enabled=settings.RATE_LIMIT_ENABLED,
)

def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Render request flooding in the same body shape as other API errors.
    This is not the per-user quota; that is reported by the action itself.
    """
    retry_after = getattr(exc, 'retry_after', None) or DEFAULT_RETRY_AFTER
    logger.warning(
        f"Request rate limit exceeded for IP: {get_remote_address(request)}, "
        f"Path: {request.url.path}, "
        f"Method: {request.method}"
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Request rate limit exceeded",
            "error_type": ErrorType.RATE_LIMIT.value,
            "message": f"Too many requests were sent in a short time. Wait {retry_after} seconds and try again.",
            "retryable": True,
        },
        headers={"Retry-After": str(retry_after)}
    )

def create_rate_limit_middleware():
    """
    Return the SlowAPI middleware class, or None when rate limiting is
    disabled in settings.
    """
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting is disabled in settings")
        return None

    logger.info("Rate limiting middleware enabled with in-memory storage")
    return SlowAPIMiddleware
