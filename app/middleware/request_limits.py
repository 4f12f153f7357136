from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from typing import Callable
from app.core.config import settings
from app.core.errors import ErrorType
import logging

logger = logging.getLogger(__name__)

class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests whose declared body is larger than MAX_REQUEST_SIZE.
    """

    def __init__(self, app, max_request_size: int = None):
        super().__init__(app)
        self.max_request_size = max_request_size or settings.MAX_REQUEST_SIZE

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                declared_size = int(content_length)
            except ValueError:
                declared_size = None

            if declared_size is not None and declared_size > self.max_request_size:
                logger.warning(
                    f"Request size limit exceeded: {declared_size} bytes "
                    f"from IP {request.client.host if request.client else 'unknown'}"
                )
                # Middleware exceptions bypass the app's handlers, so answer directly
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "error": f"Request size too large. Maximum allowed: {self.max_request_size} bytes",
                        "error_type": ErrorType.VALIDATION.value,
                        "message": "The request is too large. Send less text and try again.",
                        "retryable": False,
                    },
                )

        return await call_next(request)

def create_request_limit_middleware():
    """
    Create the request size limit middleware.
    """
    logger.info(f"Request size limiting enabled with max size: {settings.MAX_REQUEST_SIZE} bytes")
    return RequestSizeLimitMiddleware
