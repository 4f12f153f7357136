from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable, Iterable

ACTION_PATHS = (
    "/api/tone/analyze",
    "/api/scripts/generate",
    "/api/voice/synthesize",
)

ACTION_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


class ActionCorsMiddleware(BaseHTTPMiddleware):
    """
    Open CORS policy for the metered action endpoints.

    Preflight requests get 204 with no body. Every other response on these
    paths, errors included, carries the same headers.
    """

    def __init__(self, app, paths: Iterable[str] = ACTION_PATHS):
        super().__init__(app)
        self.paths = frozenset(paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path not in self.paths:
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=ACTION_CORS_HEADERS)

        response = await call_next(request)
        for header, value in ACTION_CORS_HEADERS.items():
            response.headers[header] = value
        return response
