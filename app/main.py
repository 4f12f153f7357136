from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from app.core.config import settings
from app.core.database import engine
from app.core.errors import ToneWiseError, AuthenticationError, InputValidationError
from app.core.startup import configure_logging, startup_event
from app.models import Base
from app.api.auth import auth_router
from app.api.tone import tone_router
from app.api.scripts import scripts_router
from app.api.voice import voice_router
from app.api.subscriptions import subscriptions_router
from app.api.library import library_router
from app.middleware.cors import ActionCorsMiddleware
from app.middleware.security import SecurityHeadersMiddleware
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler, create_rate_limit_middleware
from app.middleware.request_limits import create_request_limit_middleware

logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    startup_event()
    yield

app = FastAPI(
    title="ToneWise API",
    description="Tone analysis, response scripts and voice practice with per-tier usage limits",
    version="1.0.0",
    lifespan=lifespan
)

async def tonewise_error_handler(request: Request, exc: ToneWiseError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.error_type.value}): {exc.message}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are validation errors like any other bad input"""
    fields = [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]
    error = InputValidationError(
        f"Invalid request: {', '.join(fields) or 'body'}",
        user_message="The request was not in the expected format. Check your input and try again.",
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_dict())

app.add_exception_handler(ToneWiseError, tonewise_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)

# Configure rate limiting
app.state.limiter = limiter
if settings.RATE_LIMIT_ENABLED:
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add security headers middleware (should be added before CORS)
app.add_middleware(SecurityHeadersMiddleware)

# Add request size limiting middleware
app.add_middleware(create_request_limit_middleware())

# Add rate limiting middleware if enabled
rate_limit_middleware = create_rate_limit_middleware()
if rate_limit_middleware:
    app.add_middleware(rate_limit_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)

# Outermost, so the action endpoints answer preflight before anything else runs
app.add_middleware(ActionCorsMiddleware)

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(tone_router, prefix="/api/tone", tags=["tone"])
app.include_router(scripts_router, prefix="/api/scripts", tags=["scripts"])
app.include_router(voice_router, prefix="/api/voice", tags=["voice"])
app.include_router(subscriptions_router, prefix="/api/subscriptions", tags=["subscriptions"])
app.include_router(library_router, prefix="/api/library", tags=["library"])

@app.get("/")
async def root():
    return {"message": "ToneWise API"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
