from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Union

class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    # Database Configuration - must be set via environment variable
    DATABASE_URL: str = ""

    # Identity provider settings. HS256 tokens are checked against
    # AUTH_JWT_SECRET, asymmetric tokens against the keys at AUTH_JWKS_URL.
    AUTH_JWT_SECRET: str = ""
    AUTH_JWKS_URL: str = ""
    AUTH_ISSUER: str = ""
    AUTH_AUDIENCE: str = "authenticated"
    JWT_CLOCK_SKEW_TOLERANCE_SECONDS: int = 5

    # CORS Configuration - must be set via environment variable
    ALLOWED_ORIGINS: Union[List[str], str] = []
    FRONTEND_URL: str = "http://localhost:5173"

    # Text generation provider
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    TONE_ANALYSIS_TIMEOUT_SECONDS: float = 15.0
    SCRIPT_GENERATION_TIMEOUT_SECONDS: float = 15.0

    # Speech synthesis provider
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_BASE_URL: str = "https://api.elevenlabs.io"
    ELEVENLABS_MODEL_ID: str = "eleven_monolingual_v1"
    VOICE_SYNTHESIS_TIMEOUT_SECONDS: float = 30.0

    # Stripe Configuration
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_ID_PREMIUM: str = ""  # Price ID for premium subscription

    # Account exempt from every quota check (exact email match)
    DEMO_USER_EMAIL: str = "demo@elucidare.app"

    # Rate Limiting Configuration
    RATE_LIMIT_ENABLED: bool = True

    # Default rate limits (requests per minute)
    DEFAULT_RATE_LIMIT: str = "100/minute"

    # Metered actions call paid providers, keep them tighter
    ACTION_RATE_LIMIT: str = "30/minute"
    WEBHOOK_RATE_LIMIT: str = "10/minute"
    HISTORY_RATE_LIMIT: str = "60/minute"

    # Request size limits (in bytes)
    MAX_REQUEST_SIZE: int = 64 * 1024  # 64KB, action payloads are short text

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_AUDIT_EVENTS: bool = True
    AUDIT_LOG_DIR: str = ""  # empty keeps audit events on the root handlers

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra environment variables
    )

settings = Settings()
