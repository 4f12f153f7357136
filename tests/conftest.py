import os

# Settings are read at import time, so the environment is prepared first
TEST_JWT_SECRET = "test-secret-for-hs256-tokens-0123456789abcdef"
TEST_ISSUER = "https://auth.tonewise.test/auth/v1"
DEMO_EMAIL = "demo@elucidare.app"

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_ISSUER"] = TEST_ISSUER
os.environ["AUTH_AUDIENCE"] = "authenticated"
os.environ["DEMO_USER_EMAIL"] = DEMO_EMAIL
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["LOG_AUDIT_EVENTS"] = "true"
os.environ["AUDIT_LOG_DIR"] = ""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.main import app
from app.models.user import User, SubscriptionTier
from app.models.usage import DailyUsage
from app.services.providers import get_text_provider, get_speech_provider
from app.utils.id_utils import generate_id

TONE_PAYLOAD = {
    "tones": {"professional": 60, "friendly": 20, "urgent": 10, "neutral": 10},
    "confidence": 0.85,
    "explanation": "The message asks for a report by Friday. It uses polite, formal words.",
    "suggestions": ["Confirm the deadline.", "Say when you will send the report."],
}

SCRIPTS_PAYLOAD = {
    "responses": {
        "casual": {"content": "Sure, I can do that!", "explanation": "Relaxed and friendly.", "confidence": 0.8},
        "professional": {"content": "I will complete this by Friday.", "explanation": "Formal and clear.", "confidence": 0.9},
        "direct": {"content": "Yes. Friday.", "explanation": "Short and exact.", "confidence": 0.7},
    }
}

AUDIO_BYTES = b"ID3\x03\x00\x00\x00fake-mp3-frames"


class FakeTextProvider:
    """Stands in for the OpenAI-backed provider; records every call"""

    def __init__(self, result: Any = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.result = result
        self.delay = delay
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete_json(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float):
        self.calls.append({"system": system_prompt, "user": user_prompt, "max_tokens": max_tokens})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeSpeechProvider:
    def __init__(self, audio: bytes = AUDIO_BYTES, delay: float = 0.0, error: Optional[Exception] = None):
        self.audio = audio
        self.delay = delay
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def synthesize(self, text: str, voice: str, speed: float) -> bytes:
        self.calls.append({"text": text, "voice": voice, "speed": speed})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.audio


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def text_provider():
    return FakeTextProvider(result=TONE_PAYLOAD)


@pytest.fixture
def speech_provider():
    return FakeSpeechProvider()


@pytest.fixture
def client(session_factory, text_provider, speech_provider):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_provider] = lambda: text_provider
    app.dependency_overrides[get_speech_provider] = lambda: speech_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    def _make_user(email: Optional[str] = None, tier: SubscriptionTier = SubscriptionTier.FREE) -> User:
        auth_user_id = generate_id()
        user = User(
            auth_user_id=auth_user_id,
            email=email or f"{auth_user_id.lower()}@example.com",
            name="Test User",
            subscription_tier=tier,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


def make_token(
    auth_user_id: str,
    email: Optional[str] = None,
    expires_in: int = 3600,
    issuer: str = TEST_ISSUER,
    secret: str = TEST_JWT_SECRET,
) -> str:
    now = int(time.time())
    claims = {
        "sub": auth_user_id,
        "email": email,
        "aud": "authenticated",
        "iss": issuer,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.auth_user_id, user.email)}"}


def count_rows(session_factory, model) -> int:
    with session_factory() as session:
        return session.query(model).count()


def usage_row(session_factory, user_id: str) -> Optional[DailyUsage]:
    with session_factory() as session:
        row = session.query(DailyUsage).filter(DailyUsage.user_id == user_id).first()
        if row is not None:
            session.expunge(row)
        return row
