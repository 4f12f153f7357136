import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.errors import (
    MalformedResponseError,
    NetworkError,
    RequestTimeoutError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

# Voice style -> ElevenLabs voice ID
VOICE_IDS = {
    "professional": "ErXwobaYiN019PkySvjV",
    "friendly": "21m00Tcm4TlvDq8ikWAM",
    "clear": "AZnzlk1XvdvUeBnXmlld",
}

# Range ElevenLabs accepts for voice_settings.speed
PROVIDER_MIN_SPEED = 0.7
PROVIDER_MAX_SPEED = 1.2


class SpeechSynthesisProvider:
    """Text-to-speech over the ElevenLabs HTTP API. Returns MP3 bytes."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model_id: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.timeout = timeout
        self.transport = transport

    async def synthesize(self, text: str, voice: str, speed: float) -> bytes:
        if not self.api_key:
            raise ServiceUnavailableError(
                "ElevenLabs API key not configured",
                user_message="The voice service is not set up on the server. Try again later.",
            )

        voice_id = VOICE_IDS.get(voice, VOICE_IDS["professional"])
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
                "style": 0.5,
                "use_speaker_boost": True,
                "speed": min(max(speed, PROVIDER_MIN_SPEED), PROVIDER_MAX_SPEED),
            },
        }
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/v1/text-to-speech/{voice_id}",
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.warning(f"ElevenLabs request timed out: {str(e)}")
            raise RequestTimeoutError("Voice synthesis timeout")
        except httpx.TransportError as e:
            logger.error(f"ElevenLabs connection failed: {str(e)}")
            raise NetworkError(
                "ElevenLabs connection failed",
                user_message="The server could not reach the voice service. Try again in a few minutes.",
            )

        if response.status_code != 200:
            logger.error(f"ElevenLabs API error: {response.status_code} {response.text[:200]}")
            raise ServiceUnavailableError(
                f"ElevenLabs API error: {response.status_code}",
                user_message="The voice service is not available right now. Try again in a few minutes.",
            )

        audio = response.content
        if not audio:
            raise MalformedResponseError("Received empty audio data from ElevenLabs")

        return audio


_speech_provider: Optional[SpeechSynthesisProvider] = None


def get_speech_provider() -> SpeechSynthesisProvider:
    """FastAPI dependency returning the shared speech-synthesis provider"""
    global _speech_provider
    if _speech_provider is None:
        _speech_provider = SpeechSynthesisProvider(
            api_key=settings.ELEVENLABS_API_KEY,
            base_url=settings.ELEVENLABS_BASE_URL,
            model_id=settings.ELEVENLABS_MODEL_ID,
            timeout=settings.VOICE_SYNTHESIS_TIMEOUT_SECONDS,
        )
    return _speech_provider
