import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InputValidationError, MalformedResponseError
from app.models.usage import FeatureKind
from app.schemas.voice import VoiceStyle, VoiceSynthesisRequest
from app.services.action_executor import MeteredAction
from app.services.providers.speech_synthesis import SpeechSynthesisProvider

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 1000
MIN_SPEED = 0.5
MAX_SPEED = 2.0


class VoiceSynthesisService(MeteredAction[VoiceSynthesisRequest, bytes]):
    """Speech practice audio. Nothing is stored; only the usage is counted."""

    feature = FeatureKind.VOICE_SYNTHESIS

    def __init__(self, db: Session, provider: SpeechSynthesisProvider):
        super().__init__(db)
        self.provider = provider

    @property
    def timeout_seconds(self) -> float:
        return settings.VOICE_SYNTHESIS_TIMEOUT_SECONDS

    def validate(self, request: VoiceSynthesisRequest) -> VoiceSynthesisRequest:
        text = (request.text or "").strip()
        voice = request.voice or VoiceStyle.professional.value
        speed = 1.0 if request.speed is None else request.speed

        if not text:
            raise InputValidationError(
                "Text is required",
                user_message="Enter the text you want to hear.",
            )
        if len(text) > MAX_TEXT_LENGTH:
            raise InputValidationError(
                f"Text too long ({len(text)} > {MAX_TEXT_LENGTH})",
                user_message=f"The text is too long. Use {MAX_TEXT_LENGTH} characters or fewer.",
            )
        if voice not in VoiceStyle.__members__:
            raise InputValidationError(
                f"Invalid voice: {voice}",
                user_message="Choose one of these voices: professional, friendly, clear.",
            )
        if not MIN_SPEED <= speed <= MAX_SPEED:
            raise InputValidationError(
                f"Speed out of range: {speed}",
                user_message=f"Choose a speed between {MIN_SPEED} and {MAX_SPEED}.",
            )
        return VoiceSynthesisRequest(text=text, voice=voice, speed=speed)

    def moderation_text(self, request: VoiceSynthesisRequest) -> str:
        return request.text

    async def call_provider(self, request: VoiceSynthesisRequest) -> bytes:
        return await self.provider.synthesize(request.text, request.voice, request.speed)

    def parse_output(self, raw: Any) -> bytes:
        if not isinstance(raw, (bytes, bytearray)) or not raw:
            raise MalformedResponseError("Received empty audio data")
        logger.info(f"Synthesized {len(raw)} bytes of audio")
        return bytes(raw)
