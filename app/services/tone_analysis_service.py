import logging
from typing import Any, Dict

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InputValidationError, MalformedResponseError
from app.models.tone_analysis import ToneAnalysis
from app.models.usage import FeatureKind
from app.models.user import User
from app.schemas.tone import ToneAnalysisOutput, ToneAnalysisRequest
from app.services.action_executor import MeteredAction
from app.services.providers.text_generation import TextGenerationProvider

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000

SYSTEM_PROMPT = (
    "You are a communication assistant helping neurodiverse individuals understand "
    "message tone. Be literal and specific in your explanations."
)

USER_PROMPT_TEMPLATE = """Analyze the tone of the following message and provide:

1. Tone percentages for these categories (must sum to 100):
   - Professional: How formal and business-like is this message?
   - Friendly: How warm, approachable, and positive is this message?
   - Urgent: How time-sensitive or demanding is this message?
   - Neutral: How factual and emotionally neutral is this message?

2. Confidence score (0.0 to 1.0): How confident are you in this analysis?

3. Plain explanation: Explain the tone in simple terms that someone with autism or ADHD would understand. Avoid metaphors or implied meanings.

4. Practical suggestions: List 2-3 specific ways to respond appropriately.

Message to analyze: "{text}"

Respond in this exact JSON format:
{{
  "tones": {{
    "professional": [number],
    "friendly": [number],
    "urgent": [number],
    "neutral": [number]
  }},
  "confidence": [number between 0.0 and 1.0],
  "explanation": "[clear, literal explanation]",
  "suggestions": ["[suggestion 1]", "[suggestion 2]", "[suggestion 3]"]
}}"""


def normalize_tones(output: ToneAnalysisOutput) -> ToneAnalysisOutput:
    """Rescale tone percentages to sum to 100 when the model is off by more than 1"""
    tones = output.tones.model_dump()
    total = sum(tones.values())
    if total <= 0:
        raise MalformedResponseError("Tone percentages sum to zero")
    if abs(total - 100) <= 1:
        return output

    factor = 100 / total
    scaled = {name: round(value * factor) for name, value in tones.items()}
    return output.model_copy(update={"tones": output.tones.model_copy(update=scaled)})


class ToneAnalysisService(MeteredAction[ToneAnalysisRequest, ToneAnalysisOutput]):
    feature = FeatureKind.TONE_ANALYSIS

    def __init__(self, db: Session, provider: TextGenerationProvider):
        super().__init__(db)
        self.provider = provider

    @property
    def timeout_seconds(self) -> float:
        return settings.TONE_ANALYSIS_TIMEOUT_SECONDS

    def validate(self, request: ToneAnalysisRequest) -> ToneAnalysisRequest:
        text = (request.text or "").strip()
        if not text:
            raise InputValidationError(
                "Text is required",
                user_message="Enter the message you want to analyze.",
            )
        if len(text) > MAX_TEXT_LENGTH:
            raise InputValidationError(
                f"Text too long ({len(text)} > {MAX_TEXT_LENGTH})",
                user_message=f"The message is too long. Use {MAX_TEXT_LENGTH} characters or fewer.",
            )
        return ToneAnalysisRequest(text=text)

    def moderation_text(self, request: ToneAnalysisRequest) -> str:
        return request.text

    async def call_provider(self, request: ToneAnalysisRequest) -> Dict[str, Any]:
        return await self.provider.complete_json(
            SYSTEM_PROMPT,
            USER_PROMPT_TEMPLATE.format(text=request.text),
            max_tokens=500,
            temperature=0.3,
        )

    def parse_output(self, raw: Any) -> ToneAnalysisOutput:
        try:
            output = ToneAnalysisOutput.model_validate(raw)
        except ValidationError as e:
            raise MalformedResponseError(
                "Invalid response format from OpenAI",
                context={"errors": e.errors(include_url=False)},
            )
        return normalize_tones(output)

    def persist(self, user: User, request: ToneAnalysisRequest, output: ToneAnalysisOutput, processing_time_ms: int) -> str:
        analysis = ToneAnalysis(
            user_id=user.id,
            input_text=request.text,
            analysis_result=output.model_dump(),
            confidence_score=output.confidence,
            processing_time_ms=processing_time_ms,
        )
        self.db.add(analysis)
        self.db.commit()
        self.db.refresh(analysis)
        logger.info(f"Saved tone analysis {analysis.id} for user {user.id}")
        return analysis.id
