import logging
from typing import Any, Dict

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InputValidationError, MalformedResponseError
from app.models.generated_script import GeneratedScript
from app.models.usage import FeatureKind
from app.models.user import User
from app.schemas.scripts import RelationshipType, ScriptGenerationOutput, ScriptGenerationRequest
from app.services.action_executor import MeteredAction
from app.services.providers.text_generation import TextGenerationProvider

logger = logging.getLogger(__name__)

MAX_SITUATION_LENGTH = 1000

RELATIONSHIP_DESCRIPTIONS = {
    RelationshipType.colleague: "a coworker at the same level",
    RelationshipType.manager: "your supervisor or boss",
    RelationshipType.friend: "a personal friend",
    RelationshipType.family: "a family member",
    RelationshipType.client: "a customer or client",
    RelationshipType.acquaintance: "someone you know casually",
    RelationshipType.other: "someone you interact with",
}

SYSTEM_PROMPT = (
    "You are a communication assistant helping neurodiverse individuals craft appropriate "
    "responses. Be literal, clear, and specific in your suggestions."
)

USER_PROMPT_TEMPLATE = """You're helping a neurodiverse person respond to a communication situation with {relationship}.

Situation: "{situation}"

Generate exactly 3 different response options with these tones:

1. CASUAL: Relaxed, friendly, conversational tone
2. PROFESSIONAL: Formal, business-like, structured tone
3. DIRECT: Clear, straightforward, concise tone

For each response, provide:
- The actual response text (50-150 words)
- An explanation of why this tone works for the situation (30-50 words)
- A confidence score (0.0 to 1.0) for how appropriate this response is

Important guidelines:
- Use clear, literal language without metaphors or idioms
- Be specific and concrete in responses
- Consider the relationship context when crafting tone
- Make responses actionable and helpful
- Avoid overwhelming or complex language

Respond in this exact JSON format:
{{
  "responses": {{
    "casual": {{"content": "[response text]", "explanation": "[why this works]", "confidence": [0.0-1.0]}},
    "professional": {{"content": "[response text]", "explanation": "[why this works]", "confidence": [0.0-1.0]}},
    "direct": {{"content": "[response text]", "explanation": "[why this works]", "confidence": [0.0-1.0]}}
  }}
}}"""


class ScriptGenerationService(MeteredAction[ScriptGenerationRequest, ScriptGenerationOutput]):
    feature = FeatureKind.SCRIPT_GENERATION

    def __init__(self, db: Session, provider: TextGenerationProvider):
        super().__init__(db)
        self.provider = provider

    @property
    def timeout_seconds(self) -> float:
        return settings.SCRIPT_GENERATION_TIMEOUT_SECONDS

    def validate(self, request: ScriptGenerationRequest) -> ScriptGenerationRequest:
        situation = (request.situation_context or "").strip()
        relationship = (request.relationship_type or "").strip().lower()

        if not situation or not relationship:
            raise InputValidationError(
                "Situation context and relationship type are required",
                user_message="Describe the situation and choose who you are talking to.",
            )
        if len(situation) > MAX_SITUATION_LENGTH:
            raise InputValidationError(
                f"Situation context too long ({len(situation)} > {MAX_SITUATION_LENGTH})",
                user_message=f"The situation description is too long. Use {MAX_SITUATION_LENGTH} characters or fewer.",
            )
        if relationship not in RelationshipType.__members__:
            raise InputValidationError(
                f"Invalid relationship type: {relationship}",
                user_message=(
                    "Choose who you are talking to from the list: "
                    + ", ".join(RelationshipType.__members__) + "."
                ),
            )
        return ScriptGenerationRequest(situation_context=situation, relationship_type=relationship)

    def moderation_text(self, request: ScriptGenerationRequest) -> str:
        return request.situation_context

    async def call_provider(self, request: ScriptGenerationRequest) -> Dict[str, Any]:
        relationship = RELATIONSHIP_DESCRIPTIONS[RelationshipType(request.relationship_type)]
        return await self.provider.complete_json(
            SYSTEM_PROMPT,
            USER_PROMPT_TEMPLATE.format(relationship=relationship, situation=request.situation_context),
            max_tokens=800,
            temperature=0.7,
        )

    def parse_output(self, raw: Any) -> ScriptGenerationOutput:
        try:
            return ScriptGenerationOutput.model_validate(raw)
        except ValidationError as e:
            raise MalformedResponseError(
                "Invalid response format from OpenAI",
                context={"errors": e.errors(include_url=False)},
            )

    def persist(self, user: User, request: ScriptGenerationRequest, output: ScriptGenerationOutput, processing_time_ms: int) -> str:
        script = GeneratedScript(
            user_id=user.id,
            situation_context=request.situation_context,
            relationship_type=request.relationship_type,
            responses=output.responses.model_dump(),
        )
        self.db.add(script)
        self.db.commit()
        self.db.refresh(script)
        logger.info(f"Saved generated scripts {script.id} for user {user.id}")
        return script.id
