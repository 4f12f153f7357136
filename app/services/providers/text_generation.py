import json
import logging
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from app.core.config import settings
from app.core.errors import (
    MalformedResponseError,
    NetworkError,
    RequestTimeoutError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)


class TextGenerationProvider:
    """Chat-completion client that returns the model's JSON object reply"""

    def __init__(self, api_key: str, model: str, timeout: float, client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ServiceUnavailableError(
                    "OpenAI API key not configured",
                    user_message="The AI service is not set up on the server. Try again later.",
                )
            # Retries belong to the caller, not to a single action
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            logger.warning(f"OpenAI request timed out: {str(e)}")
            raise RequestTimeoutError("OpenAI request timeout")
        except openai.APIConnectionError as e:
            logger.error(f"OpenAI connection failed: {str(e)}")
            raise NetworkError(
                "OpenAI connection failed",
                user_message="The server could not reach the AI service. Try again in a few minutes.",
            )
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {str(e)}")
            raise ServiceUnavailableError(
                f"OpenAI API error: {getattr(e, 'status_code', None) or type(e).__name__}",
                user_message="The AI service is not available right now. Try again in a few minutes.",
            )

        choices = completion.choices or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content:
            raise MalformedResponseError("No response content from OpenAI")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"OpenAI response is not valid JSON: {str(e)}")

        if not isinstance(data, dict):
            raise MalformedResponseError("OpenAI response is not a JSON object")

        return data


_text_provider: Optional[TextGenerationProvider] = None


def get_text_provider() -> TextGenerationProvider:
    """FastAPI dependency returning the shared text-generation provider"""
    global _text_provider
    if _text_provider is None:
        _text_provider = TextGenerationProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            timeout=max(settings.TONE_ANALYSIS_TIMEOUT_SECONDS, settings.SCRIPT_GENERATION_TIMEOUT_SECONDS),
        )
    return _text_provider
