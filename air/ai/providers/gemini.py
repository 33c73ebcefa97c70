"""
Gemini Provider - Google's GenAI SDK.

Uses the async surface (`client.aio`) so a slow Gemini call never blocks
the event loop while other providers are racing.
"""

import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import errors, types

from air.core.config import settings
from air.core.exceptions import (
    ProviderTimeoutError,
    ProviderUnavailableError,
    TransientProviderError,
)
from air.ai.providers.base import (
    ModelProvider,
    ModelResponse,
    ProviderType,
    QueryContext,
)

logger = logging.getLogger("air.ai.gemini")


class GeminiProvider(ModelProvider):
    provider_type = ProviderType.GEMINI
    display_name = "Gemini"
    quality = 0.92
    latency_ms = 1200
    confidence = 0.92

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None):
        super().__init__()
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key if api_key is not None else settings.GEMINI_KEY

        if self.api_key:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.debug("Gemini API key not configured")

    def is_available(self) -> bool:
        return self._client is not None

    async def _generate(self, context: QueryContext) -> ModelResponse:
        config = types.GenerateContentConfig(
            temperature=context.temperature,
            max_output_tokens=context.max_tokens,
        )

        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=context.prompt,
                    config=config,
                ),
                timeout=context.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"no answer within {context.timeout}s", self.name()
            ) from e
        except errors.ClientError as e:
            if e.code in (401, 403):
                raise ProviderUnavailableError(str(e), self.name()) from e
            raise TransientProviderError(str(e), self.name()) from e
        except errors.APIError as e:
            raise TransientProviderError(str(e), self.name()) from e

        return ModelResponse(
            content=response.text or "",
            model_used=f"{self.display_name}-{self.model}",
            tokens_used=self._extract_usage(response),
            confidence_score=self.confidence,
        )

    def _extract_usage(self, response) -> int:
        # usage_metadata is None when the API reports no usage
        if not response.usage_metadata:
            return 0
        return response.usage_metadata.total_token_count or 0
