"""
OpenAI Provider - GPT client, ranked highest among cloud providers.

API Documentation: https://platform.openai.com/docs/api-reference
"""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

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

logger = logging.getLogger("air.ai.openai")


class OpenAIProvider(ModelProvider):
    """
    OpenAI chat-completions provider.

    Usage:
        provider = OpenAIProvider()
        response = await provider.generate(QueryContext(prompt="Explain asyncio"))
    """

    provider_type = ProviderType.OPENAI
    display_name = "OpenAI"
    quality = 0.95
    latency_ms = 1500
    confidence = 0.95

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize the provider.

        Args:
            model: Model name (default: from settings.OPENAI_MODEL)
            api_key: API key (default: from settings.OPENAI_API_KEY)
            base_url: Alternate OpenAI-compatible endpoint
        """
        super().__init__()
        self.model = model or settings.OPENAI_MODEL
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY

        if self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=base_url)
            logger.info(f"{self.display_name} provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.debug(f"{self.display_name} API key not configured - provider unavailable")

    def is_available(self) -> bool:
        return self._client is not None

    async def _generate(self, context: QueryContext) -> ModelResponse:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": context.prompt}],
                temperature=context.temperature,
                max_tokens=context.max_tokens,
                timeout=context.timeout,
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(f"request timed out: {e}", self.name()) from e
        except openai.AuthenticationError as e:
            raise ProviderUnavailableError(f"authentication failed: {e}", self.name()) from e
        except openai.OpenAIError as e:
            raise TransientProviderError(str(e), self.name()) from e

        if not response.choices:
            raise TransientProviderError("empty response", self.name())

        content = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0

        return ModelResponse(
            content=content,
            model_used=f"{self.display_name}-{self.model}",
            tokens_used=tokens,
            confidence_score=self.confidence,
        )
