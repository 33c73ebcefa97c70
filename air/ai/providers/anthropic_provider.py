"""
Anthropic Provider - Claude client.

API Documentation: https://docs.anthropic.com/en/api
"""

import logging
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

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

logger = logging.getLogger("air.ai.anthropic")


class AnthropicProvider(ModelProvider):
    """
    Anthropic Claude provider implementation.

    Usage:
        provider = AnthropicProvider()
        response = await provider.generate(QueryContext(prompt="Plan my week"))
    """

    provider_type = ProviderType.ANTHROPIC
    display_name = "Anthropic"
    quality = 0.93
    latency_ms = 2000
    confidence = 0.93

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None):
        super().__init__()
        self.model = model or settings.ANTHROPIC_MODEL
        self.api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY

        if self.api_key:
            self._client = AsyncAnthropic(api_key=self.api_key)
            logger.info(f"Anthropic provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.debug("Anthropic API key not configured - provider unavailable")

    def is_available(self) -> bool:
        return self._client is not None

    async def _generate(self, context: QueryContext) -> ModelResponse:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=context.max_tokens,
                messages=[{"role": "user", "content": context.prompt}],
                temperature=context.temperature,
                timeout=context.timeout,
            )
        except anthropic.APITimeoutError as e:
            raise ProviderTimeoutError(f"request timed out: {e}", self.name()) from e
        except anthropic.AuthenticationError as e:
            raise ProviderUnavailableError(f"authentication failed: {e}", self.name()) from e
        except anthropic.AnthropicError as e:
            raise TransientProviderError(str(e), self.name()) from e

        # Claude returns a list of content blocks
        content = ""
        if response.content:
            for block in response.content:
                if hasattr(block, "text"):
                    content += block.text

        tokens = 0
        if response.usage:
            tokens = response.usage.input_tokens + response.usage.output_tokens

        return ModelResponse(
            content=content,
            model_used=f"{self.display_name}-{self.model}",
            tokens_used=tokens,
            confidence_score=self.confidence,
        )
