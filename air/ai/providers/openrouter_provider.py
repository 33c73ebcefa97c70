"""
OpenRouter Provider - many hosted models behind one OpenAI-compatible API.

Reuses the OpenAI client pointed at settings.OPENROUTER_BASE_URL.
"""

from typing import Optional

from air.core.config import settings
from air.ai.providers.base import ProviderType
from air.ai.providers.openai_provider import OpenAIProvider


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter provider (key from the OPEN_ROUTER environment variable)."""

    provider_type = ProviderType.OPENROUTER
    display_name = "OpenRouter"
    quality = 0.90
    latency_ms = 2000
    confidence = 0.90

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(
            model=model or settings.OPENROUTER_MODEL,
            api_key=api_key if api_key is not None else settings.OPEN_ROUTER,
            base_url=base_url or settings.OPENROUTER_BASE_URL,
        )
