"""
AI Providers Module - unified clients for local and cloud models.

Every provider has the same interface, which makes them interchangeable
for ranking, retrying and racing:
    response = await provider.generate(QueryContext(prompt="..."))

Providers:
- LocalProvider (Ollama-compatible endpoint)
- OpenAIProvider, AnthropicProvider, GeminiProvider, OpenRouterProvider
- StubProvider (canned offline replies)
"""

from air.ai.providers.base import (
    ModelMetrics,
    ModelProvider,
    ModelResponse,
    ProviderKind,
    ProviderType,
    QueryContext,
)
from air.ai.providers.anthropic_provider import AnthropicProvider
from air.ai.providers.gemini import GeminiProvider
from air.ai.providers.local_provider import LocalProvider
from air.ai.providers.openai_provider import OpenAIProvider
from air.ai.providers.openrouter_provider import OpenRouterProvider
from air.ai.providers.registry import ProviderRegistry, build_registry
from air.ai.providers.stub_provider import StubProvider

__all__ = [
    "ModelMetrics",
    "ModelProvider",
    "ModelResponse",
    "ProviderKind",
    "ProviderType",
    "QueryContext",
    "AnthropicProvider",
    "GeminiProvider",
    "LocalProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "StubProvider",
    "ProviderRegistry",
    "build_registry",
]
