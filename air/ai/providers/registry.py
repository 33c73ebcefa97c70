"""
Provider Registry - the set of configured providers and their ranking.

Populated once at startup by `build_registry()`; never mutated during a
run. Ranking is by static quality score, with registration order breaking
ties (Python's sort is stable).

Usage:
    registry = build_registry(settings)
    for provider in registry.available_providers(ProviderKind.CLOUD):
        ...
"""

import logging
from typing import Dict, Iterable, List, Optional

from air.core.config import Settings
from air.core.exceptions import ConfigurationError
from air.ai.providers.base import ModelProvider, ProviderKind
from air.ai.providers.anthropic_provider import AnthropicProvider
from air.ai.providers.gemini import GeminiProvider
from air.ai.providers.local_provider import LocalProvider
from air.ai.providers.openai_provider import OpenAIProvider
from air.ai.providers.openrouter_provider import OpenRouterProvider
from air.ai.providers.stub_provider import StubProvider

logger = logging.getLogger("air.ai.registry")


class ProviderRegistry:
    """Immutable, ordered collection of provider handles."""

    def __init__(self, providers: Iterable[ModelProvider]):
        self._providers: List[ModelProvider] = list(providers)

    @property
    def providers(self) -> List[ModelProvider]:
        """All registered providers in registration order."""
        return list(self._providers)

    def available_providers(self, kind: Optional[ProviderKind] = None) -> List[ModelProvider]:
        """
        Currently usable providers, best first.

        Args:
            kind: Restrict to local or cloud providers

        Returns:
            Providers with is_available() True, sorted by quality_score()
            descending. Empty if none; that is not an error here.
        """
        usable = [
            p for p in self._providers
            if (kind is None or p.kind == kind) and p.is_available()
        ]
        return sorted(usable, key=lambda p: p.quality_score(), reverse=True)

    def best_local(self) -> Optional[ModelProvider]:
        ranked = self.available_providers(ProviderKind.LOCAL)
        return ranked[0] if ranked else None

    def get(self, name: str) -> Optional[ModelProvider]:
        for provider in self._providers:
            if provider.name() == name:
                return provider
        return None

    def metrics(self) -> Dict[str, dict]:
        return {p.name(): p.metrics.snapshot() for p in self._providers}

    def __len__(self) -> int:
        return len(self._providers)


def build_registry(config: Settings) -> ProviderRegistry:
    """
    Create every provider the configuration knows about.

    Local providers are registered first, then cloud providers in the order
    OpenAI, Anthropic, Gemini, OpenRouter.

    Raises:
        ConfigurationError: No provider is available at all
    """
    providers: List[ModelProvider] = [
        LocalProvider(
            model=config.LOCAL_MODEL_NAME,
            base_url=config.LOCAL_BASE_URL,
            model_path=config.LOCAL_MODEL_PATH,
        ),
        StubProvider(enabled=config.STUB_PROVIDER_ENABLED),
        OpenAIProvider(model=config.OPENAI_MODEL, api_key=config.OPENAI_API_KEY),
        AnthropicProvider(model=config.ANTHROPIC_MODEL, api_key=config.ANTHROPIC_API_KEY),
        GeminiProvider(model=config.GEMINI_MODEL, api_key=config.GEMINI_KEY),
        OpenRouterProvider(
            model=config.OPENROUTER_MODEL,
            api_key=config.OPEN_ROUTER,
            base_url=config.OPENROUTER_BASE_URL,
        ),
    ]
    registry = ProviderRegistry(providers)

    available = registry.available_providers()
    if not available:
        raise ConfigurationError(
            "No AI providers configured. Set an API key (e.g. OPENAI_API_KEY) "
            "with 'air login', or run 'air setup --local'."
        )

    logger.info(f"Providers available: {', '.join(p.name() for p in available)}")
    return registry
