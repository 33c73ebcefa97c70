"""
Stub Provider - canned offline replies.

Keyword-matched responses that let the agent say something sensible with
no network and no local model. Disabled unless STUB_PROVIDER_ENABLED is
set, and ranked below every real provider.
"""

import re
from typing import List, Tuple

from air.ai.providers.base import (
    ModelProvider,
    ModelResponse,
    ProviderKind,
    ProviderType,
    QueryContext,
)


_CANNED_REPLIES: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(r"\b(hello|hi|hey)\b", re.IGNORECASE),
        "Hello! I'm running in offline mode right now, but I can still help with "
        "calculations, files and commands.",
    ),
    (
        re.compile(r"\b(who|what) are you\b", re.IGNORECASE),
        "I'm air, a personal assistant that routes your questions between a local "
        "model and cloud providers.",
    ),
    (
        re.compile(r"\b(help|commands?)\b", re.IGNORECASE),
        "Try asking me to calculate something, read a file, fetch a URL or run a "
        "command. Type 'help' in interactive mode for more.",
    ),
]

_DEFAULT_REPLY = (
    "I'm in offline mode and can't give a full answer to that. "
    "Configure a provider with 'air login' or 'air setup --local'."
)


class StubProvider(ModelProvider):
    provider_type = ProviderType.STUB
    kind = ProviderKind.LOCAL
    display_name = "offline-stub"
    quality = 0.1
    latency_ms = 1

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def is_available(self) -> bool:
        return self.enabled

    async def _generate(self, context: QueryContext) -> ModelResponse:
        # The enriched prompt ends with the raw user query
        query = context.prompt.rsplit("User Query:", 1)[-1]
        for pattern, reply in _CANNED_REPLIES:
            if pattern.search(query):
                return ModelResponse(content=reply, model_used=self.display_name, confidence_score=0.3)
        return ModelResponse(content=_DEFAULT_REPLY, model_used=self.display_name, confidence_score=0.2)
