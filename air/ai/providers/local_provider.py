"""
Local Provider - small model served on this machine.

Talks to an Ollama-compatible HTTP endpoint (`/api/generate`). When a GGUF
path is configured the provider only reports itself available if the file
is actually on disk, so a half-finished `air setup --local` never gets
ranked.
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from air.core.config import settings
from air.core.exceptions import ProviderTimeoutError, TransientProviderError
from air.ai.providers.base import (
    ModelProvider,
    ModelResponse,
    ProviderKind,
    ProviderType,
    QueryContext,
)

logger = logging.getLogger("air.ai.local")


class LocalProvider(ModelProvider):
    """
    Local model provider.

    No confidence score is reported, so the orchestrator's quality check
    treats every local answer as worth a second opinion in Auto mode.
    """

    provider_type = ProviderType.LOCAL
    kind = ProviderKind.LOCAL
    display_name = "local-ollama"
    quality = 0.70
    latency_ms = 500

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        model_path: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.model = model if model is not None else settings.LOCAL_MODEL_NAME
        self.base_url = (base_url or settings.LOCAL_BASE_URL).rstrip("/")
        self.model_path = model_path if model_path is not None else settings.LOCAL_MODEL_PATH
        self._transport = transport

    def is_available(self) -> bool:
        if not self.model:
            return False
        if self.model_path is not None and not Path(self.model_path).exists():
            logger.debug(f"Local model file missing: {self.model_path}. Run 'air setup --local' first")
            return False
        return True

    async def _generate(self, context: QueryContext) -> ModelResponse:
        payload = {
            "model": self.model,
            "prompt": context.prompt,
            "stream": False,
            "options": {
                "temperature": context.temperature,
                "num_predict": context.max_tokens,
                "num_ctx": settings.LOCAL_CONTEXT_LENGTH,
            },
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/api/generate",
                    json=payload,
                    timeout=context.timeout,
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"local model timed out: {e}", self.name()) from e
            except httpx.HTTPStatusError as e:
                raise TransientProviderError(
                    f"local model returned HTTP {e.response.status_code}", self.name()
                ) from e
            except httpx.RequestError as e:
                raise TransientProviderError(f"local model unreachable: {e}", self.name()) from e

        data = response.json()
        tokens = int(data.get("prompt_eval_count", 0)) + int(data.get("eval_count", 0))

        return ModelResponse(
            content=data.get("response", ""),
            model_used=f"{self.display_name}-{self.model}",
            tokens_used=tokens,
            confidence_score=None,
        )
