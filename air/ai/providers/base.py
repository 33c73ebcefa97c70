"""
Base Model Provider - Abstract interface for all text-generation backends.

This module defines the contract that every provider (local or cloud) must
follow, so the router can rank, retry and race them without knowing which
SDK sits underneath.

Design Pattern: Template Method
===============================
`ModelProvider.generate()` is final: it measures latency, updates the
provider's ModelMetrics under a lock and normalizes unexpected exceptions.
Subclasses only implement `_generate()`.

Example:
    provider = OpenAIProvider()
    if provider.is_available():
        response = await provider.generate(QueryContext(prompt="Hello"))
        print(response.content)
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Dict, Optional

from air.core.exceptions import (
    ProviderError,
    ProviderUnavailableError,
    TransientProviderError,
)

logger = logging.getLogger("air.ai")


class ProviderType(str, Enum):
    """Enum of supported provider backends."""
    LOCAL = "local"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    STUB = "stub"


class ProviderKind(str, Enum):
    """Where inference runs."""
    LOCAL = "local"
    CLOUD = "cloud"


@dataclass(frozen=True)
class QueryContext:
    """
    Everything a provider needs for one attempt.

    Immutable; the race hands the same instance to several providers.

    Attributes:
        prompt: Fully enriched prompt text
        max_tokens: Upper bound on generated tokens
        temperature: Sampling temperature (0.0 - 2.0)
        timeout: Seconds the provider may spend on the request
        pure_mode: Suppress presentation labels on the final output
    """
    prompt: str
    max_tokens: int = 1000
    temperature: float = 0.7
    timeout: float = 30.0
    pure_mode: bool = False

    def with_prompt(self, prompt: str) -> "QueryContext":
        return replace(self, prompt=prompt)


@dataclass
class ModelResponse:
    """
    Standardized response from any provider (or from a fallback strategy).

    Attributes:
        content: Generated text
        model_used: Identifying model name, e.g. "OpenAI-gpt-4o-mini"
        tokens_used: Tokens reported by the backend (0 if unknown)
        response_time_ms: Wall-clock time of the call
        confidence_score: Optional reliability estimate in [0, 1]
        created_at: Timestamp of the response
    """
    content: str
    model_used: str
    tokens_used: int = 0
    response_time_ms: float = 0.0
    confidence_score: Optional[float] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def with_prefix(self, prefix: str) -> "ModelResponse":
        """Copy with a presentation label prepended to the content."""
        return replace(self, content=f"{prefix}{self.content}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "content": self.content[:100] + "..." if len(self.content) > 100 else self.content,
            "model_used": self.model_used,
            "tokens_used": self.tokens_used,
            "response_time_ms": round(self.response_time_ms, 2),
            "confidence_score": self.confidence_score,
            "created_at": self.created_at.isoformat(),
        }


class ModelMetrics:
    """
    Running counters for one provider.

    Every completed call (success or failure) updates these under the
    provider's lock. Never reset except by restarting the process.
    """

    def __init__(self):
        self._lock = Lock()
        self.total_requests = 0
        self.successful_requests = 0
        self.avg_response_time_ms = 0.0
        self.last_error: Optional[str] = None

    def record_success(self, response_time_ms: float) -> None:
        with self._lock:
            self.total_requests += 1
            self.successful_requests += 1
            n = self.successful_requests
            self.avg_response_time_ms = (
                self.avg_response_time_ms * (n - 1) + response_time_ms
            ) / n

    def record_failure(self, error: str) -> None:
        with self._lock:
            self.total_requests += 1
            self.last_error = error

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_requests": self.total_requests,
                "successful_requests": self.successful_requests,
                "avg_response_time_ms": round(self.avg_response_time_ms, 2),
                "success_rate": round(self.success_rate, 3),
                "last_error": self.last_error,
            }


class ModelProvider(ABC):
    """
    Abstract base class for model providers.

    Responsibilities of subclasses:
    - `_generate()`: call the backend and build a ModelResponse
    - `is_available()`: True iff credentials/files are present
    - class attributes for name, type, kind, quality and latency

    Handles are shared across concurrent queries; the only mutable state
    is `metrics`, which carries its own lock.
    """

    provider_type: ProviderType
    kind: ProviderKind = ProviderKind.CLOUD
    display_name: str = "provider"
    quality: float = 0.5
    latency_ms: int = 1000

    def __init__(self):
        self.metrics = ModelMetrics()

    # ---------------------------------------------------------------------------
    # CAPABILITY SURFACE
    # ---------------------------------------------------------------------------

    def name(self) -> str:
        return self.display_name

    def quality_score(self) -> float:
        return self.quality

    def estimated_latency_ms(self) -> int:
        return self.latency_ms

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether credentials or model files are present."""

    async def generate(self, context: QueryContext) -> ModelResponse:
        """
        Generate a response and record the outcome in `metrics`.

        Args:
            context: Prompt and generation parameters

        Returns:
            ModelResponse with `response_time_ms` filled in

        Raises:
            ProviderUnavailableError: Provider is not configured
            TransientProviderError: Any other failure (safe to retry)
        """
        if not self.is_available():
            error = ProviderUnavailableError(f"{self.name()} is not configured", self.name())
            self.metrics.record_failure(str(error))
            raise error

        start_time = time.time()
        try:
            response = await self._generate(context)
        except ProviderError as e:
            self.metrics.record_failure(str(e))
            logger.warning(f"Provider {self.name()} failed: {e}")
            raise
        except Exception as e:
            self.metrics.record_failure(str(e))
            logger.warning(f"Provider {self.name()} failed: {e}")
            raise TransientProviderError(str(e), self.name()) from e

        response.response_time_ms = self._measure_latency(start_time)
        self.metrics.record_success(response.response_time_ms)
        logger.debug(
            f"Provider {self.name()} answered in {response.response_time_ms:.0f}ms"
        )
        return response

    @abstractmethod
    async def _generate(self, context: QueryContext) -> ModelResponse:
        """Backend-specific call. May raise any exception."""

    def _measure_latency(self, start_time: float) -> float:
        """Calculate latency in milliseconds."""
        return (time.time() - start_time) * 1000

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name()!r} quality={self.quality_score()}>"
