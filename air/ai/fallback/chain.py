"""
Fallback Chain - degraded answers when every live provider has failed.

Strategies are tried in order; the first one that returns a response wins.
A strategy either produces a complete response or returns None ("try the
next one"), there is no partial state.

    1. CacheFallback   - a stored answer to a very similar past question
    2. DefaultFallback - fixed apology with remediation hints (never fails)

Degradation is communicated through the content prefix and a low
confidence score rather than through an exception, so the interactive
loop always has something to print.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from air.core.text import jaccard_similarity
from air.ai.providers.base import ModelResponse
from air.memory.store import MemoryStore

logger = logging.getLogger("air.ai.fallback")

CACHE_CONFIDENCE = 0.5
DEFAULT_CONFIDENCE = 0.1


class FallbackStrategy(ABC):
    name: str = "fallback"

    @abstractmethod
    async def attempt(self, prompt: str) -> Optional[ModelResponse]:
        """Return a degraded response, or None to defer to the next strategy."""


class CacheFallback(FallbackStrategy):
    """
    Reuse the answer to a similar recent question.

    Scans the `scan_limit` most recent conversations in chronological order
    and returns the first whose stored input has word-overlap similarity
    strictly above `threshold` with the failed prompt.
    """

    name = "cache"

    def __init__(self, memory: MemoryStore, threshold: float = 0.6, scan_limit: int = 10):
        self.memory = memory
        self.threshold = threshold
        self.scan_limit = scan_limit

    async def attempt(self, prompt: str) -> Optional[ModelResponse]:
        turns = await self.memory.get_recent_conversations(self.scan_limit)
        for turn in turns:
            similarity = jaccard_similarity(prompt, turn.user_input)
            if similarity > self.threshold:
                logger.info(f"Cache fallback matched '{turn.user_input}' (similarity {similarity:.2f})")
                return ModelResponse(
                    content=(
                        "⚠️  Service temporarily unavailable. Here's a similar response "
                        f"from our conversation history:\n\n{turn.ai_response}"
                    ),
                    model_used="Fallback-Cache",
                    confidence_score=CACHE_CONFIDENCE,
                )
        return None


class DefaultFallback(FallbackStrategy):
    """Always answers."""

    name = "default"

    async def attempt(self, prompt: str) -> Optional[ModelResponse]:
        return ModelResponse(
            content=(
                "⚠️  I'm currently experiencing connectivity issues. Please try again in a moment.\n\n"
                f"Your query was: '{prompt}'\n\n"
                "For urgent matters, you can also try:\n"
                "• Using 'mode local' to force local processing\n"
                "• Checking your internet connection\n"
                "• Verifying API keys in your configuration"
            ),
            model_used="Fallback-Default",
            confidence_score=DEFAULT_CONFIDENCE,
        )


class FallbackChain:
    """Ordered strategies; DefaultFallback should always be last."""

    def __init__(self, strategies: Sequence[FallbackStrategy]):
        self.strategies: List[FallbackStrategy] = list(strategies)

    @classmethod
    def standard(cls, memory: MemoryStore, threshold: float = 0.6, scan_limit: int = 10) -> "FallbackChain":
        return cls([CacheFallback(memory, threshold, scan_limit), DefaultFallback()])

    async def run(self, prompt: str) -> ModelResponse:
        for strategy in self.strategies:
            try:
                response = await strategy.attempt(prompt)
            except Exception as e:
                logger.warning(f"Fallback strategy '{strategy.name}' failed: {e}")
                continue
            if response is not None:
                logger.info(f"Fallback strategy '{strategy.name}' produced the response")
                return response

        # Only reachable with a chain that lacks DefaultFallback
        return await DefaultFallback().attempt(prompt)
