"""
Retry Executor - bounded exponential backoff around one provider call.

Attempts against a single provider are strictly sequential. The backoff
sleep is an `await`, so other queries keep running while we wait.

    attempt 0 fails -> sleep initial_backoff
    attempt 1 fails -> sleep initial_backoff * multiplier
    ...
    last attempt fails -> re-raise its error unchanged (no sleep)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from air.core.exceptions import TransientProviderError
from air.ai.providers.base import ModelProvider, ModelResponse, QueryContext

logger = logging.getLogger("air.ai.router.retry")

SleepFn = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """
    Executes provider calls with retry.

    Only TransientProviderError is retried. Anything else (for example an
    unavailable provider) is raised on the first attempt.

    Args:
        max_attempts: Total attempts, including the first
        initial_backoff_ms: Delay after the first failure
        backoff_multiplier: Growth factor between delays
        sleep: Awaitable sleep taking seconds (tests inject a recorder)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_backoff_ms: int = 1000,
        backoff_multiplier: float = 2.0,
        sleep: Optional[SleepFn] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_backoff_ms = initial_backoff_ms
        self.backoff_multiplier = backoff_multiplier
        self._sleep = sleep or asyncio.sleep

    def backoff_ms(self, attempt: int) -> float:
        """Delay after the given (0-indexed) failed attempt."""
        return self.initial_backoff_ms * (self.backoff_multiplier ** attempt)

    async def call_with_retry(
        self,
        provider: ModelProvider,
        context: QueryContext,
    ) -> ModelResponse:
        """
        Call `provider.generate(context)` until it succeeds or attempts run out.

        Returns:
            The first successful ModelResponse

        Raises:
            The last attempt's exception, unchanged
        """
        for attempt in range(self.max_attempts):
            try:
                return await provider.generate(context)
            except TransientProviderError as e:
                if attempt == self.max_attempts - 1:
                    logger.warning(
                        f"{provider.name()} failed after {self.max_attempts} attempts: {e}"
                    )
                    raise
                delay_ms = self.backoff_ms(attempt)
                logger.info(
                    f"{provider.name()} attempt {attempt + 1}/{self.max_attempts} failed, "
                    f"retrying in {delay_ms:.0f}ms: {e}"
                )
                await self._sleep(delay_ms / 1000)

        # Unreachable: the loop either returns or raises
        raise RuntimeError("retry loop exited without a result")
