"""
Parallel Race - run the two best providers at once, then the rest in turn.

Both racers are awaited to completion before anything is decided, and the
higher-ranked success wins even if the other one finished first. Quality
beats raw speed here; the race only saves the wall-clock time of running
the top two one after the other.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from air.core.exceptions import AllProvidersFailedError
from air.ai.providers.base import ModelProvider, ModelResponse, QueryContext
from air.ai.router.retry import RetryExecutor

logger = logging.getLogger("air.ai.router.race")

RACE_WIDTH = 2


@dataclass
class RaceResult:
    response: ModelResponse
    provider: ModelProvider


class ParallelRace:
    """Races ranked providers, each call wrapped in the retry executor."""

    def __init__(self, retry: RetryExecutor):
        self.retry = retry

    async def race_providers(
        self,
        ranked_providers: Sequence[ModelProvider],
        context: QueryContext,
    ) -> RaceResult:
        """
        Return the first success in rank order.

        Args:
            ranked_providers: Available providers, best first
            context: Shared, immutable query context

        Returns:
            RaceResult with the winning response and its provider

        Raises:
            AllProvidersFailedError: Every provider exhausted its retries
        """
        errors: List[Tuple[str, Exception]] = []
        providers = list(ranked_providers)

        if len(providers) >= RACE_WIDTH:
            racers = providers[:RACE_WIDTH]
            logger.debug(f"Racing {', '.join(p.name() for p in racers)}")
            outcomes = await asyncio.gather(
                *(self.retry.call_with_retry(p, context) for p in racers),
                return_exceptions=True,
            )
            # Rank order, not completion order
            for provider, outcome in zip(racers, outcomes):
                if isinstance(outcome, BaseException):
                    errors.append((provider.name(), outcome))
                    continue
                return RaceResult(response=outcome, provider=provider)
            remaining = providers[RACE_WIDTH:]
        else:
            remaining = providers

        for provider in remaining:
            try:
                response = await self.retry.call_with_retry(provider, context)
            except Exception as e:
                errors.append((provider.name(), e))
                continue
            return RaceResult(response=response, provider=provider)

        raise AllProvidersFailedError(errors)
