"""
AI Router Module - query routing across tools and model providers.

- intent: pattern-based tool detection
- retry / race: resilient provider calls
- orchestrator: the routing state machine
- react: tool requests written by the model itself
"""

from air.ai.router.intent import ToolIntent, ToolIntentRouter
from air.ai.router.orchestrator import QueryMode, QueryOrchestrator
from air.ai.router.race import ParallelRace, RaceResult
from air.ai.router.react import parse_tool_call
from air.ai.router.retry import RetryExecutor

__all__ = [
    "ParallelRace",
    "QueryMode",
    "QueryOrchestrator",
    "RaceResult",
    "RetryExecutor",
    "ToolIntent",
    "ToolIntentRouter",
    "parse_tool_call",
]
