"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- FakeProvider: scripted provider with configurable rank, kind and delay
- In-memory SQLite memory store (StaticPool, fresh per test)
- SleepRecorder: records retry backoff instead of sleeping
- Orchestrator factory wired with fakes
"""

import asyncio
from typing import List, Optional, Sequence, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import air.models  # noqa: F401  (registers tables on Base.metadata)
from air.ai.fallback import FallbackChain
from air.ai.monitoring import AIMonitor
from air.ai.providers.base import (
    ModelProvider,
    ModelResponse,
    ProviderKind,
    ProviderType,
    QueryContext,
)
from air.ai.providers.registry import ProviderRegistry
from air.ai.router import ParallelRace, QueryOrchestrator, RetryExecutor, ToolIntentRouter
from air.core.config import Settings
from air.db.base import Base
from air.db.session import create_session_factory
from air.memory import PromptCache, PromptEnricher, SQLMemoryStore
from air.tools import ToolManager


# ---------------------------------------------------------------------------
# FAKE PROVIDER
# ---------------------------------------------------------------------------

ScriptItem = Union[str, Exception]


class FakeProvider(ModelProvider):
    """
    Scripted provider.

    Each call consumes the next item of `script`: a string is returned as
    the response content, an exception is raised. When the script is empty
    `content` is returned.
    """

    provider_type = ProviderType.STUB

    def __init__(
        self,
        name: str = "fake",
        quality: float = 0.9,
        kind: ProviderKind = ProviderKind.CLOUD,
        available: bool = True,
        script: Optional[Sequence[ScriptItem]] = None,
        content: str = "A detailed and confident answer that is comfortably long enough.",
        confidence: Optional[float] = 0.9,
        delay: float = 0.0,
    ):
        super().__init__()
        self.display_name = name
        self.quality = quality
        self.kind = kind
        self.available = available
        self.script: List[ScriptItem] = list(script or [])
        self.content = content
        self.confidence = confidence
        self.delay = delay
        self.calls = 0
        self.prompts: List[str] = []

    def is_available(self) -> bool:
        return self.available

    async def _generate(self, context: QueryContext) -> ModelResponse:
        self.calls += 1
        self.prompts.append(context.prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.script.pop(0) if self.script else self.content
        if isinstance(item, Exception):
            raise item
        return ModelResponse(
            content=item,
            model_used=f"{self.display_name}-model",
            tokens_used=10,
            confidence_score=self.confidence,
        )


class SleepRecorder:
    """Drop-in for asyncio.sleep that only records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ---------------------------------------------------------------------------
# CONFIG FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the developer's .env and home directory."""
    return Settings(
        _env_file=None,
        DATA_DIR=tmp_path / "data",
        TOOLS_ROOT=tmp_path,
        OPENAI_API_KEY="",
        ANTHROPIC_API_KEY="",
        GEMINI_KEY="",
        OPEN_ROUTER="",
        LOCAL_MODEL_NAME="",
        LOCAL_TIMEOUT_SECONDS=0.2,
        LOCAL_STRICT_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory():
    """
    Fresh in-memory database for each test function.

    StaticPool keeps the single connection alive across the worker
    threads used by the store.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def memory_store(session_factory) -> SQLMemoryStore:
    return SQLMemoryStore(session_factory)


# ---------------------------------------------------------------------------
# ORCHESTRATOR FACTORY
# ---------------------------------------------------------------------------

@pytest.fixture
def make_orchestrator(memory_store, test_settings, sleep_recorder):
    """
    Build a QueryOrchestrator around the given fake providers.

    Usage:
        orchestrator = make_orchestrator([FakeProvider(...)], tools=manager)
    """

    def factory(
        providers: Sequence[ModelProvider],
        tools: Optional[ToolManager] = None,
        config: Optional[Settings] = None,
    ) -> QueryOrchestrator:
        cache = PromptCache()
        return QueryOrchestrator(
            registry=ProviderRegistry(providers),
            memory=memory_store,
            enricher=PromptEnricher(memory_store, cache),
            tools=tools or ToolManager(),
            race=ParallelRace(RetryExecutor(max_attempts=3, sleep=sleep_recorder)),
            fallback=FallbackChain.standard(memory_store),
            intent_router=ToolIntentRouter(),
            config=config or test_settings,
            monitor=AIMonitor(),
        )

    return factory
