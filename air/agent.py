"""
Agent wiring - builds a ready-to-use QueryOrchestrator from Settings.

Usage:
    from air.agent import create_orchestrator

    orchestrator = create_orchestrator()
    response = await orchestrator.process("hello")
"""

import logging
from typing import Optional

from air.core.config import Settings, settings
from air.ai.fallback import FallbackChain
from air.ai.monitoring import ai_monitor
from air.ai.providers import build_registry
from air.ai.router import ParallelRace, QueryOrchestrator, RetryExecutor, ToolIntentRouter
from air.db.session import create_memory_engine, create_session_factory
from air.memory import KnowledgeBase, PromptCache, PromptEnricher, SQLMemoryStore
from air.tools import create_tool_manager

logger = logging.getLogger("air.agent")


def create_knowledge_base(config: Optional[Settings] = None) -> KnowledgeBase:
    engine = create_memory_engine(config or settings)
    return KnowledgeBase(create_session_factory(engine))


def create_memory_store(config: Optional[Settings] = None) -> SQLMemoryStore:
    """Open the memory database without clearing the previous session."""
    return SQLMemoryStore.from_settings(config or settings, reset_session=False)


def create_orchestrator(config: Optional[Settings] = None) -> QueryOrchestrator:
    """
    Wire providers, memory, tools and policies.

    Raises:
        ConfigurationError: No provider is available at all
    """
    config = config or settings
    registry = build_registry(config)

    engine = create_memory_engine(config)
    session_factory = create_session_factory(engine)
    memory = SQLMemoryStore(session_factory)
    knowledge = KnowledgeBase(session_factory)

    cache = PromptCache(
        ttl_seconds=config.PROMPT_CACHE_TTL_SECONDS,
        max_entries=config.PROMPT_CACHE_MAX_ENTRIES,
        prune_age_seconds=config.PROMPT_CACHE_PRUNE_AGE_SECONDS,
    )
    enricher = PromptEnricher(
        memory,
        cache,
        knowledge=knowledge,
        relevance_threshold=config.KNOWLEDGE_RELEVANCE_THRESHOLD,
    )
    tools = create_tool_manager(
        root=config.TOOLS_ROOT,
        store=memory,
        knowledge=knowledge,
        command_timeout=config.COMMAND_TIMEOUT_SECONDS,
        web_timeout=config.WEB_TIMEOUT_SECONDS,
    )
    retry = RetryExecutor(
        max_attempts=config.RETRY_MAX_ATTEMPTS,
        initial_backoff_ms=config.RETRY_INITIAL_BACKOFF_MS,
        backoff_multiplier=config.RETRY_BACKOFF_MULTIPLIER,
    )
    fallback = FallbackChain.standard(
        memory,
        threshold=config.CACHE_SIMILARITY_THRESHOLD,
        scan_limit=config.FALLBACK_CACHE_SCAN,
    )

    logger.info(
        f"Agent ready with {len(registry.available_providers())} available provider(s), "
        f"tools: {', '.join(tools.list_tools())}"
    )
    return QueryOrchestrator(
        registry=registry,
        memory=memory,
        enricher=enricher,
        tools=tools,
        race=ParallelRace(retry),
        fallback=fallback,
        intent_router=ToolIntentRouter(),
        config=config,
        monitor=ai_monitor,
    )
