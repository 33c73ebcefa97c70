"""
Memory Store - conversations, key/value memory, mistakes and learning counters.

The orchestrator only depends on the `MemoryStore` interface. The shipped
implementation, `SQLMemoryStore`, keeps everything in one SQLite database
through SQLAlchemy. Session-scoped data (conversations and session keys)
is wiped when the store is created, so every CLI run starts with a clean
short-term memory while preferences, persistent facts and the mistake log
survive.

Storage calls are blocking SQLAlchemy work; each public coroutine pushes it
to a worker thread with asyncio.to_thread so it stays a non-blocking await
point for the event loop.

Usage:
    store = SQLMemoryStore.from_settings(settings)
    await store.append_conversation("what is 2+2", "4", "OpenAI-gpt-4o-mini")
    turns = await store.get_recent_conversations(3)   # oldest first
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from air.core.config import Settings, settings
from air.core.exceptions import MemoryStoreError
from air.core.text import jaccard_similarity
from air.db.session import create_memory_engine, create_session_factory
from air.models import Conversation, LearningPattern, MemoryEntry, MemoryScope, Mistake

logger = logging.getLogger("air.memory")


# ---------------------------------------------------------------------------
# CONSTANTS
# ---------------------------------------------------------------------------
MAX_INPUT_CHARS = 500
KEPT_INPUT_CHARS = 200
MAX_RESPONSE_CHARS = 1000
KEPT_RESPONSE_CHARS = 500
TRUNCATION_MARKER = "... (truncated)"

CONVERSATION_CLEANUP_THRESHOLD = 1000
CONVERSATION_KEEP_COUNT = 500

MISTAKE_SCAN_LIMIT = 10
MISTAKE_SIMILARITY_THRESHOLD = 0.3

ABOUT_PREFIX = "about:"
ABOUT_DEFAULTS: Dict[str, str] = {
    "creator": "the air project",
    "version": settings.VERSION,
    "description": "I am air, an AI agent with local and cloud model fallback",
    "repository": "https://github.com/air-agent/air",
}


@dataclass
class ConversationTurn:
    """A stored exchange, detached from the ORM session."""
    user_input: str
    ai_response: str
    model_used: str
    created_at: Optional[datetime] = None


def learning_pattern_key(error_type: str, prompt: str) -> str:
    """Key "{error_type}:{bucket}" with the prompt length rounded down to 100."""
    return f"{error_type}:{len(prompt) // 100 * 100}"


def classify_error(error: str) -> str:
    """Bucket an error message into timeout / api_error / model_error / general_error."""
    lowered = error.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "timeout"
    if re.search(r"\bapi\b", lowered):
        return "api_error"
    if "model" in lowered:
        return "model_error"
    return "general_error"


def compress_text(text: str, limit: int, keep: int) -> str:
    if len(text) > limit:
        return text[:keep] + TRUNCATION_MARKER
    return text


class MemoryStore(ABC):
    """The storage capability the orchestrator and tools depend on."""

    @abstractmethod
    async def append_conversation(self, user_input: str, ai_response: str, model_used: str) -> None:
        """Append one exchange to the conversation log."""

    @abstractmethod
    async def get_recent_conversations(self, limit: int) -> List[ConversationTurn]:
        """The `limit` most recent exchanges, oldest first."""

    @abstractmethod
    async def get(self, key: str, scope: MemoryScope = MemoryScope.PERSISTENT) -> Optional[str]:
        """Read a key/value entry."""

    @abstractmethod
    async def set(self, key: str, value: str, scope: MemoryScope = MemoryScope.PERSISTENT) -> None:
        """Create or overwrite a key/value entry."""

    @abstractmethod
    async def log_mistake(self, user_input: str, error_message: str, context: Optional[str] = None) -> None:
        """Record a failed query."""

    @abstractmethod
    async def increment_learning_pattern(self, pattern_key: str, success: bool) -> None:
        """Bump the success or mistake counter for a pattern."""

    @abstractmethod
    async def get_mistake_insights(self, prompt: str) -> List[str]:
        """Warnings about past failures of similar queries."""


class SQLMemoryStore(MemoryStore):
    """
    SQLAlchemy-backed memory store.

    Args:
        session_factory: sessionmaker bound to an engine whose tables exist
        reset_session: Clear session-scoped data on construction
    """

    def __init__(self, session_factory: sessionmaker, reset_session: bool = True):
        self._session_factory = session_factory
        if reset_session:
            self._reset_session_data()
        self._seed_about()

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, reset_session: bool = True) -> "SQLMemoryStore":
        engine = create_memory_engine(config or settings)
        return cls(create_session_factory(engine), reset_session=reset_session)

    # ---------------------------------------------------------------------------
    # SESSION HELPERS
    # ---------------------------------------------------------------------------

    def _run(self, work, *, commit: bool = False):
        """Run `work(session)` in a fresh session, translating DB errors."""
        session: Session = self._session_factory()
        try:
            result = work(session)
            if commit:
                session.commit()
            return result
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Memory store operation failed: {e}")
            raise MemoryStoreError(str(e)) from e
        finally:
            session.close()

    def _reset_session_data(self) -> None:
        def work(session: Session):
            session.execute(delete(Conversation))
            session.execute(delete(MemoryEntry).where(MemoryEntry.scope == MemoryScope.SESSION.value))

        self._run(work, commit=True)
        logger.debug("Session memory cleared")

    def _seed_about(self) -> None:
        for key, value in ABOUT_DEFAULTS.items():
            if self._get_sync(ABOUT_PREFIX + key, MemoryScope.PERSISTENT) is None:
                self._set_sync(ABOUT_PREFIX + key, value, MemoryScope.PERSISTENT)

    # ---------------------------------------------------------------------------
    # CONVERSATIONS
    # ---------------------------------------------------------------------------

    async def append_conversation(self, user_input: str, ai_response: str, model_used: str) -> None:
        await asyncio.to_thread(self._append_conversation_sync, user_input, ai_response, model_used)

    def _append_conversation_sync(self, user_input: str, ai_response: str, model_used: str) -> None:
        def work(session: Session):
            session.add(Conversation(
                user_input=compress_text(user_input, MAX_INPUT_CHARS, KEPT_INPUT_CHARS),
                ai_response=compress_text(ai_response, MAX_RESPONSE_CHARS, KEPT_RESPONSE_CHARS),
                model_used=model_used,
            ))

        self._run(work, commit=True)

    async def get_recent_conversations(self, limit: int) -> List[ConversationTurn]:
        return await asyncio.to_thread(self._get_recent_conversations_sync, limit)

    def _get_recent_conversations_sync(self, limit: int) -> List[ConversationTurn]:
        if self._count_conversations() > CONVERSATION_CLEANUP_THRESHOLD:
            self._trim_conversations(CONVERSATION_KEEP_COUNT)

        def work(session: Session):
            rows = session.scalars(
                select(Conversation).order_by(Conversation.id.desc()).limit(limit)
            ).all()
            return [
                ConversationTurn(
                    user_input=row.user_input,
                    ai_response=row.ai_response,
                    model_used=row.model_used,
                    created_at=row.created_at,
                )
                for row in rows
            ]

        turns = self._run(work)
        # Queried newest first, presented oldest first
        turns.reverse()
        return turns

    async def search_conversations(self, query: str, limit: int = 5) -> List[ConversationTurn]:
        """Stored exchanges containing any word of `query`, newest first."""
        return await asyncio.to_thread(self._search_conversations_sync, query, limit)

    def _search_conversations_sync(self, query: str, limit: int) -> List[ConversationTurn]:
        words = [w for w in re.findall(r"\w+", query.lower()) if len(w) > 2]
        if not words:
            return []

        def work(session: Session):
            rows = session.scalars(select(Conversation).order_by(Conversation.id.desc())).all()
            matches = []
            for row in rows:
                haystack = f"{row.user_input} {row.ai_response}".lower()
                if any(word in haystack for word in words):
                    matches.append(ConversationTurn(row.user_input, row.ai_response, row.model_used, row.created_at))
                if len(matches) >= limit:
                    break
            return matches

        return self._run(work)

    def _count_conversations(self) -> int:
        return self._run(lambda session: session.scalar(select(func.count(Conversation.id))) or 0)

    def _trim_conversations(self, keep: int) -> int:
        def work(session: Session):
            keep_ids = select(Conversation.id).order_by(Conversation.id.desc()).limit(keep)
            result = session.execute(
                delete(Conversation).where(Conversation.id.not_in(keep_ids))
            )
            return result.rowcount or 0

        removed = self._run(work, commit=True)
        if removed:
            logger.info(f"Trimmed {removed} old conversations")
        return removed

    # ---------------------------------------------------------------------------
    # KEY / VALUE
    # ---------------------------------------------------------------------------

    async def get(self, key: str, scope: MemoryScope = MemoryScope.PERSISTENT) -> Optional[str]:
        return await asyncio.to_thread(self._get_sync, key, scope)

    def _get_sync(self, key: str, scope: MemoryScope) -> Optional[str]:
        def work(session: Session):
            return session.scalar(
                select(MemoryEntry.value).where(
                    MemoryEntry.scope == MemoryScope(scope).value,
                    MemoryEntry.key == key,
                )
            )

        return self._run(work)

    async def set(self, key: str, value: str, scope: MemoryScope = MemoryScope.PERSISTENT) -> None:
        await asyncio.to_thread(self._set_sync, key, value, scope)

    def _set_sync(self, key: str, value: str, scope: MemoryScope) -> None:
        scope_value = MemoryScope(scope).value

        def work(session: Session):
            entry = session.scalar(
                select(MemoryEntry).where(MemoryEntry.scope == scope_value, MemoryEntry.key == key)
            )
            if entry is None:
                session.add(MemoryEntry(scope=scope_value, key=key, value=value))
            else:
                entry.value = value

        self._run(work, commit=True)

    async def get_preference(self, key: str) -> Optional[str]:
        return await self.get(key, MemoryScope.PREFERENCE)

    async def set_preference(self, key: str, value: str) -> None:
        await self.set(key, value, MemoryScope.PREFERENCE)

    async def get_about(self) -> Dict[str, str]:
        """Agent identity facts (creator, version, description, repository)."""
        return await asyncio.to_thread(self._get_about_sync)

    def _get_about_sync(self) -> Dict[str, str]:
        def work(session: Session):
            rows = session.scalars(
                select(MemoryEntry).where(
                    MemoryEntry.scope == MemoryScope.PERSISTENT.value,
                    MemoryEntry.key.startswith(ABOUT_PREFIX),
                )
            ).all()
            return {row.key[len(ABOUT_PREFIX):]: row.value for row in rows}

        return self._run(work)

    # ---------------------------------------------------------------------------
    # MISTAKES
    # ---------------------------------------------------------------------------

    async def log_mistake(self, user_input: str, error_message: str, context: Optional[str] = None) -> None:
        await asyncio.to_thread(self._log_mistake_sync, user_input, error_message, context)

    def _log_mistake_sync(self, user_input: str, error_message: str, context: Optional[str]) -> None:
        def work(session: Session):
            session.add(Mistake(user_input=user_input, error_message=error_message, context=context))

        self._run(work, commit=True)

    async def mark_mistakes_learned(self, user_input: str) -> int:
        """Flag unlearned mistakes for this exact input as learned."""
        return await asyncio.to_thread(self._mark_mistakes_learned_sync, user_input)

    def _mark_mistakes_learned_sync(self, user_input: str) -> int:
        def work(session: Session):
            mistakes = session.scalars(
                select(Mistake).where(Mistake.user_input == user_input, Mistake.learned.is_(False))
            ).all()
            for mistake in mistakes:
                mistake.learned = True
            return len(mistakes)

        return self._run(work, commit=True)

    async def get_mistake_insights(self, prompt: str) -> List[str]:
        return await asyncio.to_thread(self._get_mistake_insights_sync, prompt)

    def _get_mistake_insights_sync(self, prompt: str) -> List[str]:
        def work(session: Session):
            return session.scalars(
                select(Mistake)
                .where(Mistake.learned.is_(False))
                .order_by(Mistake.id.desc())
                .limit(MISTAKE_SCAN_LIMIT)
            ).all()

        insights = []
        for mistake in self._run(work):
            if jaccard_similarity(prompt, mistake.user_input) <= MISTAKE_SIMILARITY_THRESHOLD:
                continue
            insight = f"Similar query '{mistake.user_input}' failed with: {mistake.error_message}"
            if mistake.context:
                insight += f" (Context: {mistake.context})"
            insights.append(insight)
        return insights

    async def record_query_error(self, user_input: str, error: str) -> str:
        """
        Log a failed query and count it against its learning pattern.

        Returns:
            The error type the message was classified as
        """
        error_type = classify_error(error)
        await self.log_mistake(user_input, error, context=error_type)
        await self.increment_learning_pattern(learning_pattern_key(error_type, user_input), success=False)
        return error_type

    # ---------------------------------------------------------------------------
    # LEARNING PATTERNS
    # ---------------------------------------------------------------------------

    async def increment_learning_pattern(self, pattern_key: str, success: bool) -> None:
        await asyncio.to_thread(self._increment_learning_pattern_sync, pattern_key, success)

    def _increment_learning_pattern_sync(self, pattern_key: str, success: bool) -> None:
        def work(session: Session):
            pattern = session.scalar(select(LearningPattern).where(LearningPattern.pattern_key == pattern_key))
            if pattern is None:
                pattern = LearningPattern(pattern_key=pattern_key, mistake_count=0, success_count=0)
                session.add(pattern)
            if success:
                pattern.success_count += 1
            else:
                pattern.mistake_count += 1
            pattern.last_seen = datetime.now(timezone.utc)

        self._run(work, commit=True)

    async def list_learning_patterns(self) -> List[Tuple[str, int, int]]:
        """(pattern_key, mistake_count, success_count), most mistakes first."""
        return await asyncio.to_thread(self._list_learning_patterns_sync)

    def _list_learning_patterns_sync(self) -> List[Tuple[str, int, int]]:
        def work(session: Session):
            rows = session.scalars(
                select(LearningPattern).order_by(LearningPattern.mistake_count.desc(), LearningPattern.pattern_key)
            ).all()
            return [(row.pattern_key, row.mistake_count, row.success_count) for row in rows]

        return self._run(work)

    async def get_learning_insights(self) -> Tuple[int, int, float]:
        """(total mistakes, total successes, success rate) across all patterns."""
        patterns = await self.list_learning_patterns()
        mistakes = sum(p[1] for p in patterns)
        successes = sum(p[2] for p in patterns)
        total = mistakes + successes
        rate = successes / total if total else 0.0
        return mistakes, successes, rate

    # ---------------------------------------------------------------------------
    # MAINTENANCE
    # ---------------------------------------------------------------------------

    async def perform_maintenance(self) -> Dict[str, int]:
        """Trim old conversations and drop learned mistakes."""
        return await asyncio.to_thread(self._perform_maintenance_sync)

    def _perform_maintenance_sync(self) -> Dict[str, int]:
        trimmed = 0
        if self._count_conversations() > CONVERSATION_KEEP_COUNT:
            trimmed = self._trim_conversations(CONVERSATION_KEEP_COUNT)

        def work(session: Session):
            result = session.execute(delete(Mistake).where(Mistake.learned.is_(True)))
            return result.rowcount or 0

        removed_mistakes = self._run(work, commit=True)
        logger.info(f"Maintenance: trimmed {trimmed} conversations, removed {removed_mistakes} learned mistakes")
        return {"conversations_trimmed": trimmed, "mistakes_removed": removed_mistakes}
