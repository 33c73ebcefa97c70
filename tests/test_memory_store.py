"""
Tests for SQLMemoryStore.

Each test runs against a fresh in-memory SQLite database.
"""

import pytest

from air.memory.store import (
    ABOUT_DEFAULTS,
    SQLMemoryStore,
    classify_error,
    compress_text,
    learning_pattern_key,
)
from air.models import MemoryScope


class TestHelpers:
    """Tests for module-level helpers."""

    def test_learning_pattern_key_buckets_length(self):
        """Test prompts are bucketed by hundreds of characters."""
        assert learning_pattern_key("timeout", "x" * 250) == "timeout:200"
        assert learning_pattern_key("none", "short") == "none:0"

    def test_classify_error(self):
        """Test error messages map onto coarse error types."""
        assert classify_error("Request timeout after 30s") == "timeout"
        assert classify_error("OpenAI API returned 500") == "api_error"
        assert classify_error("model not found") == "model_error"
        assert classify_error("disk full") == "general_error"

    def test_compress_text(self):
        """Test long text keeps its head plus a marker."""
        assert compress_text("short", 500, 200) == "short"
        compressed = compress_text("a" * 600, 500, 200)
        assert compressed == "a" * 200 + "... (truncated)"


class TestConversations:
    """Tests for the conversation log."""

    @pytest.mark.asyncio
    async def test_recent_conversations_are_chronological(self, memory_store):
        """Test the newest N turns come back oldest first."""
        for i in range(5):
            await memory_store.append_conversation(f"question {i}", f"answer {i}", "m")

        turns = await memory_store.get_recent_conversations(3)

        assert [t.user_input for t in turns] == ["question 2", "question 3", "question 4"]

    @pytest.mark.asyncio
    async def test_long_exchanges_are_compressed(self, memory_store):
        """Test stored input and response are truncated."""
        await memory_store.append_conversation("q" * 600, "r" * 1200, "m")

        turn = (await memory_store.get_recent_conversations(1))[0]

        assert turn.user_input.endswith("... (truncated)")
        assert len(turn.user_input) == 200 + len("... (truncated)")
        assert len(turn.ai_response) == 500 + len("... (truncated)")

    @pytest.mark.asyncio
    async def test_session_reset_clears_conversations(self, session_factory):
        """Test a new store starts with an empty conversation log."""
        first = SQLMemoryStore(session_factory)
        await first.append_conversation("hello", "hi", "m")
        await first.set("name", "Ada", MemoryScope.PERSISTENT)

        second = SQLMemoryStore(session_factory)

        assert await second.get_recent_conversations(10) == []
        assert await second.get("name") == "Ada"

    @pytest.mark.asyncio
    async def test_reopen_without_reset_keeps_conversations(self, session_factory):
        """Test reset_session=False leaves the previous session intact."""
        first = SQLMemoryStore(session_factory)
        await first.append_conversation("hello", "hi", "m")

        second = SQLMemoryStore(session_factory, reset_session=False)

        assert [turn.user_input for turn in await second.get_recent_conversations(10)] == ["hello"]

    @pytest.mark.asyncio
    async def test_search_conversations(self, memory_store):
        """Test keyword search over stored exchanges, newest first."""
        await memory_store.append_conversation("tell me about rust", "Rust is a language", "m")
        await memory_store.append_conversation("weather today", "Sunny", "m")
        await memory_store.append_conversation("rust ownership", "Borrowing rules", "m")

        matches = await memory_store.search_conversations("rust")

        assert [m.user_input for m in matches] == ["rust ownership", "tell me about rust"]

    @pytest.mark.asyncio
    async def test_maintenance_trims_and_removes_learned(self, memory_store, monkeypatch):
        """Test maintenance keeps recent conversations and drops learned mistakes."""
        monkeypatch.setattr("air.memory.store.CONVERSATION_KEEP_COUNT", 2)
        for i in range(4):
            await memory_store.append_conversation(f"q{i}", f"a{i}", "m")
        await memory_store.log_mistake("q1", "timeout")
        await memory_store.mark_mistakes_learned("q1")

        result = await memory_store.perform_maintenance()

        assert result == {"conversations_trimmed": 2, "mistakes_removed": 1}
        turns = await memory_store.get_recent_conversations(10)
        assert [t.user_input for t in turns] == ["q2", "q3"]


class TestKeyValue:
    """Tests for scoped key/value memory."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_store):
        """Test values round-trip and scopes are independent."""
        await memory_store.set("color", "blue")
        await memory_store.set("color", "green", MemoryScope.SESSION)

        assert await memory_store.get("color") == "blue"
        assert await memory_store.get("color", MemoryScope.SESSION) == "green"
        assert await memory_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_set_overwrites(self, memory_store):
        """Test setting an existing key updates it in place."""
        await memory_store.set_preference("response_style", "brief")
        await memory_store.set_preference("response_style", "detailed")

        assert await memory_store.get_preference("response_style") == "detailed"

    @pytest.mark.asyncio
    async def test_about_facts_are_seeded(self, memory_store):
        """Test identity facts exist on a fresh database."""
        about = await memory_store.get_about()

        assert about["creator"] == ABOUT_DEFAULTS["creator"]
        assert set(about) == set(ABOUT_DEFAULTS)


class TestMistakes:
    """Tests for mistake logging and insights."""

    @pytest.mark.asyncio
    async def test_insights_for_similar_prompt(self, memory_store):
        """Test a similar past failure produces a warning line."""
        await memory_store.log_mistake("summarize the rust book", "timeout", context="timeout")

        insights = await memory_store.get_mistake_insights("summarize the rust book please")

        assert insights == [
            "Similar query 'summarize the rust book' failed with: timeout (Context: timeout)"
        ]

    @pytest.mark.asyncio
    async def test_no_insights_for_unrelated_prompt(self, memory_store):
        """Test dissimilar failures are not reported."""
        await memory_store.log_mistake("summarize the rust book", "timeout")

        assert await memory_store.get_mistake_insights("what's the weather") == []

    @pytest.mark.asyncio
    async def test_learned_mistakes_are_hidden(self, memory_store):
        """Test mistakes flagged as learned stop producing insights."""
        await memory_store.log_mistake("deploy the app", "api error")

        assert await memory_store.mark_mistakes_learned("deploy the app") == 1
        assert await memory_store.get_mistake_insights("deploy the app") == []

    @pytest.mark.asyncio
    async def test_record_query_error(self, memory_store):
        """Test a failed query is logged and counted against its pattern."""
        error_type = await memory_store.record_query_error("hello", "Request timeout")

        assert error_type == "timeout"
        assert await memory_store.list_learning_patterns() == [("timeout:0", 1, 0)]


class TestLearningPatterns:
    """Tests for learning counters."""

    @pytest.mark.asyncio
    async def test_increment_counts(self, memory_store):
        """Test success and mistake counters per pattern key."""
        await memory_store.increment_learning_pattern("none:0", success=True)
        await memory_store.increment_learning_pattern("none:0", success=True)
        await memory_store.increment_learning_pattern("timeout:0", success=False)

        mistakes, successes, rate = await memory_store.get_learning_insights()

        assert (mistakes, successes) == (1, 2)
        assert rate == pytest.approx(2 / 3)

    @pytest.mark.asyncio
    async def test_empty_insights(self, memory_store):
        """Test no patterns means a zero success rate."""
        assert await memory_store.get_learning_insights() == (0, 0, 0.0)
