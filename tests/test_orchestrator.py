"""
Tests for QueryOrchestrator.

This module tests:
- Auto mode: local first, second opinion, cloud failover, fallback
- Strict local modes raising instead of degrading
- Cloud-only mode and the cache fallback
- Tool pass-through and tool-result analysis
- Learning counters and conversation recording
- The ReAct-style agent loop

All providers are FakeProviders; nothing touches the network.
"""

import asyncio
import time
from unittest.mock import AsyncMock, patch

import pytest

from air.ai.providers.base import ModelResponse, ProviderKind
from air.ai.router import QueryMode
from air.core.exceptions import ProviderUnavailableError, TransientProviderError
from air.tools import CalculatorTool, ToolManager, create_tool_manager
from tests.conftest import FakeProvider


LOCAL_LABEL = "🏠 Local Model Response:\n"


def local_provider(**kwargs) -> FakeProvider:
    kwargs.setdefault("name", "local")
    kwargs.setdefault("quality", 0.7)
    return FakeProvider(kind=ProviderKind.LOCAL, **kwargs)


class TestAutoMode:
    """Tests for the default routing mode."""

    @pytest.mark.asyncio
    async def test_no_providers_degrades_to_default_fallback(self, make_orchestrator, memory_store):
        """Test Auto mode never raises, even with nothing configured."""
        orchestrator = make_orchestrator([])

        response = await orchestrator.process("tell me a joke")

        assert response.model_used == "Fallback-Default"
        assert response.confidence_score == 0.1
        assert "Your query was: 'tell me a joke'" in response.content
        assert await memory_store.get_recent_conversations(10) == []
        assert await memory_store.list_learning_patterns() == [("general_error:0", 1, 0)]

    @pytest.mark.asyncio
    async def test_confident_local_answer_is_kept(self, make_orchestrator):
        """Test a good local answer skips the cloud entirely."""
        local = local_provider(content="Local answer that is clearly long enough to be trusted fully.")
        cloud = FakeProvider(name="cloud-a")
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke")

        assert response.content == LOCAL_LABEL + "Local answer that is clearly long enough to be trusted fully."
        assert cloud.calls == 0

    @pytest.mark.asyncio
    async def test_weak_local_answer_gets_cloud_second_opinion(self, make_orchestrator):
        """Test a local answer without confidence is replaced by a better cloud answer."""
        local = local_provider(confidence=None)
        cloud = FakeProvider(name="cloud-a", content="Cloud answer", confidence=0.95)
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke")

        assert response.content == "☁️  cloud-a Response:\nCloud answer"
        assert local.calls == 1

    @pytest.mark.asyncio
    async def test_cloud_must_beat_local_by_margin(self, make_orchestrator):
        """Test the local answer stays when the cloud is only marginally better."""
        local = local_provider(content="Short.", confidence=0.85)
        cloud = FakeProvider(name="cloud-a", content="Cloud answer", confidence=0.9)
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke")

        assert response.content == LOCAL_LABEL + "Short."
        assert cloud.calls == 1

    @pytest.mark.asyncio
    async def test_weak_local_kept_when_cloud_unavailable(self, make_orchestrator):
        """Test a weak local answer beats no answer."""
        local = local_provider(content="I'm not sure.", confidence=0.4)
        orchestrator = make_orchestrator([local])

        response = await orchestrator.process("tell me a joke")

        assert response.content == LOCAL_LABEL + "I'm not sure."

    @pytest.mark.asyncio
    async def test_local_failure_fails_over_to_cloud(self, make_orchestrator):
        """Test a local error moves on to the cloud race."""
        local = local_provider(script=[TransientProviderError("ollama down")])
        cloud = FakeProvider(name="cloud-a", content="From the cloud")
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke")

        assert response.content == "☁️  cloud-a Response:\nFrom the cloud"
        assert local.calls == 1

    @pytest.mark.asyncio
    async def test_local_timeout_is_not_cancelled(self, make_orchestrator):
        """Test a slow local call is abandoned but still allowed to finish."""
        local = local_provider(delay=0.5)
        cloud = FakeProvider(name="cloud-a", content="Fast cloud")
        orchestrator = make_orchestrator([local, cloud])

        start = time.monotonic()
        response = await orchestrator.process("tell me a joke")
        elapsed = time.monotonic() - start

        assert response.content == "☁️  cloud-a Response:\nFast cloud"
        assert elapsed < 0.5

        await asyncio.sleep(0.5)
        assert local.metrics.successful_requests == 1

    @pytest.mark.asyncio
    async def test_cancelled_query_still_drains_local_call(self, make_orchestrator, test_settings):
        """Test cancelling the caller leaves the local call running and drained."""
        local = local_provider(delay=0.5)
        config = test_settings.model_copy(update={"LOCAL_TIMEOUT_SECONDS": 5.0})
        orchestrator = make_orchestrator([local], config=config)

        with patch("air.ai.router.orchestrator._drain_abandoned") as drain:
            query = asyncio.ensure_future(orchestrator.process("tell me a joke"))
            await asyncio.sleep(0.1)
            query.cancel()
            with pytest.raises(asyncio.CancelledError):
                await query
            await asyncio.sleep(0.6)

        assert drain.call_count == 1
        assert local.metrics.successful_requests == 1

    @pytest.mark.asyncio
    async def test_providers_receive_enriched_prompt(self, make_orchestrator):
        """Test the prompt sent to providers carries identity and the raw query."""
        cloud = FakeProvider(name="cloud-a")
        orchestrator = make_orchestrator([cloud])

        await orchestrator.process("tell me a joke")

        sent = cloud.prompts[0]
        assert sent.startswith("Identity: You are 'air'")
        assert sent.endswith("User Query: tell me a joke")


class TestStrictLocalModes:
    """Tests for LOCAL_ONLY and PURE_LOCAL."""

    @pytest.mark.asyncio
    async def test_local_only_without_local_model(self, make_orchestrator):
        """Test a missing local model is an error, not a fallback."""
        orchestrator = make_orchestrator([FakeProvider(name="cloud-a")])

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await orchestrator.process("tell me a joke", mode=QueryMode.LOCAL_ONLY)

        assert "air setup --local" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_local_only_failure_propagates_and_is_recorded(self, make_orchestrator, memory_store):
        """Test local errors are raised and counted as mistakes."""
        local = local_provider(script=[TransientProviderError("model crashed")])
        cloud = FakeProvider(name="cloud-a")
        orchestrator = make_orchestrator([local, cloud])

        with pytest.raises(TransientProviderError):
            await orchestrator.process("tell me a joke", mode=QueryMode.LOCAL_ONLY)

        assert cloud.calls == 0
        assert await memory_store.list_learning_patterns() == [("model_error:0", 1, 0)]

    @pytest.mark.asyncio
    async def test_local_only_keeps_weak_answer(self, make_orchestrator):
        """Test no second opinion is sought in local-only mode."""
        local = local_provider(content="Short.", confidence=None)
        cloud = FakeProvider(name="cloud-a")
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke", mode=QueryMode.LOCAL_ONLY)

        assert response.content == LOCAL_LABEL + "Short."
        assert cloud.calls == 0

    @pytest.mark.asyncio
    async def test_pure_mode_has_no_label(self, make_orchestrator):
        """Test pure mode returns the raw model output."""
        local = local_provider(content="4")
        orchestrator = make_orchestrator([local])

        response = await orchestrator.process("tell me a joke", mode="pure")

        assert response.content == "4"


class TestCloudOnlyMode:
    """Tests for CLOUD_ONLY."""

    @pytest.mark.asyncio
    async def test_local_is_never_asked(self, make_orchestrator):
        """Test cloud-only skips the local provider."""
        local = local_provider()
        cloud = FakeProvider(name="cloud-a", content="Cloud")
        orchestrator = make_orchestrator([local, cloud])

        response = await orchestrator.process("tell me a joke", mode=QueryMode.CLOUD_ONLY)

        assert response.content == "☁️  cloud-a Response:\nCloud"
        assert local.calls == 0

    @pytest.mark.asyncio
    async def test_total_failure_uses_cached_answer(self, make_orchestrator, memory_store, sleep_recorder):
        """Test a similar past exchange is replayed when every provider fails."""
        await memory_store.append_conversation("what is the capital of France", "Paris.", "m")
        cloud = FakeProvider(name="cloud-a", script=[TransientProviderError("503")] * 3)
        orchestrator = make_orchestrator([cloud])

        response = await orchestrator.process("what's the capital of France", mode=QueryMode.CLOUD_ONLY)

        assert response.model_used == "Fallback-Cache"
        assert response.content.endswith("Paris.")
        assert cloud.calls == 3
        assert sleep_recorder.calls == [1.0, 2.0]


class TestToolRouting:
    """Tests for the tool check before any model call."""

    @pytest.mark.asyncio
    async def test_raw_tool_result_is_returned_directly(self, make_orchestrator, tmp_path):
        """Test filesystem output bypasses the models."""
        (tmp_path / "notes.md").write_text("remember the milk")
        cloud = FakeProvider(name="cloud-a")
        orchestrator = make_orchestrator([cloud], tools=create_tool_manager(root=tmp_path))

        response = await orchestrator.process("read file notes.md")

        assert response.content == "🔧 Tool Result (filesystem): \n\nremember the milk"
        assert response.model_used == "Tool-filesystem"
        assert response.confidence_score == 1.0
        assert cloud.calls == 0

    @pytest.mark.asyncio
    async def test_analysis_tool_gets_model_pass(self, make_orchestrator):
        """Test calculator output is explained by a model."""
        tools = ToolManager()
        tools.register(CalculatorTool())
        cloud = FakeProvider(name="cloud-a", content="Eight.", confidence=0.95)
        orchestrator = make_orchestrator([cloud], tools=tools)

        response = await orchestrator.process("what is 5 + 3")

        assert response.content == "🔧 Tool Result:\n5 + 3 = 8\n\n🤖 AI Analysis:\nEight."
        assert cloud.prompts[0].startswith("Based on this tool result: 5 + 3 = 8")

    @pytest.mark.asyncio
    async def test_analysis_without_models_shows_tool_result(self, make_orchestrator):
        """Test the raw tool result is used when no model can analyze it."""
        tools = ToolManager()
        tools.register(CalculatorTool())
        orchestrator = make_orchestrator([], tools=tools)

        response = await orchestrator.process("what is 5 + 3")

        assert response.content == "🔧 Tool Result (calculator): \n\n5 + 3 = 8"
        assert response.model_used == "Tool-calculator"

    @pytest.mark.asyncio
    async def test_failed_tool_falls_through_to_model(self, make_orchestrator, tmp_path):
        """Test a tool error is not fatal."""
        cloud = FakeProvider(name="cloud-a", content="I could not find that file.")
        orchestrator = make_orchestrator([cloud], tools=create_tool_manager(root=tmp_path))

        response = await orchestrator.process("read file missing.md")

        assert response.content.endswith("I could not find that file.")
        assert cloud.prompts[0].endswith("User Query: read file missing.md")

    @pytest.mark.asyncio
    async def test_unregistered_tool_falls_through(self, make_orchestrator):
        """Test recognized but unavailable tools answer with a model."""
        cloud = FakeProvider(name="cloud-a", content="No screenshots here.")
        orchestrator = make_orchestrator([cloud])

        response = await orchestrator.process("take a screenshot")

        assert response.content.endswith("No screenshots here.")

    @pytest.mark.asyncio
    async def test_tools_can_be_disabled(self, make_orchestrator):
        """Test use_tools=False sends even tool-like queries to the model."""
        tools = ToolManager()
        tools.register(CalculatorTool())
        cloud = FakeProvider(name="cloud-a", content="Eight")
        orchestrator = make_orchestrator([cloud], tools=tools)

        response = await orchestrator.process("what is 5 + 3", use_tools=False)

        assert response.content == "☁️  cloud-a Response:\nEight"

    @pytest.mark.asyncio
    async def test_deeply_nested_math_falls_through(self, make_orchestrator, tmp_path):
        """Test an expression too deep to evaluate still gets an answer."""
        orchestrator = make_orchestrator([], tools=create_tool_manager(root=tmp_path))

        response = await orchestrator.process("calculate " + "+".join(["1"] * 3000))

        assert response.model_used == "Fallback-Default"

    @pytest.mark.asyncio
    async def test_crashing_tool_falls_through(self, make_orchestrator):
        """Test unexpected tool exceptions are treated as tool failures."""
        tools = ToolManager()
        tools.register(CalculatorTool())
        tools.execute = AsyncMock(side_effect=RuntimeError("tool blew up"))
        cloud = FakeProvider(name="cloud-a", content="Eight")
        orchestrator = make_orchestrator([cloud], tools=tools)

        response = await orchestrator.process("what is 5 + 3")

        assert response.content == "☁️  cloud-a Response:\nEight"


class TestLearning:
    """Tests for the Done state bookkeeping."""

    @pytest.mark.asyncio
    async def test_success_is_recorded(self, make_orchestrator, memory_store):
        """Test live answers are logged unlabeled and counted as successes."""
        cloud = FakeProvider(name="cloud-a", content="Here is a joke.")
        orchestrator = make_orchestrator([cloud])

        await orchestrator.process("tell me a joke")

        turns = await memory_store.get_recent_conversations(1)
        assert turns[0].user_input == "tell me a joke"
        assert turns[0].ai_response == "Here is a joke."
        assert turns[0].model_used == "cloud-a-model"
        assert await memory_store.list_learning_patterns() == [("none:0", 0, 1)]

    @pytest.mark.asyncio
    async def test_success_marks_past_mistakes_learned(self, make_orchestrator, memory_store):
        """Test a successful retry of a failed query clears its warning."""
        await memory_store.log_mistake("tell me a joke", "timeout")
        orchestrator = make_orchestrator([FakeProvider(name="cloud-a")])

        await orchestrator.process("tell me a joke")

        assert await memory_store.get_mistake_insights("tell me a joke") == []

    @pytest.mark.asyncio
    async def test_get_stats(self, make_orchestrator):
        """Test stats combine provider, query and learning numbers."""
        orchestrator = make_orchestrator([FakeProvider(name="cloud-a")])
        await orchestrator.process("tell me a joke")

        stats = await orchestrator.get_stats()

        assert stats["providers"]["cloud-a"]["successful_requests"] == 1
        assert stats["queries"]["total_queries"] == 1
        assert stats["learning"] == {"mistakes": 0, "successes": 1, "success_rate": 1.0}
        assert len(stats["recent"]) == 1
        assert stats["recent"][0]["source"] == "cloud"


class TestSecondOpinionHeuristic:
    """Tests for needs_second_opinion()."""

    @pytest.mark.parametrize(
        "content, confidence, expected",
        [
            ("A thorough explanation that easily clears the minimum length bar.", 0.9, False),
            ("A thorough explanation that easily clears the minimum length bar.", None, True),
            ("Too short.", 0.9, True),
            ("Honestly I don't know the answer to that question, sorry about it.", 0.9, True),
        ],
    )
    def test_heuristic(self, make_orchestrator, content, confidence, expected):
        """Test confidence, length and hedging checks."""
        orchestrator = make_orchestrator([])
        response = ModelResponse(content=content, model_used="m", confidence_score=confidence)

        assert orchestrator.needs_second_opinion(response) is expected


class TestAgentLoop:
    """Tests for run_agent_loop()."""

    @pytest.mark.asyncio
    async def test_model_requested_tool_call(self, make_orchestrator):
        """Test a JSON tool request is executed and fed back."""
        tools = ToolManager()
        tools.register(CalculatorTool())
        cloud = FakeProvider(
            name="cloud-a",
            script=[
                '{"tool": "calculator", "function": "calculate", "args": {"expression": "6 * 7"}}',
                "The answer is 42.",
            ],
        )
        orchestrator = make_orchestrator([cloud], tools=tools)

        response = await orchestrator.run_agent_loop("what is six times seven", mode=QueryMode.CLOUD_ONLY)

        assert response.content == "☁️  cloud-a Response:\nThe answer is 42."
        assert "Available Tools:" in cloud.prompts[0]
        assert "Tool 'calculator' (function 'calculate') executed." in cloud.prompts[1]
        assert '"6 * 7 = 42"' in cloud.prompts[1]

    @pytest.mark.asyncio
    async def test_failed_tool_call_is_reported_to_model(self, make_orchestrator):
        """Test tool errors are appended instead of aborting the loop."""
        cloud = FakeProvider(
            name="cloud-a",
            script=['{"tool": "screenshot", "function": "capture", "args": {}}', "Sorry, no screenshots."],
        )
        orchestrator = make_orchestrator([cloud])

        response = await orchestrator.run_agent_loop("grab my screen", mode=QueryMode.CLOUD_ONLY)

        assert response.content.endswith("Sorry, no screenshots.")
        assert "Tool execution failed: Unknown tool: screenshot" in cloud.prompts[1]

    @pytest.mark.asyncio
    async def test_step_limit(self, make_orchestrator):
        """Test the loop stops after max_steps tool turns plus one final answer."""
        call = '{"tool": "calculator", "function": "calculate", "args": {"expression": "1 + 1"}}'
        tools = ToolManager()
        tools.register(CalculatorTool())
        cloud = FakeProvider(name="cloud-a", content=call)
        orchestrator = make_orchestrator([cloud], tools=tools)

        await orchestrator.run_agent_loop("loop forever", mode=QueryMode.CLOUD_ONLY, max_steps=3)

        assert cloud.calls == 4

    @pytest.mark.asyncio
    async def test_step_limit_asks_for_final_answer(self, make_orchestrator):
        """Test an exhausted loop ends with one direct answer instead of raw JSON."""
        call = '{"tool": "calculator", "function": "calculate", "args": {"expression": "1 + 1"}}'
        tools = ToolManager()
        tools.register(CalculatorTool())
        cloud = FakeProvider(name="cloud-a", script=[call, call, "It is 2."])
        orchestrator = make_orchestrator([cloud], tools=tools)

        response = await orchestrator.run_agent_loop("add one and one", mode=QueryMode.CLOUD_ONLY, max_steps=2)

        assert cloud.calls == 3
        assert response.content == "☁️  cloud-a Response:\nIt is 2."
        assert "No more tool calls are possible" in cloud.prompts[2]

    @pytest.mark.asyncio
    async def test_zero_steps_is_a_single_answer(self, make_orchestrator, memory_store):
        """Test max_steps=0 makes exactly one model call and records it."""
        cloud = FakeProvider(name="cloud-a", content="Hello there.")
        orchestrator = make_orchestrator([cloud])

        response = await orchestrator.run_agent_loop("hello", mode=QueryMode.CLOUD_ONLY, max_steps=0)

        assert cloud.calls == 1
        assert response.content.endswith("Hello there.")
        assert len(await memory_store.get_recent_conversations(5)) == 1

    @pytest.mark.asyncio
    async def test_strict_mode_error_propagates(self, make_orchestrator):
        """Test strict local mode raises from the agent loop too."""
        orchestrator = make_orchestrator([FakeProvider(name="cloud-a")])

        with pytest.raises(ProviderUnavailableError):
            await orchestrator.run_agent_loop("hello", mode=QueryMode.LOCAL_ONLY)

    @pytest.mark.asyncio
    async def test_no_providers_degrades_to_fallback(self, make_orchestrator):
        """Test auto mode stays total inside the agent loop."""
        orchestrator = make_orchestrator([])

        response = await orchestrator.run_agent_loop("tell me a joke")

        assert response.model_used == "Fallback-Default"
