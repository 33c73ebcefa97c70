"""
Query Orchestrator - decides who answers a query, and what happens on failure.

This is the top-level policy of the agent. Every user query goes through
the same states:

    BuildingContext -> ToolCheck -> LocalAttempt -> QualityReconsider
                    -> CloudAttempt -> Fallback -> Done

Modes:
=====
- AUTO:       local first (under a timeout), second opinion from the cloud
              when the local answer looks weak, cloud race on local
              failure, fallback chain when everything failed. Never raises.
- LOCAL_ONLY: local provider only; any failure is raised to the caller.
- CLOUD_ONLY: cloud race only; total failure goes to the fallback chain.
- PURE_LOCAL: LOCAL_ONLY without presentation labels on the output.

Local timeouts do not cancel the provider call. The orchestrator stops
waiting, moves on, and a done-callback drains the abandoned call's result
so it is logged rather than lost.

Usage:
    orchestrator = create_orchestrator(settings)
    response = await orchestrator.process("what is 2+2")
    print(response.content)
"""

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from air.core.config import Settings, settings
from air.core.exceptions import (
    AirError,
    AllProvidersFailedError,
    MemoryStoreError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ToolExecutionError,
)
from air.ai.fallback.chain import FallbackChain
from air.ai.monitoring.monitor import AIMonitor, ai_monitor
from air.ai.providers.base import (
    ModelProvider,
    ModelResponse,
    ProviderKind,
    QueryContext,
)
from air.ai.providers.registry import ProviderRegistry
from air.ai.router.intent import ToolIntent, ToolIntentRouter
from air.ai.router.race import ParallelRace
from air.ai.router.react import parse_tool_call
from air.memory.enrichment import PromptEnricher
from air.memory.store import SQLMemoryStore, learning_pattern_key
from air.tools.base import ToolResult
from air.tools.manager import ToolManager

logger = logging.getLogger("air.ai.router")


class QueryMode(str, Enum):
    AUTO = "auto"
    LOCAL_ONLY = "local"
    CLOUD_ONLY = "cloud"
    PURE_LOCAL = "pure"


LOCAL_LABEL = "🏠 Local Model Response:\n"
CLOUD_LABEL = "☁️  {name} Response:\n"

HEDGING_PHRASES = ("i'm not sure", "i am not sure", "i don't know", "i do not know")

AGENT_MAX_STEPS = 5


@dataclass
class Outcome:
    """Terminal result of the model path, before presentation labels."""
    response: ModelResponse
    source: str
    provider: Optional[ModelProvider] = None
    error: Optional[Exception] = None


def _drain_abandoned(task: "asyncio.Task") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned local call finished with error: {error}")
    else:
        logger.debug("Abandoned local call finished after its timeout")


class QueryOrchestrator:
    """
    Routes queries across tools, the local model and cloud providers.

    All collaborators are injected; `create_orchestrator()` in air.agent
    wires the production set.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        memory: SQLMemoryStore,
        enricher: PromptEnricher,
        tools: ToolManager,
        race: ParallelRace,
        fallback: FallbackChain,
        intent_router: Optional[ToolIntentRouter] = None,
        config: Optional[Settings] = None,
        monitor: Optional[AIMonitor] = None,
    ):
        self.registry = registry
        self.memory = memory
        self.enricher = enricher
        self.tools = tools
        self.race = race
        self.fallback = fallback
        self.intent_router = intent_router or ToolIntentRouter()
        self.config = config or settings
        self.monitor = monitor or ai_monitor

    # ---------------------------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------------------------

    async def process(
        self,
        prompt: str,
        mode: QueryMode = QueryMode.AUTO,
        use_tools: bool = True,
    ) -> ModelResponse:
        """
        Answer one query.

        Args:
            prompt: Raw user input
            mode: Routing mode
            use_tools: Run the tool intent check first

        Returns:
            Exactly one ModelResponse (live, tool, or degraded fallback)

        Raises:
            ProviderError / AllProvidersFailedError: only in LOCAL_ONLY and
                PURE_LOCAL modes
        """
        mode = QueryMode(mode)
        request_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        self.monitor.track_request(request_id, prompt, mode.value)

        try:
            outcome = None
            if use_tools:
                outcome = await self._tool_check(request_id, prompt, mode)
            if outcome is None:
                enriched = await self._enrich(prompt)
                outcome = await self._answer(request_id, prompt, enriched, mode)
        except AirError as e:
            self.monitor.track_error(request_id, str(e), stage=mode.value)
            await self._record_failure(prompt, e)
            raise

        await self._record_outcome(prompt, outcome)
        response = self._present(outcome, pure_mode=mode == QueryMode.PURE_LOCAL)
        self.monitor.track_response(
            request_id=request_id,
            source=outcome.source,
            model=response.model_used,
            content=response.content,
            tokens=response.tokens_used,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return response

    async def run_agent_loop(
        self,
        prompt: str,
        mode: QueryMode = QueryMode.AUTO,
        max_steps: int = AGENT_MAX_STEPS,
    ) -> ModelResponse:
        """
        Let the model call tools itself, ReAct style.

        The model sees the tool descriptors and may answer with a JSON tool
        request. Each executed call (or its failure) is appended to the
        working prompt and the model is asked to continue. Stops at the
        first reply without a tool request, or when only the fallback chain
        could answer. After `max_steps` tool turns the model gets one final
        call asked to answer directly; `max_steps=0` is that call alone.

        Raises:
            Same as process(): only in LOCAL_ONLY and PURE_LOCAL modes
        """
        mode = QueryMode(mode)
        request_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        self.monitor.track_request(request_id, prompt, mode.value)

        tools_json = json.dumps(self.tools.describe(), indent=2)
        working = (
            f"{await self._enrich(prompt)}\n"
            f"\nAvailable Tools:\n{tools_json}\n"
            "\nTo use a tool, reply with only a JSON object: "
            '{"tool": "<name>", "function": "<function>", "args": {...}}. '
            "Otherwise, answer the user directly."
        )

        try:
            outcome = await self._agent_steps(request_id, prompt, working, mode, max(0, max_steps))
        except AirError as e:
            self.monitor.track_error(request_id, str(e), stage=mode.value)
            await self._record_failure(prompt, e)
            raise

        await self._record_outcome(prompt, outcome)
        response = self._present(outcome, pure_mode=mode == QueryMode.PURE_LOCAL)
        self.monitor.track_response(
            request_id=request_id,
            source=outcome.source,
            model=response.model_used,
            content=response.content,
            tokens=response.tokens_used,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return response

    async def _agent_steps(
        self,
        request_id: str,
        prompt: str,
        working: str,
        mode: QueryMode,
        max_steps: int,
    ) -> Outcome:
        for step in range(max_steps):
            outcome = await self._answer(request_id, prompt, working, mode)
            if outcome.source == "fallback":
                return outcome

            call = parse_tool_call(outcome.response.content)
            if call is None:
                return outcome

            self.monitor.track_event(request_id, "agent_tool_call", {"step": step, "tool": call.tool_name})
            try:
                result = await self.tools.execute(call.tool_name, call.function, call.arguments)
                working += (
                    f"\n\nTool '{call.tool_name}' (function '{call.function}') executed.\n"
                    f"Result: {json.dumps(result.result, default=str)}\n\n"
                    "Based on this result, continue."
                )
            except Exception as e:
                logger.warning(f"Agent tool call {call.tool_name}.{call.function} failed: {e}")
                working += f"\n\nTool execution failed: {e}\n"

        if max_steps:
            logger.warning(f"Agent loop reached {max_steps} steps, asking for a final answer")
            self.monitor.track_event(request_id, "agent_step_limit", {"steps": max_steps})
            working += "\n\nNo more tool calls are possible. Answer the user directly with what you have."
        return await self._answer(request_id, prompt, working, mode)

    def needs_second_opinion(self, response: ModelResponse) -> bool:
        """Heuristic: low confidence, very short, or hedging."""
        confidence = response.confidence_score or 0.0
        if confidence < self.config.QUALITY_CONFIDENCE_THRESHOLD:
            return True
        if len(response.content.strip()) < self.config.QUALITY_MIN_LENGTH:
            return True
        lowered = response.content.lower()
        return any(phrase in lowered for phrase in HEDGING_PHRASES)

    async def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "providers": self.registry.metrics(),
            "queries": self.monitor.get_stats(),
            "recent": self.monitor.get_recent(5),
        }
        mistakes, successes, rate = await self.memory.get_learning_insights()
        stats["learning"] = {
            "mistakes": mistakes,
            "successes": successes,
            "success_rate": round(rate, 3),
        }
        return stats

    async def _enrich(self, prompt: str) -> str:
        try:
            return await self.enricher.build(prompt)
        except MemoryStoreError as e:
            logger.error(f"Prompt enrichment failed, sending the raw prompt: {e}")
            return prompt

    # ---------------------------------------------------------------------------
    # TOOL CHECK
    # ---------------------------------------------------------------------------

    async def _tool_check(self, request_id: str, prompt: str, mode: QueryMode) -> Optional[Outcome]:
        intent = self.intent_router.detect(prompt)
        if intent is None:
            return None

        self.monitor.track_event(
            request_id, "tool_detected", {"tool": intent.tool_name, "function": intent.function}
        )
        tool = self.tools.get(intent.tool_name)
        if tool is None:
            logger.info(f"Tool '{intent.tool_name}' is not available, answering with a model")
            return None

        try:
            result = await self.tools.execute(intent.tool_name, intent.function, intent.arguments)
            if not result.success:
                raise ToolExecutionError(result.to_text(), intent.tool_name)
        except ToolExecutionError as e:
            logger.warning(f"Tool {intent.tool_name}.{intent.function} failed, falling through: {e}")
            return None
        except Exception as e:
            # Tool failures never end the query
            logger.exception(f"Tool {intent.tool_name}.{intent.function} crashed, falling through: {e}")
            return None

        if tool.returns_raw:
            return self._tool_outcome(intent, result)
        return await self._analyze_tool_result(request_id, prompt, intent, result, mode)

    def _tool_outcome(self, intent: ToolIntent, result: ToolResult) -> Outcome:
        return Outcome(
            response=ModelResponse(
                content=f"🔧 Tool Result ({intent.tool_name}): \n\n{result.to_text()}",
                model_used=f"Tool-{intent.tool_name}",
                confidence_score=1.0,
            ),
            source="tool",
        )

    async def _analyze_tool_result(
        self,
        request_id: str,
        prompt: str,
        intent: ToolIntent,
        result: ToolResult,
        mode: QueryMode,
    ) -> Outcome:
        """Feed a tool result back through a model; show the raw result if no model answers."""
        result_text = result.to_text()
        analysis_prompt = (
            f"Based on this tool result: {result_text}\n\n"
            f"Original query: {prompt}\n\n"
            "Please provide a helpful response:"
        )
        try:
            outcome = await self._answer(request_id, prompt, analysis_prompt, mode, allow_fallback=False)
        except (ProviderError, AllProvidersFailedError) as e:
            logger.info(f"No model available to analyze tool result: {e}")
            return self._tool_outcome(intent, result)

        analysis = outcome.response
        return Outcome(
            response=ModelResponse(
                content=f"🔧 Tool Result:\n{result_text}\n\n🤖 AI Analysis:\n{analysis.content}",
                model_used=analysis.model_used,
                tokens_used=analysis.tokens_used,
                response_time_ms=analysis.response_time_ms,
                confidence_score=analysis.confidence_score,
            ),
            source="tool",
            provider=outcome.provider,
        )

    # ---------------------------------------------------------------------------
    # MODEL PATH
    # ---------------------------------------------------------------------------

    def _local_context(self, prompt: str, mode: QueryMode) -> QueryContext:
        strict = mode in (QueryMode.LOCAL_ONLY, QueryMode.PURE_LOCAL)
        return QueryContext(
            prompt=prompt,
            max_tokens=self.config.LOCAL_MAX_TOKENS,
            temperature=self.config.LOCAL_TEMPERATURE,
            timeout=self.config.LOCAL_STRICT_TIMEOUT_SECONDS if strict else self.config.LOCAL_TIMEOUT_SECONDS,
            pure_mode=mode == QueryMode.PURE_LOCAL,
        )

    def _cloud_context(self, prompt: str) -> QueryContext:
        return QueryContext(
            prompt=prompt,
            max_tokens=self.config.CLOUD_MAX_TOKENS,
            temperature=self.config.CLOUD_TEMPERATURE,
            timeout=self.config.CLOUD_TIMEOUT_SECONDS,
        )

    async def _answer(
        self,
        request_id: str,
        raw_prompt: str,
        prompt: str,
        mode: QueryMode,
        allow_fallback: bool = True,
    ) -> Outcome:
        if mode in (QueryMode.LOCAL_ONLY, QueryMode.PURE_LOCAL):
            return await self._strict_local(prompt, mode)

        if mode == QueryMode.CLOUD_ONLY:
            try:
                return await self._cloud(prompt)
            except AllProvidersFailedError as e:
                if not allow_fallback:
                    raise
                return await self._fallback(raw_prompt, e)

        # AUTO
        local = self.registry.best_local()
        if local is not None:
            try:
                response = await self._call_local(local, self._local_context(prompt, mode))
            except ProviderError as e:
                self.monitor.track_event(request_id, "local_failed", {"provider": local.name(), "error": str(e)})
                logger.info(f"Local model failed, trying cloud: {e}")
            else:
                local_outcome = Outcome(response=response, source="local", provider=local)
                if not self.needs_second_opinion(response):
                    return local_outcome
                return await self._reconsider(request_id, prompt, local_outcome)

        try:
            return await self._cloud(prompt)
        except AllProvidersFailedError as e:
            if not allow_fallback:
                raise
            return await self._fallback(raw_prompt, e)

    async def _strict_local(self, prompt: str, mode: QueryMode) -> Outcome:
        local = self.registry.best_local()
        if local is None:
            raise ProviderUnavailableError(
                "No local model available. Run 'air setup --local' first"
            )
        response = await self._call_local(local, self._local_context(prompt, mode))
        return Outcome(response=response, source="local", provider=local)

    async def _call_local(self, provider: ModelProvider, context: QueryContext) -> ModelResponse:
        """Run the local call under `context.timeout` without cancelling it on expiry."""
        task = asyncio.ensure_future(provider.generate(context))
        done = set()
        try:
            done, _ = await asyncio.wait({task}, timeout=context.timeout)
        finally:
            if task not in done:
                task.add_done_callback(_drain_abandoned)
        if task in done:
            return task.result()

        raise ProviderTimeoutError(
            f"{provider.name()} did not answer within {context.timeout}s", provider.name()
        )

    async def _reconsider(self, request_id: str, prompt: str, local: Outcome) -> Outcome:
        """Ask the cloud for a second opinion; keep it only if clearly better."""
        self.monitor.track_event(request_id, "second_opinion", {"local": local.response.model_used})
        try:
            cloud = await self._cloud(prompt)
        except AllProvidersFailedError as e:
            logger.info(f"No cloud second opinion available: {e}")
            return local

        local_confidence = local.response.confidence_score or 0.0
        cloud_confidence = cloud.response.confidence_score or 0.0
        if cloud_confidence > local_confidence + self.config.QUALITY_IMPROVEMENT_MARGIN:
            return cloud
        return local

    async def _cloud(self, prompt: str) -> Outcome:
        ranked = self.registry.available_providers(ProviderKind.CLOUD)
        result = await self.race.race_providers(ranked, self._cloud_context(prompt))
        return Outcome(response=result.response, source="cloud", provider=result.provider)

    async def _fallback(self, raw_prompt: str, error: Exception) -> Outcome:
        logger.warning(f"All providers failed, using fallback chain: {error}")
        response = await self.fallback.run(raw_prompt)
        return Outcome(response=response, source="fallback", error=error)

    # ---------------------------------------------------------------------------
    # PRESENTATION AND LEARNING
    # ---------------------------------------------------------------------------

    def _present(self, outcome: Outcome, pure_mode: bool) -> ModelResponse:
        if pure_mode:
            return outcome.response
        if outcome.source == "local":
            return outcome.response.with_prefix(LOCAL_LABEL)
        if outcome.source == "cloud":
            return outcome.response.with_prefix(CLOUD_LABEL.format(name=outcome.provider.name()))
        return outcome.response

    async def _record_outcome(self, prompt: str, outcome: Outcome) -> None:
        """Done state: feed the learning counters and the conversation log."""
        try:
            if outcome.source == "fallback":
                await self._record_failure(prompt, outcome.error)
                return
            await self.memory.increment_learning_pattern(learning_pattern_key("none", prompt), success=True)
            await self.memory.append_conversation(prompt, outcome.response.content, outcome.response.model_used)
            await self.memory.mark_mistakes_learned(prompt)
        except MemoryStoreError as e:
            logger.error(f"Could not record query outcome: {e}")

    async def _record_failure(self, prompt: str, error: Optional[Exception]) -> None:
        message = str(error) if error is not None else "unknown error"
        try:
            await self.memory.record_query_error(prompt, message)
        except MemoryStoreError as e:
            logger.error(f"Could not record query failure: {e}")
