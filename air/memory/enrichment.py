"""
Prompt Enrichment - merges memory into the prompt sent to providers.

The enriched prompt is a pure function of memory state at the time it is
built:

    identity + capabilities + procedures + personality
    + response style preference
    + recent conversation turns
    + knowledge snippets above the relevance threshold
    + warnings about similar past failures
    + "User Query: <prompt>"

No length cap is applied here. Results are cached briefly in a PromptCache
owned by the orchestrator.
"""

import logging
from typing import List, Optional

from air.memory.knowledge import KnowledgeBase
from air.memory.prompt_cache import PromptCache
from air.memory.store import ABOUT_PREFIX, MemoryStore
from air.models import MemoryScope

logger = logging.getLogger("air.memory.enrichment")

RECENT_TURNS = 3
KNOWLEDGE_LIMIT = 3

IDENTITY = "Identity: You are 'air', an advanced AI agent."

CAPABILITIES = """Capabilities:
- Filesystem: Read, write and list files and directories
- Web: Fetch pages and extract content from URLs
- Command: Execute safe system commands
- Memory: Store and recall information across conversations
- Planning: Create and break down tasks
- Calculator: Perform mathematical calculations
- Knowledge: Search documents added with 'air memory add'"""

PROCEDURES = """Operational Procedures:
1. VERIFICATION: After making changes, verify them before reporting success.
2. PLANNING: Before complex tasks, create a step-by-step plan.
3. ANTI-HALLUCINATION: Do not invent information. If unsure, say so.
4. RECALL: Use memory to recall context when needed."""

PERSONALITY = """Personality:
- Traits: Helpful, precise, proactive, transparent
- Tone: Professional yet conversational
- Style: Clear, concise and structured. Give detail only when asked."""


class PromptEnricher:
    """
    Builds enriched prompts from memory.

    Args:
        memory: Conversation/preference/mistake store
        cache: Shared short-lived cache of built prompts
        knowledge: Optional document search
        relevance_threshold: Minimum knowledge relevance to include a snippet
    """

    def __init__(
        self,
        memory: MemoryStore,
        cache: PromptCache,
        knowledge: Optional[KnowledgeBase] = None,
        relevance_threshold: float = 0.5,
    ):
        self.memory = memory
        self.cache = cache
        self.knowledge = knowledge
        self.relevance_threshold = relevance_threshold

    async def build(self, prompt: str) -> str:
        cached = self.cache.get(prompt)
        if cached is not None:
            logger.debug("Enriched prompt served from cache")
            return cached

        sections: List[str] = []

        identity = IDENTITY
        creator = await self.memory.get(f"{ABOUT_PREFIX}creator")
        if creator:
            identity += f" Created by {creator}."
        sections.append(identity)
        sections.extend([CAPABILITIES, PROCEDURES, PERSONALITY])

        style = await self.memory.get("response_style", scope=MemoryScope.PREFERENCE)
        if style:
            sections.append(f"Preferred Response Style: {style}")

        turns = await self.memory.get_recent_conversations(RECENT_TURNS)
        if turns:
            history = "".join(f"\nUser: {t.user_input}\nAI: {t.ai_response}" for t in turns)
            sections.append(f"Recent Conversation Context:{history}")

        if self.knowledge is not None:
            hits = await self.knowledge.search(prompt, limit=KNOWLEDGE_LIMIT)
            relevant = [h for h in hits if h.relevance > self.relevance_threshold]
            if relevant:
                lines = "\n".join(f"- ({h.source}) {h.content}" for h in relevant)
                sections.append(f"Relevant Knowledge:\n{lines}")

        insights = await self.memory.get_mistake_insights(prompt)
        if insights:
            lines = "\n".join(f"- {insight}" for insight in insights)
            sections.append(f"Past Issues to Avoid:\n{lines}")

        sections.append(f"User Query: {prompt}")
        enriched = "\n\n".join(sections)

        self.cache.put(prompt, enriched)
        return enriched

