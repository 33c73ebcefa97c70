"""
Memory Module - what the agent remembers between and within runs.

- store: conversations, key/value scopes, mistakes, learning counters
- knowledge: documents added with `air memory add`
- enrichment: builds the prompt actually sent to providers
- prompt_cache: short-lived cache of enriched prompts
"""

from air.memory.enrichment import PromptEnricher
from air.memory.knowledge import KnowledgeBase, KnowledgeHit
from air.memory.prompt_cache import PromptCache
from air.memory.store import ConversationTurn, MemoryStore, SQLMemoryStore

__all__ = [
    "ConversationTurn",
    "KnowledgeBase",
    "KnowledgeHit",
    "MemoryStore",
    "PromptCache",
    "PromptEnricher",
    "SQLMemoryStore",
]
