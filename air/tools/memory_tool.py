"""
Memory and Knowledge Tools - expose the agent's memory to tool calls.
"""

from typing import Optional

from air.memory.knowledge import KnowledgeBase
from air.memory.store import SQLMemoryStore
from air.models import MemoryScope
from air.tools.base import Tool, ToolResult


class MemoryTool(Tool):
    name = "memory"
    description = "Search past conversations and store or recall facts"
    functions = {
        "search_conversations": "Find past exchanges mentioning a topic. Args: query",
        "remember": "Store a fact. Args: key, value",
        "recall": "Read a stored fact. Args: key",
    }

    def __init__(self, store: SQLMemoryStore):
        self.store = store

    async def _search_conversations(self, query: str = "") -> ToolResult:
        turns = await self.store.search_conversations(query) if query else []
        if not turns:
            turns = await self.store.get_recent_conversations(5)
        if not turns:
            return ToolResult(success=True, result="We haven't talked about anything yet in this session.")
        lines = [f"User: {t.user_input}\nAI: {t.ai_response}" for t in turns]
        return ToolResult(success=True, result="\n\n".join(lines), metadata={"count": len(turns)})

    async def _remember(self, key: str, value: str) -> ToolResult:
        await self.store.set(key, value, MemoryScope.PERSISTENT)
        return ToolResult(success=True, result=f"Remembered {key}")

    async def _recall(self, key: str) -> ToolResult:
        value = await self.store.get(key, MemoryScope.PERSISTENT)
        if value is None:
            return ToolResult(success=False, result=f"Nothing stored under '{key}'")
        return ToolResult(success=True, result=value)


class KnowledgeTool(Tool):
    name = "knowledge"
    description = "Search documents added with 'air memory add'"
    functions = {
        "search": "Find relevant document snippets. Args: query, limit (optional)",
    }

    def __init__(self, knowledge: KnowledgeBase):
        self.knowledge = knowledge

    async def _search(self, query: str, limit: Optional[int] = 3) -> ToolResult:
        hits = await self.knowledge.search(query, limit=limit or 3)
        if not hits:
            return ToolResult(success=False, result="No matching documents.")
        return ToolResult(
            success=True,
            result=[{"source": h.source, "relevance": round(h.relevance, 2), "content": h.content} for h in hits],
        )
