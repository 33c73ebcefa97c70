"""ORM models. Importing this package registers every table on Base.metadata."""

from air.models.conversation import Conversation
from air.models.knowledge import KnowledgeChunk
from air.models.learning import LearningPattern, Mistake
from air.models.memory_entry import MemoryEntry, MemoryScope

__all__ = [
    "Conversation",
    "KnowledgeChunk",
    "LearningPattern",
    "MemoryEntry",
    "MemoryScope",
    "Mistake",
]
