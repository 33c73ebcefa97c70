"""
MemoryEntry model - key/value memory in three scopes.

Scopes:
- session: volatile, cleared at startup
- persistent: facts the agent keeps across runs (including "about:*")
- preference: user preferences such as response_style
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from air.db.base import Base


class MemoryScope(str, Enum):
    SESSION = "session"
    PERSISTENT = "persistent"
    PREFERENCE = "preference"


class MemoryEntry(Base):
    __tablename__ = "memory_entries"
    __table_args__ = (UniqueConstraint("scope", "key", name="uq_memory_scope_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(200), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<MemoryEntry(scope='{self.scope}', key='{self.key}')>"
