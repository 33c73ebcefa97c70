"""
Conversation model - one user query and the answer the agent gave.

Conversations are session memory: the table is emptied when the agent
starts, and only the newest rows are kept once it grows past the cleanup
limit.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from air.db.base import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # user_input / ai_response: stored compressed (see SQLMemoryStore)
    user_input: Mapped[str] = mapped_column(Text, nullable=False)
    ai_response: Mapped[str] = mapped_column(Text, nullable=False)

    # model_used: e.g. "OpenAI-gpt-4o-mini", "Fallback-Cache"
    model_used: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, model_used='{self.model_used}')>"
