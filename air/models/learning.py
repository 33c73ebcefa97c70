"""
Learning models - mistakes and outcome counters.

These are telemetry: they feed diagnostics and the "Past Issues to Avoid"
section of enriched prompts, never provider ranking.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from air.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Mistake(Base):
    """A query that failed, with what went wrong."""

    __tablename__ = "mistakes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_input: Mapped[str] = mapped_column(Text, nullable=False)
    error_message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # learned: set once the same kind of query succeeds again
    learned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class LearningPattern(Base):
    """
    Outcome counters keyed by "{error_type}:{prompt_length_bucket}".

    Example keys: "none:0", "timeout:200", "api_error:100".
    """

    __tablename__ = "learning_patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pattern_key: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    mistake_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
