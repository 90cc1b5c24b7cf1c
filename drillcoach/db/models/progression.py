"""
Progression Store Models.

SQLAlchemy models backing SqlRecordStore:
- Drill catalog
- Per-user progression aggregate (confidence, queues, XP, streak)
- Append-only attempt history
- Practice sessions with an open/completed status used for compare-and-swap
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DrillRow(Base):
    """Catalog drill."""

    __tablename__ = "drills"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    difficulty_score: Mapped[float] = mapped_column(Float, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    summary: Mapped[str] = mapped_column(Text, default="")
    duration_minutes: Mapped[int] = mapped_column(Integer, default=10)

    def __repr__(self) -> str:
        return f"<DrillRow id={self.id} category={self.category} difficulty={self.difficulty_score}>"


class UserProgressionRow(Base):
    """
    Per-user progression aggregate.

    level and xp_to_next_level are not stored; they are derived from xp.
    """

    __tablename__ = "user_progression"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    confidence_by_category: Mapped[dict] = mapped_column(JSON, default=dict)
    reinforcement_queues: Mapped[dict] = mapped_column(JSON, default=dict)

    xp: Mapped[int] = mapped_column(Integer, default=0)

    current_streak_days: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak_days: Mapped[int] = mapped_column(Integer, default=0)
    last_active_date: Mapped[date | None] = mapped_column(Date)
    freeze_tokens: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<UserProgressionRow user={self.user_id} xp={self.xp} streak={self.current_streak_days}>"


class AttemptRow(Base):
    """One drill attempt. Rows are only ever inserted."""

    __tablename__ = "drill_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("user_progression.user_id", ondelete="CASCADE"), nullable=False
    )
    drill_id: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    outcome: Mapped[str] = mapped_column(Text, nullable=False)  # 'success', 'partial', 'fail'
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    difficulty_score: Mapped[float] = mapped_column(Float, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list)

    __table_args__ = (
        Index("idx_attempts_user_order", "user_id", "id"),
    )


class SessionRow(Base):
    """Practice session. status moves from 'open' to 'completed' exactly once."""

    __tablename__ = "practice_sessions"

    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_drill_id: Mapped[str] = mapped_column(Text, nullable=False)
    is_reinforcement: Mapped[bool] = mapped_column(Boolean, default=False)
    effective_duration_minutes: Mapped[int] = mapped_column(Integer, default=10)
    status: Mapped[str] = mapped_column(Text, default="open")  # 'open', 'completed'
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<SessionRow id={self.session_id} user={self.user_id} status={self.status}>"
