"""
Domain models for drill assignment and progression.

- Drill: immutable catalog entry
- AttemptRecord: append-only history entry (tags copied from the drill)
- XpState / StreakState: ledger values
- UserProgressionState: per-user aggregate owned by the ledger
- Session: single-use assignment/completion correlation record
- AssignmentMetadata / AssignmentResult: selector output
"""
from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from drillcoach.core.errors import ValidationError


class DrillOutcome(str, Enum):
    """Outcome of a single drill attempt."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAIL = "fail"

    @property
    def is_success_like(self) -> bool:
        return self in (DrillOutcome.SUCCESS, DrillOutcome.PARTIAL)

    @classmethod
    def parse(cls, value: "DrillOutcome | str") -> "DrillOutcome":
        """Coerce a caller-supplied outcome, raising ValidationError when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(o.value for o in cls)
            raise ValidationError(f"Unknown outcome {value!r} (expected one of: {allowed})") from None


class SessionStatus(str, Enum):
    """Session lifecycle states. Unopened sessions do not exist in the store."""

    OPEN = "open"
    COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Drill:
    """A catalog drill. Owned by the catalog, referenced by id elsewhere."""

    id: str
    category: str
    difficulty_score: float
    title: str = ""
    tags: frozenset[str] = field(default_factory=frozenset)
    summary: str = ""
    duration_minutes: int = 10

    def with_duration(self, minutes: int) -> "Drill":
        return replace(self, duration_minutes=minutes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "difficulty_score": self.difficulty_score,
            "tags": sorted(self.tags),
            "summary": self.summary,
            "duration_minutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """One historical outcome. Never mutated once appended."""

    drill_id: str
    category: str
    outcome: DrillOutcome
    timestamp: datetime
    difficulty_score: float
    tags: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_drill(
        cls,
        drill: Drill,
        outcome: DrillOutcome,
        timestamp: datetime,
        category: Optional[str] = None,
    ) -> "AttemptRecord":
        return cls(
            drill_id=drill.id,
            category=category or drill.category,
            outcome=outcome,
            timestamp=as_utc(timestamp),
            difficulty_score=drill.difficulty_score,
            tags=frozenset(drill.tags),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "drill_id": self.drill_id,
            "category": self.category,
            "outcome": self.outcome.value,
            "timestamp": self.timestamp.isoformat(),
            "difficulty_score": self.difficulty_score,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttemptRecord":
        return cls(
            drill_id=data["drill_id"],
            category=data["category"],
            outcome=DrillOutcome(data["outcome"]),
            timestamp=as_utc(datetime.fromisoformat(data["timestamp"])),
            difficulty_score=float(data["difficulty_score"]),
            tags=frozenset(data.get("tags", [])),
        )


@dataclass(frozen=True)
class XpState:
    """Total XP with derived level values."""

    xp: int = 0
    level: int = 1
    xp_to_next_level: int = 250


@dataclass(frozen=True)
class StreakState:
    """Daily streak continuity."""

    current_streak_days: int = 0
    longest_streak_days: int = 0
    last_active_date: Optional[date] = None
    freeze_tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_active_date"] = self.last_active_date.isoformat() if self.last_active_date else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StreakState":
        last = data.get("last_active_date")
        return cls(
            current_streak_days=int(data.get("current_streak_days", 0)),
            longest_streak_days=int(data.get("longest_streak_days", 0)),
            last_active_date=date.fromisoformat(last) if last else None,
            freeze_tokens=int(data.get("freeze_tokens", 0)),
        )


@dataclass
class UserProgressionState:
    """
    Per-user progression aggregate.

    Attempts are kept in insertion (chronological) order. Reinforcement queues
    are per category and bounded by the configured repeat window.
    """

    user_id: str
    confidence_by_category: dict[str, float] = field(default_factory=dict)
    attempts: list[AttemptRecord] = field(default_factory=list)
    reinforcement_queue_by_category: dict[str, list[str]] = field(default_factory=dict)
    xp_state: XpState = field(default_factory=XpState)
    streak_state: StreakState = field(default_factory=StreakState)

    def category_attempts(self, category: str) -> list[AttemptRecord]:
        return [a for a in self.attempts if a.category == category]

    def last_category_attempt(self, category: str) -> Optional[AttemptRecord]:
        for attempt in reversed(self.attempts):
            if attempt.category == category:
                return attempt
        return None

    def queue_for(self, category: str) -> list[str]:
        return list(self.reinforcement_queue_by_category.get(category, []))

    def copy(self) -> "UserProgressionState":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "confidence_by_category": dict(self.confidence_by_category),
            "attempts": [a.to_dict() for a in self.attempts],
            "reinforcement_queue_by_category": {
                k: list(v) for k, v in self.reinforcement_queue_by_category.items()
            },
            "xp_state": asdict(self.xp_state),
            "streak_state": self.streak_state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProgressionState":
        return cls(
            user_id=data["user_id"],
            confidence_by_category={k: float(v) for k, v in data.get("confidence_by_category", {}).items()},
            attempts=[AttemptRecord.from_dict(a) for a in data.get("attempts", [])],
            reinforcement_queue_by_category={
                k: list(v) for k, v in data.get("reinforcement_queue_by_category", {}).items()
            },
            xp_state=XpState(**data.get("xp_state", {})),
            streak_state=StreakState.from_dict(data.get("streak_state", {})),
        )


@dataclass
class Session:
    """Open-assignment-to-completion correlation unit. Single use."""

    session_id: str
    user_id: str
    category: str
    started_at: datetime
    assigned_drill_id: str
    is_reinforcement: bool = False
    effective_duration_minutes: int = 10
    status: SessionStatus = SessionStatus.OPEN
    completed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN


@dataclass(frozen=True)
class DifficultyWindow:
    """Inclusive acceptance range around the target difficulty."""

    low: float
    high: float

    def contains(self, difficulty: float) -> bool:
        return self.low <= difficulty <= self.high


@dataclass(frozen=True)
class StruggleReport:
    """Struggle detector output."""

    is_struggling: bool
    success_rate: float
    attempts_considered: int = 0


@dataclass(frozen=True)
class AssignmentMetadata:
    """Why a drill was chosen. Output only, never persisted."""

    confidence_before: float
    target_difficulty: float
    window: DifficultyWindow
    is_reinforcement: bool
    is_exploration: bool
    success_rate: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidence_before": self.confidence_before,
            "target_difficulty": self.target_difficulty,
            "window": {"low": self.window.low, "high": self.window.high},
            "is_reinforcement": self.is_reinforcement,
            "is_exploration": self.is_exploration,
            "success_rate": self.success_rate,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AssignmentResult:
    """Selected drill, its metadata and the resulting reinforcement queue."""

    drill: Drill
    metadata: AssignmentMetadata
    reinforcement_queue: tuple[str, ...] = ()
