"""
Session Orchestrator.

Ties assignment, completion, XP award and streak update into one flow:

    Unopened --start_session--> Open --complete_session--> Completed

start_session() reads the learner's state, applies the recovery-mode and
start-bias heuristics, asks the AssignmentSelector for a drill, stores the
reinforcement queue change and opens a session.

complete_session() runs the ProgressionLedger inside the store's atomic
completion, so XP, streak, confidence and history change at most once per
session. Writes for one user are serialized by a per-user lock.
"""
from __future__ import annotations

import math
import random
import threading
import uuid
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from drillcoach.adaptive.assignment import AssignmentSelector
from drillcoach.core import events
from drillcoach.core.errors import InvalidStateError, NotFoundError, ValidationError
from drillcoach.core.events import EventSink, LoguruEventSink
from drillcoach.core.models import (
    AssignmentMetadata,
    AssignmentResult,
    AttemptRecord,
    Drill,
    DrillOutcome,
    Session,
    StreakState,
    UserProgressionState,
    XpState,
    as_utc,
    utcnow,
)
from drillcoach.core.tuning import AssignmentConfig
from drillcoach.progression.ledger import LedgerOutcome, ProgressionLedger, StreakFreezePolicy
from drillcoach.session.explanation import (
    AssignmentExplanation,
    assignment_confidence,
    build_explanation,
    skill_level_seed,
)
from drillcoach.store.base import RecordStore

# Days since last attempt reported for a category the learner never practiced
NO_HISTORY_DAYS = 999


@dataclass(frozen=True)
class SessionStart:
    """Result of start_session()."""

    session_id: str
    assigned_drill: Drill
    metadata: AssignmentMetadata
    explanation: AssignmentExplanation
    effective_duration_minutes: int
    recovery_mode: bool


@dataclass(frozen=True)
class SessionCompletion:
    """Result of complete_session()."""

    session_id: str
    xp_state: XpState
    streak_state: StreakState
    xp_awarded: int
    updated_category_confidence: float
    attempt: AttemptRecord


@dataclass(frozen=True)
class _StartPlan:
    result: AssignmentResult
    recovery_mode: bool
    attempts_in_category: int


def inactivity_days(state: UserProgressionState, category: str, now: datetime) -> int:
    """Whole days since the learner's last attempt in category."""
    last = state.last_category_attempt(category)
    if last is None:
        return NO_HISTORY_DAYS
    return max(0, math.floor((now - last.timestamp).total_seconds() / 86400))


class SessionOrchestrator:
    """Open and complete practice sessions against a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        config: Optional[AssignmentConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        event_sink: Optional[EventSink] = None,
        freeze_policy: Optional[StreakFreezePolicy] = None,
    ):
        self.store = store
        self.config = config or AssignmentConfig()
        self.selector = AssignmentSelector(self.config, rng=rng)
        self.ledger = ProgressionLedger(self.config, freeze_policy=freeze_policy)
        self.clock = clock or utcnow
        self.events = event_sink or LoguruEventSink()

        self._locks_guard = threading.Lock()
        # Entries vanish once no caller holds the lock
        self._user_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start_session(
        self,
        user_id: str,
        category: str,
        requested_duration: Optional[int] = None,
        difficulty_hint: Optional[str] = None,
        skill_level: Optional[str] = None,
        goal: Optional[str] = None,
    ) -> SessionStart:
        """
        Open a session and assign a drill.

        Args:
            user_id: Learner id
            category: Drill category, e.g. 'shooting'
            requested_duration: Minutes the learner asked for; defaults to the
                drill's nominal duration
            difficulty_hint: 'easy' | 'medium' | 'hard'
            skill_level: 'beginner' | 'intermediate' | 'advanced'; seeds the
                category confidence on the first-ever attempt
            goal: Learner goal, nudges confidence slightly upward for ambitious goals

        Returns:
            SessionStart with the assigned drill (duration set to the effective
            duration) and the assignment explanation

        Raises:
            ValidationError: Bad duration, difficulty hint or skill level
            ConfigurationError: Drill catalog is empty
        """
        if not user_id or not category:
            raise ValidationError("user_id and category are required")
        if requested_duration is not None and requested_duration <= 0:
            raise ValidationError(f"requested_duration must be positive, got {requested_duration}")
        seed = skill_level_seed(skill_level, self.config)

        now = as_utc(self.clock())
        drills = self.store.get_drill_pool()
        plans: list[_StartPlan] = []

        def assign(state: UserProgressionState) -> UserProgressionState:
            attempts_in_category = len(state.category_attempts(category))
            if attempts_in_category == 0 and seed is not None:
                state.confidence_by_category[category] = seed

            days = inactivity_days(state, category, now)
            recovery = days >= self.config.session.recovery_inactivity_days
            stored = state.confidence_by_category.get(category, self.ledger.initial_confidence(category))
            confidence = assignment_confidence(stored, self.config, difficulty_hint, goal, recovery)

            result = self.selector.assign(
                category=category,
                confidence=confidence,
                drills=drills,
                history=state.attempts,
                reinforcement_queue=state.queue_for(category),
                now=now,
            )
            if result.metadata.is_reinforcement:
                state.reinforcement_queue_by_category[category] = list(result.reinforcement_queue)

            plans.append(_StartPlan(result, recovery, attempts_in_category))
            return state

        with self._user_lock(user_id):
            self.store.update_user(user_id, assign)

        plan = plans[0]
        result = plan.result
        recovery_mode = plan.recovery_mode

        duration = requested_duration if requested_duration is not None else result.drill.duration_minutes
        if recovery_mode:
            duration = min(duration, self.config.session.recovery_max_duration_minutes)

        session = Session(
            session_id=uuid.uuid4().hex,
            user_id=user_id,
            category=category,
            started_at=now,
            assigned_drill_id=result.drill.id,
            is_reinforcement=result.metadata.is_reinforcement,
            effective_duration_minutes=duration,
        )
        self.store.create_session(session)

        explanation = build_explanation(
            plan.attempts_in_category,
            self.config,
            category=result.drill.category,
            recovery_mode=recovery_mode,
            skill_level=skill_level,
            goal=goal,
        )

        self.events.track(
            events.DRILL_ASSIGNED,
            {
                "category": category,
                "drill_id": result.drill.id,
                "confidence_before": result.metadata.confidence_before,
                "target_difficulty": result.metadata.target_difficulty,
                "is_reinforcement": result.metadata.is_reinforcement,
                "assignment_reason": result.metadata.reason,
                "recovery_mode": recovery_mode,
            },
            user_id,
        )
        self.events.track(
            events.SESSION_START,
            {
                "session_id": session.session_id,
                "category": category,
                "suggested_duration": duration,
                "requested_duration": requested_duration,
                "recovery_mode": recovery_mode,
                "difficulty": difficulty_hint,
                "assigned_drill_id": result.drill.id,
            },
            user_id,
        )
        logger.info(
            f"Session {session.session_id} opened for {user_id}: {result.drill.id} "
            f"({duration} min, recovery={recovery_mode})"
        )

        return SessionStart(
            session_id=session.session_id,
            assigned_drill=result.drill.with_duration(duration),
            metadata=result.metadata,
            explanation=explanation,
            effective_duration_minutes=duration,
            recovery_mode=recovery_mode,
        )

    # ------------------------------------------------------------------
    # Complete
    # ------------------------------------------------------------------

    def complete_session(
        self,
        session_id: str,
        outcome: DrillOutcome | str,
        duration_minutes: float = 0,
        xp_earned: Optional[float] = None,
        confidence_after: Optional[float] = None,
    ) -> SessionCompletion:
        """
        Complete an open session exactly once.

        Args:
            session_id: Id returned by start_session()
            outcome: 'success' | 'partial' | 'fail'
            duration_minutes: Minutes actually practiced
            xp_earned: Explicit XP award; clamped to the award band
            confidence_after: Externally computed confidence; clamped to [0, 1]

        Returns:
            SessionCompletion with the new XP/streak state and XP awarded

        Raises:
            NotFoundError: Unknown session, or its drill left the catalog
            InvalidStateError: Session already completed
            ValidationError: Unknown outcome or negative duration
        """
        parsed = DrillOutcome.parse(outcome)
        if duration_minutes < 0:
            raise ValidationError(f"duration_minutes must not be negative, got {duration_minutes}")

        session = self.store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        if not session.is_open:
            raise InvalidStateError(f"Session {session_id} is already {session.status.value}")

        drill = self.store.get_drill(session.assigned_drill_id)
        if drill is None:
            raise NotFoundError(
                f"Drill {session.assigned_drill_id} assigned to session {session_id} is not in the catalog"
            )

        now = as_utc(self.clock())

        def apply(open_session: Session, state: UserProgressionState) -> tuple[UserProgressionState, LedgerOutcome]:
            outcome_ = self.ledger.record_attempt(
                state,
                drill,
                parsed,
                is_reinforcement=open_session.is_reinforcement,
                now=now,
                confidence_override=confidence_after,
                xp_override=xp_earned,
                category=open_session.category,
            )
            return outcome_.state, outcome_

        with self._user_lock(session.user_id):
            result = self.store.complete_session(session_id, now, apply)

        user_id = session.user_id
        xp_state = result.state.xp_state
        streak_state = result.state.streak_state

        self.events.track(events.XP_AWARDED, {"xp_awarded": result.xp_awarded, "total_xp": xp_state.xp}, user_id)
        if result.streak_changed:
            self.events.track(events.STREAK_EXTENDED, {"streak": streak_state.current_streak_days}, user_id)
        self.events.track(
            events.SESSION_COMPLETE,
            {
                "session_id": session_id,
                "duration_minutes": duration_minutes,
                "xp_awarded": result.xp_awarded,
                "drill_id": drill.id,
                "drill_outcome": parsed.value,
                "streak": streak_state.current_streak_days,
            },
            user_id,
        )
        logger.info(
            f"Session {session_id} completed for {user_id}: {parsed.value}, +{result.xp_awarded} XP, "
            f"confidence[{result.attempt.category}]={result.updated_confidence:.2f}"
        )

        return SessionCompletion(
            session_id=session_id,
            xp_state=xp_state,
            streak_state=streak_state,
            xp_awarded=result.xp_awarded,
            updated_category_confidence=result.updated_confidence,
            attempt=result.attempt,
        )
