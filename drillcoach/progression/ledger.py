"""
Progression Ledger.

Pure update rules applied when a session completes:

- Confidence: per-outcome delta, reinforcement bonus / softened penalty, clamp
- XP: base + outcome bonus, reinforcement multiplier, round, clamp to band
- Level: level = xp // level_size + 1 (always derived from total XP)
- Streak: same day no-op, next day +1, longer gap resets to 1

`record_attempt` combines the rules and returns a new UserProgressionState;
the input state is never mutated.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Protocol

from loguru import logger

from drillcoach.core.errors import ValidationError
from drillcoach.core.models import (
    AttemptRecord,
    Drill,
    DrillOutcome,
    StreakState,
    UserProgressionState,
    XpState,
)
from drillcoach.core.tuning import AssignmentConfig


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _calendar_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


class StreakFreezePolicy(Protocol):
    """Grace policy consulted before the streak rule runs."""

    def apply(self, streak: StreakState, today: date) -> StreakState: ...


class FreezeTokenPolicy:
    """
    Spend freeze tokens to cover missed days.

    If every missed day since the last active date can be covered, tokens are
    consumed and last_active_date moves to yesterday so the streak continues.
    """

    def apply(self, streak: StreakState, today: date) -> StreakState:
        if streak.last_active_date is None:
            return streak
        missed = (today - streak.last_active_date).days - 1
        if missed <= 0 or missed > streak.freeze_tokens:
            return streak
        logger.info(f"Streak freeze used: {missed} token(s) cover the gap since {streak.last_active_date}")
        return replace(
            streak,
            freeze_tokens=streak.freeze_tokens - missed,
            last_active_date=today - timedelta(days=1),
        )


@dataclass(frozen=True)
class StreakUpdate:
    state: StreakState
    changed: bool


@dataclass(frozen=True)
class LedgerOutcome:
    """Everything a completion changed."""

    state: UserProgressionState
    attempt: AttemptRecord
    xp_awarded: int
    updated_confidence: float
    streak_changed: bool


class ProgressionLedger:
    """Confidence, XP and streak update rules."""

    def __init__(
        self,
        config: Optional[AssignmentConfig] = None,
        freeze_policy: Optional[StreakFreezePolicy] = None,
    ):
        self.config = config or AssignmentConfig()
        self.freeze_policy = freeze_policy

    # ------------------------------------------------------------------
    # Confidence
    # ------------------------------------------------------------------

    def confidence_delta(self, outcome: DrillOutcome, is_reinforcement: bool) -> float:
        cfg = self.config.confidence
        if outcome == DrillOutcome.SUCCESS:
            delta = cfg.success_delta
            if is_reinforcement:
                delta += cfg.reinforcement_success_bonus
        elif outcome == DrillOutcome.PARTIAL:
            delta = cfg.partial_delta
        else:
            delta = cfg.fail_delta
            if is_reinforcement:
                delta += cfg.reinforcement_fail_penalty_reduction
        return delta

    def update_confidence(
        self,
        current: float,
        outcome: DrillOutcome,
        is_reinforcement: bool,
        override: Optional[float] = None,
    ) -> float:
        """
        New confidence after an attempt.

        Args:
            current: Stored category confidence
            outcome: Attempt outcome
            is_reinforcement: Whether the drill was assigned for reinforcement
            override: Externally computed confidence; wins when given

        Returns:
            Confidence in [min, max]
        """
        cfg = self.config.confidence
        if override is not None:
            if not math.isfinite(override):
                raise ValidationError(f"confidence_after must be a finite number, got {override!r}")
            if not cfg.min <= override <= cfg.max:
                logger.warning(
                    f"confidence_after={override} outside [{cfg.min}, {cfg.max}]; clamping"
                )
            return max(cfg.min, min(cfg.max, override))

        updated = current + self.confidence_delta(outcome, is_reinforcement)
        return max(cfg.min, min(cfg.max, updated))

    # ------------------------------------------------------------------
    # XP
    # ------------------------------------------------------------------

    def compute_xp_award(self, outcome: DrillOutcome, is_reinforcement: bool) -> int:
        cfg = self.config.xp
        amount = cfg.base
        if outcome == DrillOutcome.SUCCESS:
            amount += cfg.success_bonus
        elif outcome == DrillOutcome.PARTIAL:
            amount += cfg.partial_bonus
        if is_reinforcement:
            amount *= cfg.reinforcement_multiplier
        return max(cfg.min_award, min(cfg.max_award, _round_half_up(amount)))

    def clamp_xp_override(self, xp_earned: float) -> int:
        cfg = self.config.xp
        if not math.isfinite(xp_earned):
            raise ValidationError(f"xp_earned must be a finite number, got {xp_earned!r}")
        if not cfg.min_award <= xp_earned <= cfg.max_award:
            logger.warning(f"xp_earned={xp_earned} outside [{cfg.min_award}, {cfg.max_award}]; clamping")
        return max(cfg.min_award, min(cfg.max_award, _round_half_up(xp_earned)))

    def xp_state_for(self, total_xp: int) -> XpState:
        size = self.config.xp.level_size
        level = total_xp // size + 1
        return XpState(xp=total_xp, level=level, xp_to_next_level=level * size - total_xp)

    def apply_xp(self, xp_state: XpState, award: int) -> XpState:
        return self.xp_state_for(xp_state.xp + award)

    # ------------------------------------------------------------------
    # Streak
    # ------------------------------------------------------------------

    def update_streak(self, streak: StreakState, now: datetime) -> StreakUpdate:
        """
        Advance the daily streak.

        Args:
            streak: Current streak state
            now: Completion time; only the UTC calendar date is compared

        Returns:
            StreakUpdate with the new state and whether the streak count changed
        """
        today = _calendar_date(now)
        if self.freeze_policy is not None:
            streak = self.freeze_policy.apply(streak, today)

        last = streak.last_active_date
        if last == today:
            return StreakUpdate(state=replace(streak, last_active_date=today), changed=False)

        if last is not None and today - last == timedelta(days=1):
            current = streak.current_streak_days + 1
        else:
            current = 1

        state = replace(
            streak,
            current_streak_days=current,
            longest_streak_days=max(streak.longest_streak_days, current),
            last_active_date=today,
        )
        return StreakUpdate(state=state, changed=True)

    # ------------------------------------------------------------------
    # Combined
    # ------------------------------------------------------------------

    def initial_confidence(self, category: str) -> float:
        cfg = self.config.confidence
        return cfg.category_seeds.get(category, cfg.default_confidence)

    def record_attempt(
        self,
        state: UserProgressionState,
        drill: Drill,
        outcome: DrillOutcome,
        is_reinforcement: bool,
        now: datetime,
        confidence_override: Optional[float] = None,
        xp_override: Optional[float] = None,
        category: Optional[str] = None,
    ) -> LedgerOutcome:
        """
        Apply one completed attempt to a copy of the user's state.

        Args:
            state: Current progression state (not mutated)
            drill: Drill that was attempted
            outcome: Attempt outcome
            is_reinforcement: Reinforcement flag copied from the session
            now: Completion time
            confidence_override: Caller-supplied confidence, if any
            xp_override: Caller-supplied XP award, clamped to the award band
            category: Category the attempt counts toward; defaults to the drill's.
                Differs when the requested category had no drills of its own

        Returns:
            LedgerOutcome with the new state, appended attempt and XP awarded
        """
        updated = state.copy()
        category = category or drill.category

        current = updated.confidence_by_category.get(category, self.initial_confidence(category))
        confidence = self.update_confidence(current, outcome, is_reinforcement, confidence_override)
        updated.confidence_by_category[category] = confidence

        if xp_override is not None:
            xp_awarded = self.clamp_xp_override(xp_override)
        else:
            xp_awarded = self.compute_xp_award(outcome, is_reinforcement)
        updated.xp_state = self.apply_xp(updated.xp_state, xp_awarded)

        streak = self.update_streak(updated.streak_state, now)
        updated.streak_state = streak.state

        attempt = AttemptRecord.from_drill(drill, outcome, now, category=category)
        updated.attempts.append(attempt)

        if outcome == DrillOutcome.SUCCESS:
            queue = updated.reinforcement_queue_by_category.get(category)
            if queue and drill.id in queue:
                updated.reinforcement_queue_by_category[category] = [d for d in queue if d != drill.id]

        return LedgerOutcome(
            state=updated,
            attempt=attempt,
            xp_awarded=xp_awarded,
            updated_confidence=confidence,
            streak_changed=streak.changed,
        )
