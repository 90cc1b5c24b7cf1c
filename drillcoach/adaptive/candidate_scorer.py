"""
Candidate Scorer.

Builds the eligible candidate list for an assignment and scores each drill on
four normalized terms:

- proximity: closeness to the target difficulty
- novelty: days since this drill was last attempted (never attempted = 1.0)
- failure: 1 - penalty for repeated failures on this exact drill
- similarity: resemblance to the most recent category failures

With probability `exploration_epsilon` the scores are ignored and a candidate
is drawn uniformly at random, which keeps the learner from converging onto a
narrow repeating set.
"""
from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from drillcoach.core.models import AttemptRecord, DifficultyWindow, Drill, DrillOutcome
from drillcoach.core.tuning import ScoringConfig

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass(frozen=True)
class CandidateScore:
    """Per-term breakdown of a candidate's composite score."""

    drill: Drill
    proximity: float
    novelty: float
    failure: float
    similarity: float
    total: float


@dataclass(frozen=True)
class Selection:
    """Chosen candidate and whether it came from the exploration branch."""

    drill: Drill
    is_exploration: bool
    scores: tuple[CandidateScore, ...] = ()


def select_pool(drills: Sequence[Drill], category: str) -> list[Drill]:
    """Category drills, or the whole catalog when the category has none."""
    in_category = [d for d in drills if d.category == category]
    return in_category if in_category else list(drills)


class CandidateScorer:
    """Filter, prioritize and score drills for one assignment."""

    def __init__(self, config: Optional[ScoringConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or ScoringConfig()
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Candidate set
    # ------------------------------------------------------------------

    def build_candidates(
        self,
        pool: Sequence[Drill],
        window: DifficultyWindow,
        target: float,
        reinforcement_queue: Sequence[str] = (),
    ) -> list[Drill]:
        """
        Windowed candidate list with the reinforcement head moved to the front.

        Args:
            pool: Category pool (already fallen back to the full catalog if empty)
            window: Acceptance window
            target: Target difficulty, used for the closest-drills fallback
            reinforcement_queue: Category queue; only its head is considered

        Returns:
            Non-empty list whenever the pool is non-empty
        """
        candidates = [d for d in pool if window.contains(d.difficulty_score)]

        if reinforcement_queue:
            head = reinforcement_queue[0]
            queued = next((d for d in pool if d.id == head), None)
            if queued is not None:
                candidates = [queued] + [d for d in candidates if d.id != queued.id]

        if not candidates:
            # sorted() is stable, so equally distant drills keep catalog order
            candidates = sorted(pool, key=lambda d: abs(d.difficulty_score - target))
            candidates = candidates[: self.config.fallback_candidates]

        return candidates

    # ------------------------------------------------------------------
    # Scoring terms
    # ------------------------------------------------------------------

    def proximity(self, drill: Drill, target: float) -> float:
        distance = abs(drill.difficulty_score - target) / self.config.proximity_range
        return 1.0 - min(distance, 1.0)

    def novelty(self, last_attempt_at: Optional[datetime], now: datetime) -> float:
        if last_attempt_at is None:
            return 1.0
        days = max(0.0, (now - last_attempt_at).total_seconds() / SECONDS_PER_DAY)
        return min(days / self.config.novelty_days, 1.0)

    def failure_score(self, failure_count: int, is_struggling: bool) -> float:
        penalty = min(failure_count * self.config.failure_step, self.config.failure_cap)
        if is_struggling:
            penalty *= self.config.struggling_failure_damping
        return 1.0 - penalty

    def similarity(self, drill: Drill, failures: Sequence[AttemptRecord]) -> float:
        """Best tag/difficulty similarity against recent failures (0 when none)."""
        cfg = self.config
        best = 0.0
        for failure in failures:
            overlap = len(drill.tags & failure.tags)
            tag_similarity = overlap / len(drill.tags) if drill.tags else 0.0
            gap = abs(drill.difficulty_score - failure.difficulty_score)
            difficulty_similarity = 1.0 - min(gap / cfg.similarity_difficulty_range, 1.0)
            best = max(
                best,
                tag_similarity * cfg.similarity_tag_weight
                + difficulty_similarity * cfg.similarity_difficulty_weight,
            )
        return best

    def score(
        self,
        candidates: Sequence[Drill],
        target: float,
        category_history: Sequence[AttemptRecord],
        is_struggling: bool,
        now: datetime,
    ) -> list[CandidateScore]:
        """
        Score candidates against the learner's history in this category.

        Args:
            candidates: Ordered candidate list
            target: Target difficulty
            category_history: Chronological attempts in the category
            is_struggling: Struggle detector verdict
            now: Reference time for novelty

        Returns:
            One CandidateScore per candidate, in candidate order
        """
        cfg = self.config

        last_attempt: dict[str, datetime] = {}
        fail_counts: dict[str, int] = {}
        for attempt in category_history:
            last_attempt[attempt.drill_id] = attempt.timestamp
            if attempt.outcome == DrillOutcome.FAIL:
                fail_counts[attempt.drill_id] = fail_counts.get(attempt.drill_id, 0) + 1

        failures = [a for a in category_history if a.outcome == DrillOutcome.FAIL]
        recent_failures = failures[-cfg.similarity_recent_failures:] if cfg.similarity_recent_failures else []
        similarity_factor = 1.0 if is_struggling else cfg.non_struggling_similarity_factor

        scores = []
        for drill in candidates:
            proximity = self.proximity(drill, target)
            novelty = self.novelty(last_attempt.get(drill.id), now)
            failure = self.failure_score(fail_counts.get(drill.id, 0), is_struggling)
            similarity = self.similarity(drill, recent_failures) * similarity_factor
            total = (
                proximity * cfg.proximity_weight
                + novelty * cfg.novelty_weight
                + failure * cfg.failure_penalty_weight
                + similarity * cfg.similarity_weight
            )
            scores.append(CandidateScore(drill, proximity, novelty, failure, similarity, total))
        return scores

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def should_explore(self) -> bool:
        return self.rng.random() < self.config.exploration_epsilon

    def select(self, candidates: Sequence[Drill], scores: Sequence[CandidateScore]) -> Selection:
        """Exploration draw or best score; ties go to the earliest candidate."""
        if not candidates:
            raise ValueError("select() needs at least one candidate")

        if self.should_explore():
            pick = candidates[self.rng.randrange(len(candidates))]
            return Selection(drill=pick, is_exploration=True, scores=tuple(scores))

        best = scores[0]
        for candidate_score in scores[1:]:
            if candidate_score.total > best.total:
                best = candidate_score
        return Selection(drill=best.drill, is_exploration=False, scores=tuple(scores))
