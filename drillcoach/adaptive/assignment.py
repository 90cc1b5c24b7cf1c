"""
Assignment Selector.

Orchestrates the difficulty model, struggle detector and candidate scorer to
pick one drill and explain the pick:

1. Clamp confidence to [0, 1]
2. Detect struggle in the category
3. Compute target difficulty (reduced and re-clamped when struggling)
4. Compute the acceptance window
5. Build, score and select candidates
6. When struggling, enqueue the chosen drill for reinforcement
"""
from __future__ import annotations

import random
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from loguru import logger

from drillcoach.adaptive.candidate_scorer import CandidateScorer, select_pool
from drillcoach.adaptive.difficulty import DifficultyModel, clamp
from drillcoach.adaptive.struggle import StruggleDetector
from drillcoach.core.errors import ConfigurationError
from drillcoach.core.models import (
    AssignmentMetadata,
    AssignmentResult,
    AttemptRecord,
    Drill,
    utcnow,
)
from drillcoach.core.tuning import AssignmentConfig


def enqueue_reinforcement(queue: Sequence[str], drill_id: str, max_length: int) -> list[str]:
    """Append a drill id (once) and drop the oldest entries beyond max_length."""
    updated = list(queue)
    if drill_id not in updated:
        updated.append(drill_id)
    return updated[-max_length:] if max_length > 0 else []


def build_reason(confidence: float, is_exploration: bool, is_struggling: bool) -> str:
    parts = [
        f"confidence_{confidence:.2f}",
        "exploration" if is_exploration else "best_score",
        "reinforcement_similar" if is_struggling else "standard_progression",
    ]
    return "_".join(parts)


class AssignmentSelector:
    """Choose the next drill for a learner in a category."""

    def __init__(self, config: Optional[AssignmentConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or AssignmentConfig()
        self.difficulty_model = DifficultyModel(self.config.difficulty)
        self.struggle_detector = StruggleDetector(self.config.struggle)
        self.scorer = CandidateScorer(self.config.scoring, rng=rng)

    def assign(
        self,
        category: str,
        confidence: float,
        drills: Sequence[Drill],
        history: Sequence[AttemptRecord],
        reinforcement_queue: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """
        Pick a drill.

        Args:
            category: Requested category
            confidence: Assignment confidence (may already include start biases)
            drills: Drill catalog (category pool falls back to the full catalog)
            history: Learner's chronological attempts across all categories
            reinforcement_queue: Current queue for this category
            now: Reference time for novelty; defaults to current UTC time

        Returns:
            AssignmentResult with drill, metadata and the updated queue

        Raises:
            ConfigurationError: If the catalog holds no drills at all
        """
        if not drills:
            raise ConfigurationError(
                f"No drills available for category '{category}' or globally; cannot assign"
            )

        now = now or utcnow()
        confidence = clamp(confidence, 0.0, 1.0)

        struggle = self.struggle_detector.detect(history, category)
        target = self.difficulty_model.target_difficulty(confidence)
        if struggle.is_struggling:
            target = self.difficulty_model.clamp_difficulty(
                self.struggle_detector.adjust_target(target, struggle)
            )
        window = self.difficulty_model.window(target, confidence)

        pool = select_pool(drills, category)
        candidates = self.scorer.build_candidates(pool, window, target, reinforcement_queue)

        category_history = [a for a in history if a.category == category]
        scores = self.scorer.score(candidates, target, category_history, struggle.is_struggling, now)
        selection = self.scorer.select(candidates, scores)

        queue = list(reinforcement_queue)
        if struggle.is_struggling:
            queue = enqueue_reinforcement(queue, selection.drill.id, self.config.struggle.repeat_window_length)

        metadata = AssignmentMetadata(
            confidence_before=confidence,
            target_difficulty=target,
            window=window,
            is_reinforcement=struggle.is_struggling,
            is_exploration=selection.is_exploration,
            success_rate=struggle.success_rate,
            reason=build_reason(confidence, selection.is_exploration, struggle.is_struggling),
        )

        logger.debug(
            f"Assigned {selection.drill.id} in {category}: target={target:.1f} "
            f"window=[{window.low:.1f}, {window.high:.1f}] candidates={len(candidates)} "
            f"reason={metadata.reason}"
        )
        return AssignmentResult(drill=selection.drill, metadata=metadata, reinforcement_queue=tuple(queue))
