"""
Struggle Detector.

Looks at the last N attempts in a category. Success and partial outcomes both
count toward the success rate. A category with no history is reported as not
struggling with a success rate of 1.0.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from drillcoach.core.models import AttemptRecord, StruggleReport
from drillcoach.core.tuning import StruggleConfig


class StruggleDetector:
    """Detect underperformance in a category from recent attempts."""

    def __init__(self, config: Optional[StruggleConfig] = None):
        self.config = config or StruggleConfig()

    def recent_attempts(self, history: Sequence[AttemptRecord], category: str) -> list[AttemptRecord]:
        in_category = [a for a in history if a.category == category]
        return in_category[-self.config.lookback_attempts:]

    def detect(self, history: Sequence[AttemptRecord], category: str) -> StruggleReport:
        recent = self.recent_attempts(history, category)
        if not recent:
            return StruggleReport(is_struggling=False, success_rate=1.0, attempts_considered=0)

        success_like = sum(1 for a in recent if a.outcome.is_success_like)
        success_rate = success_like / len(recent)
        return StruggleReport(
            is_struggling=success_rate < self.config.success_rate_threshold,
            success_rate=success_rate,
            attempts_considered=len(recent),
        )

    def adjust_target(self, target: float, report: StruggleReport) -> float:
        """Temporary, attempt-scoped reduction; the caller re-clamps."""
        if report.is_struggling:
            return target - self.config.temporary_target_reduction
        return target
