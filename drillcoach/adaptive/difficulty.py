"""
Difficulty Model.

Maps a confidence estimate to a target difficulty and an asymmetric
acceptance window. Low confidence widens the window downward (protect against
frustration), high confidence widens it upward (allow stretch).

    target = clamp(base + (confidence - 0.5) * slope, min, max)
    low    = target - (15 + (1 - confidence) * 15)
    high   = target + (10 + confidence * 20)
"""
from __future__ import annotations

from typing import Optional

from drillcoach.core.models import DifficultyWindow
from drillcoach.core.tuning import DifficultyConfig


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class DifficultyModel:
    """Pure confidence -> difficulty mapping. Holds no state beyond its config."""

    def __init__(self, config: Optional[DifficultyConfig] = None):
        self.config = config or DifficultyConfig()

    def clamp_difficulty(self, value: float) -> float:
        return clamp(value, self.config.min, self.config.max)

    def target_difficulty(self, confidence: float) -> float:
        """
        Compute the target difficulty for a confidence value.

        Args:
            confidence: Mastery estimate; clamped to [0, 1]

        Returns:
            Target difficulty within [min, max]
        """
        c = clamp(confidence, 0.0, 1.0)
        return self.clamp_difficulty(self.config.base + (c - 0.5) * self.config.slope)

    def window(self, target: float, confidence: float) -> DifficultyWindow:
        """
        Acceptance window around a target difficulty.

        Args:
            target: Target difficulty (possibly struggle-adjusted)
            confidence: Mastery estimate; clamped to [0, 1]

        Returns:
            DifficultyWindow with both bounds clamped to [min, max]
        """
        cfg = self.config
        c = clamp(confidence, 0.0, 1.0)
        delta_low = cfg.low_base_width + (1.0 - c) * cfg.low_confidence_width
        delta_high = cfg.high_base_width + c * cfg.high_confidence_width
        return DifficultyWindow(
            low=self.clamp_difficulty(target - delta_low),
            high=self.clamp_difficulty(target + delta_high),
        )
