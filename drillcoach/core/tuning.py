"""
Assignment Tuning Configuration.

Immutable, typed parameters for the adaptive assignment algorithm and the
progression ledger. A single AssignmentConfig is built once (usually from
config.Settings) and injected into the selector, ledger and orchestrator.

Sections:
- difficulty: confidence -> target difficulty mapping and window widths
- struggle: lookback, threshold, temporary target reduction, repeat window
- scoring: candidate scoring weights and exploration probability
- confidence: per-outcome confidence deltas
- xp: XP award rules and level size
- session: recovery mode, start biases and explanation cadence
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DifficultyConfig(_Frozen):
    """Confidence to difficulty mapping."""

    base: float = 30.0
    slope: float = 40.0
    min: float = 5.0
    max: float = 95.0

    # Acceptance window widths
    low_base_width: float = 15.0
    low_confidence_width: float = 15.0
    high_base_width: float = 10.0
    high_confidence_width: float = 20.0

    @model_validator(mode="after")
    def _check_bounds(self) -> "DifficultyConfig":
        if self.min > self.max:
            raise ValueError(f"difficulty.min ({self.min}) exceeds difficulty.max ({self.max})")
        return self


class StruggleConfig(_Frozen):
    """Struggle detection and reinforcement queueing."""

    lookback_attempts: int = Field(default=3, ge=1)
    success_rate_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    temporary_target_reduction: float = Field(default=8.0, ge=0.0)
    repeat_window_length: int = Field(default=2, ge=1)


class ScoringConfig(_Frozen):
    """Candidate scoring weights."""

    proximity_weight: float = Field(default=0.45, ge=0.0)
    novelty_weight: float = Field(default=0.20, ge=0.0)
    failure_penalty_weight: float = Field(default=0.20, ge=0.0)
    similarity_weight: float = Field(default=0.15, ge=0.0)
    exploration_epsilon: float = Field(default=0.08, ge=0.0, le=1.0)

    # Normalization constants
    proximity_range: float = Field(default=35.0, gt=0.0)
    novelty_days: float = Field(default=14.0, gt=0.0)
    failure_step: float = 0.2
    failure_cap: float = 0.7
    struggling_failure_damping: float = 0.35
    similarity_difficulty_range: float = Field(default=25.0, gt=0.0)
    similarity_tag_weight: float = 0.65
    similarity_difficulty_weight: float = 0.35
    similarity_recent_failures: int = Field(default=3, ge=0)
    non_struggling_similarity_factor: float = 0.4
    fallback_candidates: int = Field(default=10, ge=1)


class ConfidenceConfig(_Frozen):
    """Per-outcome confidence deltas."""

    min: float = 0.0
    max: float = 1.0
    success_delta: float = 0.03
    partial_delta: float = 0.01
    fail_delta: float = -0.04
    reinforcement_success_bonus: float = 0.05
    reinforcement_fail_penalty_reduction: float = 0.02
    default_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    category_seeds: dict[str, float] = Field(
        default_factory=lambda: {"shooting": 0.42, "passing": 0.5, "defense": 0.38}
    )
    skill_level_seeds: dict[str, float] = Field(
        default_factory=lambda: {"beginner": 0.32, "intermediate": 0.5, "advanced": 0.72}
    )


class XpConfig(_Frozen):
    """XP award rules."""

    base: float = 24.0
    success_bonus: float = 10.0
    partial_bonus: float = 4.0
    reinforcement_multiplier: float = Field(default=0.85, ge=0.0)
    min_award: int = Field(default=8, ge=0)
    max_award: int = Field(default=60, ge=0)
    level_size: int = Field(default=250, ge=1)

    @model_validator(mode="after")
    def _check_band(self) -> "XpConfig":
        if self.min_award > self.max_award:
            raise ValueError(f"xp.min_award ({self.min_award}) exceeds xp.max_award ({self.max_award})")
        return self


class SessionConfig(_Frozen):
    """Session start heuristics."""

    recovery_inactivity_days: int = Field(default=2, ge=0)
    recovery_confidence_bias: float = -0.14
    recovery_max_duration_minutes: int = Field(default=10, ge=1)
    explanation_initial_attempts: int = Field(default=5, ge=0)
    explanation_period: int = Field(default=5, ge=1)
    difficulty_hint_biases: dict[str, float] = Field(
        default_factory=lambda: {"easy": -0.12, "medium": 0.0, "hard": 0.12}
    )
    goal_biases: dict[str, float] = Field(
        default_factory=lambda: {"pro": 0.08, "scouted": 0.06, "scholarship": 0.04, "best-team": 0.02}
    )


class AssignmentConfig(_Frozen):
    """Complete tuning surface for assignment and progression."""

    difficulty: DifficultyConfig = Field(default_factory=DifficultyConfig)
    struggle: StruggleConfig = Field(default_factory=StruggleConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    xp: XpConfig = Field(default_factory=XpConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)


DEFAULT_CONFIG = AssignmentConfig()
