"""
Session start heuristics.

- Assignment confidence: stored confidence shifted by the requested difficulty,
  the learner's goal and recovery mode, then clamped to [0, 1]
- Skill-level seeding for a learner's first attempt in a category
- "Why this drill" explanation, surfaced on the first few attempts in a
  category and then every Nth attempt
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from drillcoach.core.errors import ValidationError
from drillcoach.core.tuning import AssignmentConfig

FALLBACK_MESSAGE = "Chosen to match your current momentum and keep progress steady."


@dataclass(frozen=True)
class AssignmentExplanation:
    show_why: bool
    message: str


def difficulty_bias(hint: Optional[str], config: AssignmentConfig) -> float:
    if hint is None:
        return 0.0
    biases = config.session.difficulty_hint_biases
    key = hint.strip().lower()
    if key not in biases:
        raise ValidationError(f"Unknown difficulty hint {hint!r} (expected one of: {', '.join(biases)})")
    return biases[key]


def goal_bias(goal: Optional[str], config: AssignmentConfig) -> float:
    # Goals are free-form; unknown goals simply carry no bias
    if not goal:
        return 0.0
    return config.session.goal_biases.get(goal.strip().lower(), 0.0)


def skill_level_seed(skill_level: Optional[str], config: AssignmentConfig) -> Optional[float]:
    if not skill_level:
        return None
    seeds = config.confidence.skill_level_seeds
    key = skill_level.strip().lower()
    if key not in seeds:
        raise ValidationError(f"Unknown skill level {skill_level!r} (expected one of: {', '.join(seeds)})")
    return seeds[key]


def assignment_confidence(
    stored: float,
    config: AssignmentConfig,
    difficulty_hint: Optional[str] = None,
    goal: Optional[str] = None,
    recovery_mode: bool = False,
) -> float:
    """
    Effective confidence handed to the assignment selector.

    Args:
        stored: Learner's stored category confidence
        config: Tuning config
        difficulty_hint: 'easy' | 'medium' | 'hard' or None
        goal: Learner goal (e.g. 'pro', 'scholarship') or None
        recovery_mode: Apply the recovery bias

    Returns:
        Confidence clamped to [0, 1]
    """
    value = stored + difficulty_bias(difficulty_hint, config) + goal_bias(goal, config)
    if recovery_mode:
        value += config.session.recovery_confidence_bias
    return max(0.0, min(1.0, value))


def should_show_why(attempts_in_category: int, config: AssignmentConfig) -> bool:
    cfg = config.session
    return (
        attempts_in_category < cfg.explanation_initial_attempts
        or attempts_in_category % cfg.explanation_period == 0
    )


def build_explanation(
    attempts_in_category: int,
    config: AssignmentConfig,
    category: Optional[str] = None,
    recovery_mode: bool = False,
    skill_level: Optional[str] = None,
    goal: Optional[str] = None,
) -> AssignmentExplanation:
    reasons = []
    if recovery_mode:
        reasons.append("eased back in after a short break")
    if skill_level:
        reasons.append(f"matched to your {skill_level} level")
    if goal:
        reasons.append(f"aligned with your {goal.replace('-', ' ')} goal")
    if category:
        reasons.append(f"focused on {category}")

    message = f"Chosen because it {' and '.join(reasons)}." if reasons else FALLBACK_MESSAGE
    return AssignmentExplanation(show_why=should_show_why(attempts_in_category, config), message=message)
