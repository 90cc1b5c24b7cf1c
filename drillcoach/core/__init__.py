"""
Core Module - Shared domain models, errors and tuning configuration.

All other drillcoach packages import domain types from here rather than
redefining them.
"""

from drillcoach.core.errors import (
    ConfigurationError,
    DrillCoachError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from drillcoach.core.models import (
    AssignmentMetadata,
    AssignmentResult,
    AttemptRecord,
    DifficultyWindow,
    Drill,
    DrillOutcome,
    Session,
    SessionStatus,
    StreakState,
    StruggleReport,
    UserProgressionState,
    XpState,
)
from drillcoach.core.tuning import DEFAULT_CONFIG, AssignmentConfig

__all__ = [
    # Errors
    "DrillCoachError",
    "ConfigurationError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    # Models
    "Drill",
    "DrillOutcome",
    "AttemptRecord",
    "XpState",
    "StreakState",
    "UserProgressionState",
    "Session",
    "SessionStatus",
    "DifficultyWindow",
    "StruggleReport",
    "AssignmentMetadata",
    "AssignmentResult",
    # Tuning
    "AssignmentConfig",
    "DEFAULT_CONFIG",
]
