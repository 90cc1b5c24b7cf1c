"""
Progression: confidence, XP, level and streak update rules.
"""

from drillcoach.progression.ledger import (
    FreezeTokenPolicy,
    LedgerOutcome,
    ProgressionLedger,
    StreakFreezePolicy,
    StreakUpdate,
)

__all__ = [
    "FreezeTokenPolicy",
    "LedgerOutcome",
    "ProgressionLedger",
    "StreakFreezePolicy",
    "StreakUpdate",
]
