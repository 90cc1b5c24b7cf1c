"""
Adaptive assignment: difficulty targeting, struggle detection, candidate
scoring and drill selection.
"""

from drillcoach.adaptive.assignment import AssignmentSelector, enqueue_reinforcement
from drillcoach.adaptive.candidate_scorer import CandidateScore, CandidateScorer, Selection
from drillcoach.adaptive.difficulty import DifficultyModel
from drillcoach.adaptive.struggle import StruggleDetector

__all__ = [
    "AssignmentSelector",
    "CandidateScore",
    "CandidateScorer",
    "DifficultyModel",
    "Selection",
    "StruggleDetector",
    "enqueue_reinforcement",
]
