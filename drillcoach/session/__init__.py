"""
Session lifecycle: start (assign) and complete (progress) practice sessions.
"""

from drillcoach.session.explanation import AssignmentExplanation
from drillcoach.session.orchestrator import SessionCompletion, SessionOrchestrator, SessionStart

__all__ = [
    "AssignmentExplanation",
    "SessionCompletion",
    "SessionOrchestrator",
    "SessionStart",
]
