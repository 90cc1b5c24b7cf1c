"""
Record Store interface.

The core only knows these operations; adapters decide the storage technology.
Two guarantees every adapter must provide:

- update_user() applies a read-modify-write for one user atomically
- complete_session() transitions Open -> Completed and writes the user's new
  state in one transaction, so a session is completed at most once
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Optional, TypeVar

from drillcoach.core.models import Drill, Session, UserProgressionState

T = TypeVar("T")

UserMutation = Callable[[UserProgressionState], UserProgressionState]


def default_user_state(user_id: str, confidence_seeds: Optional[Mapping[str, float]] = None) -> UserProgressionState:
    """Fresh progression state for a user seen for the first time."""
    return UserProgressionState(
        user_id=user_id,
        confidence_by_category=dict(confidence_seeds or {}),
    )


class RecordStore(ABC):
    """Keyed storage for user progression, sessions and the drill catalog."""

    def __init__(self, confidence_seeds: Optional[Mapping[str, float]] = None):
        self.confidence_seeds = dict(confidence_seeds or {})

    def new_user(self, user_id: str) -> UserProgressionState:
        return default_user_state(user_id, self.confidence_seeds)

    # Users ---------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: str) -> UserProgressionState:
        """Return a copy of the user's state, creating defaults when absent."""

    @abstractmethod
    def put_user(self, state: UserProgressionState) -> None:
        """Replace the stored state for state.user_id."""

    @abstractmethod
    def update_user(self, user_id: str, mutate: UserMutation) -> UserProgressionState:
        """Atomically apply mutate() to the user's state and store the result."""

    # Catalog -------------------------------------------------------------

    @abstractmethod
    def get_drill_pool(self, category: Optional[str] = None) -> list[Drill]:
        """All drills, or only those in category."""

    @abstractmethod
    def get_drill(self, drill_id: str) -> Optional[Drill]:
        """Single drill by id, None when unknown."""

    @abstractmethod
    def add_drills(self, drills: Iterable[Drill]) -> int:
        """Insert or replace catalog drills; returns the number written."""

    # Sessions ------------------------------------------------------------

    @abstractmethod
    def create_session(self, session: Session) -> None:
        """Persist a new open session."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Session]:
        """Session by id, None when unknown."""

    @abstractmethod
    def mark_session_completed(self, session_id: str, completed_at: datetime) -> Session:
        """
        Compare-and-swap Open -> Completed.

        Raises:
            NotFoundError: Unknown session id
            InvalidStateError: Session is not open
        """

    @abstractmethod
    def complete_session(
        self,
        session_id: str,
        completed_at: datetime,
        step: Callable[[Session, UserProgressionState], tuple[UserProgressionState, T]],
    ) -> T:
        """
        Complete a session and write the owner's new state in one transaction.

        step() receives the session being completed and the user's state and
        returns (new_state, result). Nothing is written if step() raises.

        Raises:
            NotFoundError: Unknown session id
            InvalidStateError: Session is not open
        """
