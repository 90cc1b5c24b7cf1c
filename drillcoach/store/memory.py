"""
In-memory Record Store.

Process-local adapter used by tests, demos and single-process deployments.
All reads return copies and all writes go through one re-entrant lock, so a
session completion and its user write are a single critical section.
"""
from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Optional, TypeVar

from drillcoach.core.errors import InvalidStateError, NotFoundError
from drillcoach.core.models import Drill, Session, SessionStatus, UserProgressionState
from drillcoach.store.base import RecordStore, UserMutation

T = TypeVar("T")


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store guarded by a single lock."""

    def __init__(
        self,
        drills: Iterable[Drill] = (),
        confidence_seeds: Optional[Mapping[str, float]] = None,
    ):
        super().__init__(confidence_seeds)
        self._lock = threading.RLock()
        self._users: dict[str, UserProgressionState] = {}
        self._sessions: dict[str, Session] = {}
        self._drills: dict[str, Drill] = {}
        self.add_drills(drills)

    # Users ---------------------------------------------------------------

    def _load_user(self, user_id: str) -> UserProgressionState:
        if user_id not in self._users:
            self._users[user_id] = self.new_user(user_id)
        return self._users[user_id].copy()

    def get_user(self, user_id: str) -> UserProgressionState:
        with self._lock:
            return self._load_user(user_id)

    def put_user(self, state: UserProgressionState) -> None:
        with self._lock:
            self._users[state.user_id] = state.copy()

    def update_user(self, user_id: str, mutate: UserMutation) -> UserProgressionState:
        with self._lock:
            updated = mutate(self._load_user(user_id))
            self._users[user_id] = updated.copy()
            return updated

    # Catalog -------------------------------------------------------------

    def get_drill_pool(self, category: Optional[str] = None) -> list[Drill]:
        with self._lock:
            drills = list(self._drills.values())
        if category is None:
            return drills
        return [d for d in drills if d.category == category]

    def get_drill(self, drill_id: str) -> Optional[Drill]:
        with self._lock:
            return self._drills.get(drill_id)

    def add_drills(self, drills: Iterable[Drill]) -> int:
        count = 0
        with self._lock:
            for drill in drills:
                self._drills[drill.id] = drill
                count += 1
        return count

    # Sessions ------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise InvalidStateError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = copy.copy(session)

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.copy(session) if session else None

    def _require_open(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        if session.status != SessionStatus.OPEN:
            raise InvalidStateError(f"Session {session_id} is already {session.status.value}")
        return session

    def mark_session_completed(self, session_id: str, completed_at: datetime) -> Session:
        with self._lock:
            session = self._require_open(session_id)
            session.status = SessionStatus.COMPLETED
            session.completed_at = completed_at
            return copy.copy(session)

    def complete_session(
        self,
        session_id: str,
        completed_at: datetime,
        step: Callable[[Session, UserProgressionState], tuple[UserProgressionState, T]],
    ) -> T:
        with self._lock:
            session = self._require_open(session_id)
            new_state, result = step(copy.copy(session), self._load_user(session.user_id))
            self._users[session.user_id] = new_state.copy()
            session.status = SessionStatus.COMPLETED
            session.completed_at = completed_at
            return result
