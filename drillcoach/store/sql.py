"""
SQL Record Store.

SQLAlchemy-backed adapter. SQLite by default, PostgreSQL via psycopg2.

Session completion is a compare-and-swap:

    UPDATE practice_sessions SET status = 'completed'
    WHERE session_id = :id AND status = 'open'

executed first inside the same transaction that writes the user's new state.
A duplicate or concurrent completion sees rowcount 0 and fails with
InvalidStateError; if the progression step raises, the whole transaction
(including the status change) is rolled back.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Optional, TypeVar

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker

from drillcoach.core.errors import InvalidStateError, NotFoundError
from drillcoach.core.models import (
    AttemptRecord,
    Drill,
    DrillOutcome,
    Session,
    SessionStatus,
    StreakState,
    UserProgressionState,
    as_utc,
)
from drillcoach.db.database import make_session_factory, session_scope
from drillcoach.db.models import AttemptRow, DrillRow, SessionRow, UserProgressionRow
from drillcoach.progression.ledger import ProgressionLedger
from drillcoach.store.base import RecordStore, UserMutation

T = TypeVar("T")


class SqlRecordStore(RecordStore):
    """Record store on a relational database."""

    def __init__(
        self,
        factory: Optional[sessionmaker[DbSession]] = None,
        engine=None,
        confidence_seeds: Optional[Mapping[str, float]] = None,
        ledger: Optional[ProgressionLedger] = None,
    ):
        super().__init__(confidence_seeds)
        if factory is None and engine is not None:
            factory = make_session_factory(engine)
        self._factory = factory
        self._ledger = ledger or ProgressionLedger()

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_drill(row: DrillRow) -> Drill:
        return Drill(
            id=row.id,
            title=row.title or "",
            category=row.category,
            difficulty_score=float(row.difficulty_score),
            tags=frozenset(row.tags or []),
            summary=row.summary or "",
            duration_minutes=row.duration_minutes,
        )

    @staticmethod
    def _to_session(row: SessionRow) -> Session:
        return Session(
            session_id=row.session_id,
            user_id=row.user_id,
            category=row.category,
            started_at=as_utc(row.started_at),
            assigned_drill_id=row.assigned_drill_id,
            is_reinforcement=bool(row.is_reinforcement),
            effective_duration_minutes=row.effective_duration_minutes,
            status=SessionStatus(row.status),
            completed_at=as_utc(row.completed_at) if row.completed_at else None,
        )

    @staticmethod
    def _to_attempt(row: AttemptRow) -> AttemptRecord:
        return AttemptRecord(
            drill_id=row.drill_id,
            category=row.category,
            outcome=DrillOutcome(row.outcome),
            timestamp=as_utc(row.attempted_at),
            difficulty_score=float(row.difficulty_score),
            tags=frozenset(row.tags or []),
        )

    def _lock_user_row(self, db: DbSession, user_id: str) -> UserProgressionRow:
        row = db.get(UserProgressionRow, user_id, with_for_update=True)
        if row is None:
            fresh = self.new_user(user_id)
            row = UserProgressionRow(
                user_id=user_id,
                confidence_by_category=dict(fresh.confidence_by_category),
                reinforcement_queues={},
                xp=0,
                current_streak_days=0,
                longest_streak_days=0,
                last_active_date=None,
                freeze_tokens=0,
            )
            db.add(row)
            db.flush()
        return row

    def _load_user(self, db: DbSession, row: UserProgressionRow) -> UserProgressionState:
        attempts = db.scalars(
            select(AttemptRow).where(AttemptRow.user_id == row.user_id).order_by(AttemptRow.id)
        ).all()
        return UserProgressionState(
            user_id=row.user_id,
            confidence_by_category={k: float(v) for k, v in (row.confidence_by_category or {}).items()},
            attempts=[self._to_attempt(a) for a in attempts],
            reinforcement_queue_by_category={k: list(v) for k, v in (row.reinforcement_queues or {}).items()},
            xp_state=self._ledger.xp_state_for(row.xp),
            streak_state=StreakState(
                current_streak_days=row.current_streak_days,
                longest_streak_days=row.longest_streak_days,
                last_active_date=row.last_active_date,
                freeze_tokens=row.freeze_tokens,
            ),
        )

    def _write_user(self, db: DbSession, row: UserProgressionRow, state: UserProgressionState) -> None:
        row.confidence_by_category = dict(state.confidence_by_category)
        row.reinforcement_queues = {k: list(v) for k, v in state.reinforcement_queue_by_category.items()}
        row.xp = state.xp_state.xp
        row.current_streak_days = state.streak_state.current_streak_days
        row.longest_streak_days = state.streak_state.longest_streak_days
        row.last_active_date = state.streak_state.last_active_date
        row.freeze_tokens = state.streak_state.freeze_tokens

        stored = db.scalar(
            select(func.count()).select_from(AttemptRow).where(AttemptRow.user_id == state.user_id)
        ) or 0
        if len(state.attempts) < stored:
            raise InvalidStateError(
                f"Attempt history for {state.user_id} is append-only "
                f"({stored} stored, {len(state.attempts)} given)"
            )
        for attempt in state.attempts[stored:]:
            db.add(
                AttemptRow(
                    user_id=state.user_id,
                    drill_id=attempt.drill_id,
                    category=attempt.category,
                    outcome=attempt.outcome.value,
                    attempted_at=attempt.timestamp,
                    difficulty_score=attempt.difficulty_score,
                    tags=sorted(attempt.tags),
                )
            )

    # Users ---------------------------------------------------------------

    def get_user(self, user_id: str) -> UserProgressionState:
        with session_scope(self._factory) as db:
            return self._load_user(db, self._lock_user_row(db, user_id))

    def put_user(self, state: UserProgressionState) -> None:
        with session_scope(self._factory) as db:
            self._write_user(db, self._lock_user_row(db, state.user_id), state)

    def update_user(self, user_id: str, mutate: UserMutation) -> UserProgressionState:
        with session_scope(self._factory) as db:
            row = self._lock_user_row(db, user_id)
            updated = mutate(self._load_user(db, row))
            self._write_user(db, row, updated)
            return updated

    # Catalog -------------------------------------------------------------

    def get_drill_pool(self, category: Optional[str] = None) -> list[Drill]:
        with session_scope(self._factory) as db:
            query = select(DrillRow).order_by(DrillRow.category, DrillRow.difficulty_score, DrillRow.id)
            if category is not None:
                query = query.where(DrillRow.category == category)
            return [self._to_drill(row) for row in db.scalars(query).all()]

    def get_drill(self, drill_id: str) -> Optional[Drill]:
        with session_scope(self._factory) as db:
            row = db.get(DrillRow, drill_id)
            return self._to_drill(row) if row else None

    def add_drills(self, drills: Iterable[Drill]) -> int:
        count = 0
        with session_scope(self._factory) as db:
            for drill in drills:
                db.merge(
                    DrillRow(
                        id=drill.id,
                        title=drill.title,
                        category=drill.category,
                        difficulty_score=drill.difficulty_score,
                        tags=sorted(drill.tags),
                        summary=drill.summary,
                        duration_minutes=drill.duration_minutes,
                    )
                )
                count += 1
        logger.info(f"Stored {count} drills")
        return count

    # Sessions ------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        with session_scope(self._factory) as db:
            if db.get(SessionRow, session.session_id) is not None:
                raise InvalidStateError(f"Session already exists: {session.session_id}")
            db.add(
                SessionRow(
                    session_id=session.session_id,
                    user_id=session.user_id,
                    category=session.category,
                    started_at=session.started_at,
                    assigned_drill_id=session.assigned_drill_id,
                    is_reinforcement=session.is_reinforcement,
                    effective_duration_minutes=session.effective_duration_minutes,
                    status=session.status.value,
                    completed_at=session.completed_at,
                )
            )

    def get_session(self, session_id: str) -> Optional[Session]:
        with session_scope(self._factory) as db:
            row = db.get(SessionRow, session_id)
            return self._to_session(row) if row else None

    def _swap_to_completed(self, db: DbSession, session_id: str, completed_at: datetime) -> SessionRow:
        result = db.execute(
            update(SessionRow)
            .where(SessionRow.session_id == session_id, SessionRow.status == SessionStatus.OPEN.value)
            .values(status=SessionStatus.COMPLETED.value, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        row = db.get(SessionRow, session_id, populate_existing=True)
        if result.rowcount != 1:
            if row is None:
                raise NotFoundError(f"Session not found: {session_id}")
            raise InvalidStateError(f"Session {session_id} is already {row.status}")
        return row

    def mark_session_completed(self, session_id: str, completed_at: datetime) -> Session:
        with session_scope(self._factory) as db:
            return self._to_session(self._swap_to_completed(db, session_id, completed_at))

    def complete_session(
        self,
        session_id: str,
        completed_at: datetime,
        step: Callable[[Session, UserProgressionState], tuple[UserProgressionState, T]],
    ) -> T:
        with session_scope(self._factory) as db:
            session = self._to_session(self._swap_to_completed(db, session_id, completed_at))
            row = self._lock_user_row(db, session.user_id)
            new_state, result = step(session, self._load_user(db, row))
            self._write_user(db, row, new_state)
            return result
