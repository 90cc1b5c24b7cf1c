"""
Integration tests for SqlRecordStore on a file-backed SQLite database.

Each connection to an in-memory SQLite URL opens its own empty database, so
the store is exercised against a temporary file instead.
"""
import threading
from datetime import timedelta

import pytest

from drillcoach.core.errors import InvalidStateError, NotFoundError
from drillcoach.core.models import Session, SessionStatus, StreakState, UserProgressionState, XpState
from drillcoach.core.tuning import AssignmentConfig, XpConfig
from drillcoach.db.database import init_db, make_engine
from drillcoach.progression.ledger import ProgressionLedger
from drillcoach.session.orchestrator import SessionOrchestrator
from drillcoach.store.sql import SqlRecordStore


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'drillcoach.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(engine, demo_drills):
    store = SqlRecordStore(engine=engine, confidence_seeds={"shooting": 0.42, "passing": 0.5})
    store.add_drills(demo_drills)
    return store


@pytest.fixture
def sql_orchestrator(sql_store, clock, exploit_rng, event_sink):
    return SessionOrchestrator(sql_store, rng=exploit_rng, clock=clock, event_sink=event_sink)


class TestCatalog:
    def test_drills_roundtrip(self, sql_store):
        drill = sql_store.get_drill("shooting_drill_10")
        assert drill.category == "shooting"
        assert drill.difficulty_score == 18.0
        assert len(drill.tags) == 2
        assert sql_store.get_drill("missing") is None

    def test_pool_by_category(self, sql_store):
        assert len(sql_store.get_drill_pool()) == 240
        assert len(sql_store.get_drill_pool("defense")) == 80

    def test_add_drills_replaces(self, sql_store, demo_drills):
        sql_store.add_drills([demo_drills[0].with_duration(25)])
        assert sql_store.get_drill(demo_drills[0].id).duration_minutes == 25
        assert len(sql_store.get_drill_pool()) == 240


class TestUsers:
    def test_new_user_defaults(self, sql_store):
        state = sql_store.get_user("alice")
        assert state.confidence_by_category == {"shooting": 0.42, "passing": 0.5}
        assert state.attempts == []
        assert state.xp_state.level == 1

    def test_put_and_get(self, sql_store, memory_drill, attempt, now):
        state = UserProgressionState(
            user_id="alice",
            confidence_by_category={"passing": 0.61},
            attempts=[attempt(memory_drill("passing_drill_3"), "partial", now)],
            reinforcement_queue_by_category={"passing": ["passing_drill_3"]},
            streak_state=StreakState(current_streak_days=3, longest_streak_days=5, last_active_date=now.date()),
        )
        sql_store.put_user(state)

        loaded = sql_store.get_user("alice")
        assert loaded.confidence_by_category == {"passing": 0.61}
        assert loaded.attempts == state.attempts
        assert loaded.attempts[0].timestamp == now
        assert loaded.queue_for("passing") == ["passing_drill_3"]
        assert loaded.streak_state == state.streak_state

    def test_history_is_append_only(self, sql_store, memory_drill, attempt, now):
        drill = memory_drill("passing_drill_3")
        sql_store.put_user(
            UserProgressionState(user_id="alice", attempts=[attempt(drill, "fail", now), attempt(drill, "fail", now)])
        )
        with pytest.raises(InvalidStateError):
            sql_store.put_user(UserProgressionState(user_id="alice", attempts=[]))
        assert len(sql_store.get_user("alice").attempts) == 2


class TestSessions:
    @pytest.fixture
    def open_session(self, sql_store, now):
        session = Session(
            session_id="s1",
            user_id="alice",
            category="shooting",
            started_at=now,
            assigned_drill_id="shooting_drill_22",
            is_reinforcement=True,
            effective_duration_minutes=8,
        )
        sql_store.create_session(session)
        return session

    def test_create_and_get(self, sql_store, open_session):
        assert sql_store.get_session("s1") == open_session
        assert sql_store.get_session("nope") is None

    def test_duplicate_rejected(self, sql_store, open_session):
        with pytest.raises(InvalidStateError):
            sql_store.create_session(open_session)

    def test_compare_and_swap(self, sql_store, open_session, now):
        completed = sql_store.mark_session_completed("s1", now + timedelta(minutes=9))
        assert completed.status == SessionStatus.COMPLETED
        assert completed.completed_at == now + timedelta(minutes=9)

        with pytest.raises(InvalidStateError):
            sql_store.mark_session_completed("s1", now)
        with pytest.raises(NotFoundError):
            sql_store.mark_session_completed("nope", now)

    def test_failed_step_rolls_back(self, sql_store, open_session, now):
        def step(session, state):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            sql_store.complete_session("s1", now, step)
        assert sql_store.get_session("s1").is_open


class TestOrchestratorOnSql:
    def test_full_lifecycle(self, sql_orchestrator, sql_store):
        started = sql_orchestrator.start_session("alice", "passing", requested_duration=15)
        done = sql_orchestrator.complete_session(started.session_id, "success", duration_minutes=14)

        assert done.xp_awarded == 34
        assert done.updated_category_confidence == pytest.approx(0.53)

        state = sql_store.get_user("alice")
        assert state.xp_state.xp == 34
        assert state.streak_state.current_streak_days == 1
        assert [a.drill_id for a in state.attempts] == [started.assigned_drill.id]
        assert sql_store.get_session(started.session_id).status == SessionStatus.COMPLETED

    def test_duplicate_completion_changes_nothing(self, sql_orchestrator, sql_store):
        started = sql_orchestrator.start_session("alice", "passing")
        sql_orchestrator.complete_session(started.session_id, "success")

        with pytest.raises(InvalidStateError):
            sql_orchestrator.complete_session(started.session_id, "fail")

        state = sql_store.get_user("alice")
        assert state.xp_state.xp == 34
        assert len(state.attempts) == 1

    def test_reinforcement_queue_persisted(self, sql_orchestrator, sql_store, memory_drill, attempt, clock):
        failed = memory_drill("passing_drill_22")
        sql_store.put_user(
            UserProgressionState(
                user_id="bob",
                confidence_by_category={"passing": 0.5},
                attempts=[attempt(failed, "fail", clock.now - timedelta(hours=h)) for h in (3, 2, 1)],
            )
        )

        started = sql_orchestrator.start_session("bob", "passing")

        assert started.metadata.is_reinforcement is True
        assert sql_store.get_user("bob").queue_for("passing") == [started.assigned_drill.id]
        assert sql_store.get_session(started.session_id).is_reinforcement is True


class TestConfiguredLevels:
    def test_level_size_survives_reload(self, engine, demo_drills, clock, exploit_rng, event_sink):
        config = AssignmentConfig(xp=XpConfig(level_size=20))
        store = SqlRecordStore(engine=engine, ledger=ProgressionLedger(config))
        store.add_drills(demo_drills)
        orchestrator = SessionOrchestrator(store, config=config, rng=exploit_rng, clock=clock, event_sink=event_sink)

        started = orchestrator.start_session("alice", "passing")
        done = orchestrator.complete_session(started.session_id, "success")

        assert done.xp_state == XpState(xp=34, level=2, xp_to_next_level=6)
        assert store.get_user("alice").xp_state == done.xp_state


class TestConcurrentCompletion:
    def test_one_completion_across_stores(self, tmp_path, engine, sql_store, clock, exploit_rng, event_sink):
        url = f"sqlite:///{tmp_path / 'drillcoach.db'}"
        started = SessionOrchestrator(
            sql_store, rng=exploit_rng, clock=clock, event_sink=event_sink
        ).start_session("alice", "passing")

        engines = [make_engine(url) for _ in range(6)]
        orchestrators = [
            SessionOrchestrator(
                SqlRecordStore(engine=e, confidence_seeds={"passing": 0.5}),
                rng=exploit_rng, clock=clock, event_sink=event_sink,
            )
            for e in engines
        ]
        barrier = threading.Barrier(len(orchestrators))
        successes, rejections = [], []

        def worker(orchestrator):
            barrier.wait()
            try:
                successes.append(orchestrator.complete_session(started.session_id, "success"))
            except InvalidStateError as e:
                rejections.append(e)

        threads = [threading.Thread(target=worker, args=(o,)) for o in orchestrators]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for e in engines:
            e.dispose()

        assert len(successes) == 1
        assert len(rejections) == 5
        state = sql_store.get_user("alice")
        assert state.xp_state.xp == 34
        assert len(state.attempts) == 1
