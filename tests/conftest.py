"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from drillcoach.core.models import AttemptRecord, Drill, DrillOutcome  # noqa: E402
from drillcoach.core.tuning import AssignmentConfig  # noqa: E402
from drillcoach.store.memory import InMemoryRecordStore  # noqa: E402
from drillcoach.store.seed import build_demo_drill_pool  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Helpers
# =============================================================================

NOW = datetime(2025, 3, 14, 18, 0, tzinfo=timezone.utc)


class FixedRandom(random.Random):
    """Random source with a pinned exploration draw and pick index."""

    def __init__(self, draw: float = 0.99, index: int = 0):
        super().__init__(0)
        self.draw = draw
        self.index = index

    def random(self):
        return self.draw

    def randrange(self, *args, **kwargs):
        return self.index


class MutableClock:
    """Callable clock the test can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingEventSink:
    """EventSink that keeps every tracked event."""

    def __init__(self):
        self.events = []

    def track(self, name, properties, user_id):
        self.events.append((name, dict(properties), user_id))

    @property
    def names(self):
        return [name for name, _, _ in self.events]


def make_drill(drill_id, difficulty, category="shooting", tags=()):
    return Drill(
        id=drill_id,
        category=category,
        difficulty_score=float(difficulty),
        title=drill_id.replace("_", " ").title(),
        tags=frozenset(tags),
    )


def make_attempt(drill, outcome, timestamp=NOW):
    return AttemptRecord.from_drill(drill, DrillOutcome.parse(outcome), timestamp)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config():
    """Default tuning config."""
    return AssignmentConfig()


@pytest.fixture
def exploit_rng():
    """Random source that never takes the exploration branch."""
    return FixedRandom(draw=0.99)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def demo_drills():
    """The 240-drill demo catalog."""
    return build_demo_drill_pool()


@pytest.fixture
def memory_store(demo_drills):
    """In-memory store loaded with the demo catalog."""
    return InMemoryRecordStore(drills=demo_drills)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fixed_random():
    """FixedRandom class; call with draw= and index=."""
    return FixedRandom


@pytest.fixture
def drill():
    """Drill factory: drill(id, difficulty, category='shooting', tags=())."""
    return make_drill


@pytest.fixture
def attempt():
    """AttemptRecord factory: attempt(drill, outcome, timestamp=NOW)."""
    return make_attempt


@pytest.fixture
def memory_drill(demo_drills):
    """Look up a demo catalog drill by id."""
    by_id = {d.id: d for d in demo_drills}
    return by_id.__getitem__
