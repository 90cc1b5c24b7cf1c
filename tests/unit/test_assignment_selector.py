"""
Unit tests for the AssignmentSelector.

Covers the standard progression path, struggle-driven reinforcement,
exploration and the reinforcement queue bounds.
"""
import random

import pytest

from drillcoach.adaptive.assignment import AssignmentSelector, build_reason, enqueue_reinforcement
from drillcoach.core.errors import ConfigurationError


@pytest.fixture
def shooting_pool(drill):
    return [drill(f"shooting_{d}", d, tags={"arc", "release"}) for d in range(10, 96)]


@pytest.fixture
def passing_pool(drill):
    tags = ["vision", "timing", "accuracy"]
    return [drill(f"passing_{d}", d, category="passing", tags={tags[d % 3]}) for d in range(5, 96)]


class TestStandardProgression:
    def test_mid_confidence_new_learner(self, shooting_pool, exploit_rng, now):
        result = AssignmentSelector(rng=exploit_rng).assign("shooting", 0.5, shooting_pool, [], now=now)

        meta = result.metadata
        assert meta.target_difficulty == pytest.approx(30.0)
        assert meta.window.low == pytest.approx(7.5)
        assert meta.window.high == pytest.approx(50.0)
        assert meta.window.contains(result.drill.difficulty_score)
        assert result.drill.difficulty_score == 30.0
        assert meta.is_reinforcement is False
        assert meta.is_exploration is False
        assert meta.reason == "confidence_0.50_best_score_standard_progression"
        assert result.reinforcement_queue == ()

    def test_high_confidence_prefers_closest_to_target(self, drill, exploit_rng, now):
        drills = [drill("d1", 30), drill("d2", 42), drill("d3", 60)]
        result = AssignmentSelector(rng=exploit_rng).assign("shooting", 0.85, drills, [], now=now)

        assert result.metadata.target_difficulty == pytest.approx(44.0)
        assert result.drill.id == "d2"
        assert result.drill.difficulty_score >= 35

    def test_confidence_clamped(self, shooting_pool, exploit_rng, now):
        result = AssignmentSelector(rng=exploit_rng).assign("shooting", 1.7, shooting_pool, [], now=now)
        assert result.metadata.confidence_before == 1.0
        assert result.metadata.target_difficulty == pytest.approx(50.0)

    def test_unknown_category_uses_whole_catalog(self, shooting_pool, exploit_rng, now):
        result = AssignmentSelector(rng=exploit_rng).assign("dribbling", 0.5, shooting_pool, [], now=now)
        assert result.drill.category == "shooting"

    def test_empty_catalog_rejected(self, exploit_rng):
        with pytest.raises(ConfigurationError):
            AssignmentSelector(rng=exploit_rng).assign("shooting", 0.5, [], [])


class TestStruggle:
    def test_struggling_learner_gets_easier_reinforcement(self, passing_pool, attempt, exploit_rng, now):
        failed = next(d for d in passing_pool if d.difficulty_score == 30)
        history = [attempt(failed, "fail") for _ in range(3)]

        result = AssignmentSelector(rng=exploit_rng).assign("passing", 0.5, passing_pool, history, now=now)

        meta = result.metadata
        assert meta.target_difficulty == pytest.approx(22.0)
        assert meta.is_reinforcement is True
        assert meta.success_rate == 0.0
        assert "reinforcement_similar" in meta.reason
        assert result.drill.id in result.reinforcement_queue
        assert meta.window.contains(result.drill.difficulty_score)

    def test_reduced_target_reclamped(self, passing_pool, attempt, exploit_rng, now):
        history = [attempt(passing_pool[0], "fail") for _ in range(3)]
        result = AssignmentSelector(rng=exploit_rng).assign("passing", 0.0, passing_pool, history, now=now)
        assert result.metadata.target_difficulty == 5.0

    def test_queue_stays_bounded(self, passing_pool, attempt, now):
        history = [attempt(passing_pool[10], "fail") for _ in range(3)]
        selector = AssignmentSelector(rng=random.Random(7))

        queue: tuple = ()
        for _ in range(12):
            result = selector.assign("passing", 0.5, passing_pool, history, reinforcement_queue=queue, now=now)
            queue = result.reinforcement_queue
            assert len(queue) <= 2
            assert len(set(queue)) == len(queue)

    def test_queue_untouched_when_not_struggling(self, drill, exploit_rng, now):
        drills = [drill("a", 30), drill("b", 30)]
        result = AssignmentSelector(rng=exploit_rng).assign(
            "shooting", 0.5, drills, [], reinforcement_queue=["b"], now=now
        )
        # The queue head is tried first and wins the tie
        assert result.drill.id == "b"
        assert result.reinforcement_queue == ("b",)


class TestExploration:
    def test_exploration_picks_random_candidate(self, drill, fixed_random, now):
        drills = [drill("a", 30), drill("b", 35)]
        selector = AssignmentSelector(rng=fixed_random(draw=0.01, index=1))

        result = selector.assign("shooting", 0.5, drills, [], now=now)

        assert result.drill.id == "b"
        assert result.metadata.is_exploration is True
        assert result.metadata.reason == "confidence_0.50_exploration_standard_progression"

    def test_seeded_selector_is_deterministic(self, shooting_pool, now):
        first = AssignmentSelector(rng=random.Random(42))
        second = AssignmentSelector(rng=random.Random(42))
        picks_a = [first.assign("shooting", 0.5, shooting_pool, [], now=now).drill.id for _ in range(25)]
        picks_b = [second.assign("shooting", 0.5, shooting_pool, [], now=now).drill.id for _ in range(25)]
        assert picks_a == picks_b


class TestHelpers:
    def test_enqueue_appends_once(self):
        assert enqueue_reinforcement(["a"], "b", 2) == ["a", "b"]
        assert enqueue_reinforcement(["a", "b"], "a", 2) == ["a", "b"]

    def test_enqueue_drops_oldest(self):
        assert enqueue_reinforcement(["a", "b"], "c", 2) == ["b", "c"]

    def test_build_reason(self):
        assert build_reason(0.456, False, True) == "confidence_0.46_best_score_reinforcement_similar"
        assert build_reason(1.0, True, False) == "confidence_1.00_exploration_standard_progression"
