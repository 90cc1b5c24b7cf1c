"""
Unit tests for struggle detection.
"""
import pytest

from drillcoach.adaptive.struggle import StruggleDetector
from drillcoach.core.tuning import StruggleConfig


@pytest.fixture
def passing_drill(drill):
    return drill("passing_1", 30, category="passing", tags={"vision"})


@pytest.fixture
def shooting_drill(drill):
    return drill("shooting_1", 30, category="shooting", tags={"release"})


class TestDetect:
    def test_no_history_is_not_struggling(self):
        report = StruggleDetector().detect([], "passing")
        assert report.is_struggling is False
        assert report.success_rate == 1.0
        assert report.attempts_considered == 0

    def test_three_failures_is_struggling(self, passing_drill, attempt):
        history = [attempt(passing_drill, "fail") for _ in range(3)]
        report = StruggleDetector().detect(history, "passing")
        assert report.is_struggling is True
        assert report.success_rate == 0.0
        assert report.attempts_considered == 3

    def test_partial_counts_as_success(self, passing_drill, attempt):
        history = [
            attempt(passing_drill, "partial"),
            attempt(passing_drill, "partial"),
            attempt(passing_drill, "fail"),
        ]
        report = StruggleDetector().detect(history, "passing")
        assert report.success_rate == pytest.approx(2 / 3)
        assert report.is_struggling is False

    def test_only_last_three_attempts_considered(self, passing_drill, attempt):
        history = [
            attempt(passing_drill, "fail"),
            attempt(passing_drill, "fail"),
            attempt(passing_drill, "success"),
            attempt(passing_drill, "success"),
            attempt(passing_drill, "partial"),
        ]
        report = StruggleDetector().detect(history, "passing")
        assert report.success_rate == 1.0
        assert report.attempts_considered == 3

    def test_short_history_rate_uses_attempts_present(self, passing_drill, attempt):
        history = [attempt(passing_drill, "success"), attempt(passing_drill, "fail")]
        report = StruggleDetector().detect(history, "passing")
        assert report.success_rate == 0.5
        assert report.is_struggling is True

    def test_other_categories_ignored(self, passing_drill, shooting_drill, attempt):
        history = [attempt(shooting_drill, "fail") for _ in range(3)]
        history.append(attempt(passing_drill, "success"))
        assert StruggleDetector().detect(history, "passing").is_struggling is False
        assert StruggleDetector().detect(history, "shooting").is_struggling is True

    def test_threshold_is_strict(self, passing_drill, attempt):
        detector = StruggleDetector(StruggleConfig(lookback_attempts=5))
        history = [attempt(passing_drill, o) for o in ("success", "success", "success", "fail", "fail")]
        report = detector.detect(history, "passing")
        assert report.success_rate == pytest.approx(0.6)
        assert report.is_struggling is False


class TestAdjustTarget:
    def test_reduces_target_when_struggling(self, passing_drill, attempt):
        detector = StruggleDetector()
        report = detector.detect([attempt(passing_drill, "fail")] * 3, "passing")
        assert detector.adjust_target(30.0, report) == 22.0

    def test_leaves_target_when_not_struggling(self):
        detector = StruggleDetector()
        report = detector.detect([], "passing")
        assert detector.adjust_target(30.0, report) == 30.0
