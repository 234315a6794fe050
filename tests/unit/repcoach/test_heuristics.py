"""Unit tests for the change and intent heuristics."""

import pytest

from app.repcoach.heuristics import (
    classify_intent,
    compute_requires_change,
    resolve_snapshot,
)
from app.schemas.policy import (
    AppSurface,
    CoachSnapshot,
    ExecutionPhase,
    Intent,
    LastSet,
    SymmetrySplit,
)


def _make_snapshot(**overrides) -> CoachSnapshot:
    defaults = dict(
        app_surface=AppSurface.HOME,
        readiness_now=52,
        readiness_target=50,
        last_set=LastSet(exercise="squat", weight_lb=225, reps=5),
    )
    defaults.update(overrides)
    return CoachSnapshot(**defaults)


class TestRequiresChange:

    def test_no_last_set(self):
        assert compute_requires_change(_make_snapshot(last_set=None, readiness_now=90)) is False

    def test_quiet_baseline(self):
        assert compute_requires_change(_make_snapshot()) is False

    def test_shallow_depth(self):
        last = LastSet(exercise="squat", reps=5, depth="above")
        assert compute_requires_change(_make_snapshot(last_set=last)) is True

    def test_bar_speed_far_from_target(self):
        last = LastSet(exercise="squat", reps=5, bar_speed="stable")
        assert compute_requires_change(_make_snapshot(last_set=last, readiness_now=70)) is True

    def test_bar_speed_near_target(self):
        last = LastSet(exercise="squat", reps=5, bar_speed="stable")
        assert compute_requires_change(_make_snapshot(last_set=last)) is False

    @pytest.mark.parametrize("left,right,expected", [
        (44, 56, False),
        (43, 57, True),
    ])
    def test_symmetry_imbalance(self, left, right, expected):
        snap = _make_snapshot(symmetry=SymmetrySplit(left_pct=left, right_pct=right))
        assert compute_requires_change(snap) is expected

    def test_rest_overlay_always_has_something(self):
        snap = _make_snapshot(app_surface=AppSurface.REST_OVERLAY)
        assert compute_requires_change(snap) is True

    def test_struggle(self):
        assert compute_requires_change(_make_snapshot(intent=Intent.STRUGGLE)) is True

    def test_critical_readiness_while_executing(self):
        snap = _make_snapshot(readiness_now=30, phase=ExecutionPhase.EXECUTING)
        assert compute_requires_change(snap) is True

    def test_eager_while_planning(self):
        assert compute_requires_change(_make_snapshot(readiness_now=80)) is True


class TestClassifyIntent:

    @pytest.mark.parametrize("utterance,expected", [
        ("this is too heavy", Intent.STRUGGLE),
        ("What's next?", Intent.ASK),
        ("can I add weight", Intent.ASK),
        ("felt strong, when do I go again", Intent.ASK),
        ("new PR today", Intent.BRAG),
        ("that felt great", Intent.BRAG),
        ("let me rest a minute", Intent.STALL),
        ("approach the bar", Intent.REPORT),
        ("", Intent.REPORT),
    ])
    def test_classify(self, utterance, expected):
        assert classify_intent(utterance) == expected


class TestResolveSnapshot:

    def test_fills_unset_fields(self):
        snap = _make_snapshot(
            app_surface=AppSurface.WORKING_SET,
            utterance="this is too heavy, struggling",
        )
        resolved = resolve_snapshot(snap)
        assert resolved.intent == Intent.STRUGGLE
        # A struggling lifter counts as a change.
        assert resolved.requires_change is True
        assert snap.intent is None

    def test_keeps_caller_values(self):
        snap = _make_snapshot(
            app_surface=AppSurface.REST_OVERLAY,
            intent=Intent.BRAG,
            requires_change=False,
            utterance="struggling",
        )
        assert resolve_snapshot(snap) is snap

    def test_quiet_by_default(self):
        resolved = resolve_snapshot(_make_snapshot())
        assert resolved.intent == Intent.REPORT
        assert resolved.requires_change is False
