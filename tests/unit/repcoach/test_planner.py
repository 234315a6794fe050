"""
Unit tests for the plan selector.

Each scenario builds a DecisionContext, runs decide_plan and checks the
chosen mode, the reason codes and the shape of the decision trace.
"""

import pytest

from app.repcoach.planner import PlannerConfig, decide_plan, project_options
from app.schemas.plan import (
    DecisionContext,
    FatigueDelta,
    PlanMode,
    SafetyFlags,
)


# ======================================================================
# Helpers
# ======================================================================


def _make_ctx(**overrides) -> DecisionContext:
    defaults = dict(
        readiness=82,
        hours_since_last_same_muscle=48,
        weekly_sets_done=4,
        weekly_sets_target=12,
        fatigue=FatigueDelta(amplitude_drop_pct=5, rate_of_rise_drop_pct=5),
        symmetry_pct=95,
    )
    defaults.update(overrides)
    return DecisionContext(**defaults)


_SEVERE = FatigueDelta(amplitude_drop_pct=35, rate_of_rise_drop_pct=45)


# ======================================================================
# Mode selection
# ======================================================================


class TestDecidePlan:
    """Chosen mode and reason codes for the common scenarios."""

    def test_fresh_lifter_trains(self):
        result = decide_plan(_make_ctx())
        assert result.plan.mode == PlanMode.TRAIN
        assert result.plan.reason_codes == [
            "IN_WINDOW", "SYMMETRY_OK", "WEEKLY_VOLUME_UNDER",
        ]
        assert result.plan.confidence == pytest.approx(0.7)
        assert result.plan.primary_actions[0] == "Do 2 hard 3-6-rep set(s)"
        assert result.plan.projections.train_block.expected_sets == 2

    def test_cooldown_prefers_active_recovery(self):
        result = decide_plan(_make_ctx(hours_since_last_same_muscle=6))
        assert result.plan.mode == PlanMode.ACTIVE_RECOVERY
        assert result.plan.reason_codes == ["COOLDOWN_24H"]
        assert result.plan.projections.active_recovery_30m.readiness_delta == 4.0

    def test_hr_warning_removes_train(self):
        result = decide_plan(_make_ctx(flags=SafetyFlags(hr_warning=True)))
        assert result.plan.mode == PlanMode.ACTIVE_RECOVERY
        assert "HR_WARNING" in result.plan.reason_codes
        assert PlanMode.TRAIN not in {o.id for o in result.trace.options}

    def test_weekly_volume_met_removes_train(self):
        result = decide_plan(_make_ctx(weekly_sets_done=12))
        assert result.plan.mode == PlanMode.ACTIVE_RECOVERY
        assert result.plan.reason_codes == ["WEEKLY_VOLUME_MET"]

    @pytest.mark.parametrize("overrides", [
        {},
        {"readiness": 95},
        {"flags": SafetyFlags(hr_warning=True)},
        {"hours_since_last_same_muscle": 2},
        {"weekly_sets_done": 0},
    ])
    def test_severe_fatigue_forces_full_rest(self, overrides):
        result = decide_plan(_make_ctx(fatigue=_SEVERE, **overrides))
        assert result.plan.mode == PlanMode.FULL_REST
        assert [o.id for o in result.trace.options] == [PlanMode.FULL_REST]
        assert result.plan.reason_codes[0] == "SEVERE_FATIGUE"

    def test_severe_on_rate_of_rise_alone(self):
        fatigue = FatigueDelta(amplitude_drop_pct=5, rate_of_rise_drop_pct=41)
        assert decide_plan(_make_ctx(fatigue=fatigue)).plan.mode == PlanMode.FULL_REST

    def test_low_readiness_reason(self):
        result = decide_plan(_make_ctx(fatigue=_SEVERE, readiness=40))
        assert result.plan.reason_codes == ["SEVERE_FATIGUE", "LOW_READINESS"]

    def test_low_symmetry_falls_back_to_seven_day_average(self):
        result = decide_plan(_make_ctx(symmetry_pct=None, symmetry_7d_avg=85))
        assert result.plan.mode == PlanMode.ACTIVE_RECOVERY
        assert result.plan.reason_codes == ["SYMMETRY_LOW"]

    def test_one_set_left(self):
        result = decide_plan(_make_ctx(weekly_sets_done=11))
        assert result.plan.mode == PlanMode.TRAIN
        assert result.plan.projections.train_block.expected_sets == 1


# ======================================================================
# Decision trace
# ======================================================================


class TestDecisionTrace:

    def test_options_ranked_by_utility(self):
        trace = decide_plan(_make_ctx()).trace
        utilities = [o.utility for o in trace.options]
        assert utilities == sorted(utilities, reverse=True)
        assert [o.id for o in trace.options] == [
            PlanMode.TRAIN, PlanMode.ACTIVE_RECOVERY, PlanMode.FULL_REST,
        ]
        assert trace.options[0].utility == pytest.approx(1.6)

    def test_chosen_matches_plan(self):
        result = decide_plan(_make_ctx(hours_since_last_same_muscle=6))
        assert result.trace.chosen_id == result.plan.mode
        assert result.trace.reason_codes == result.plan.reason_codes
        assert result.trace.options[0].id == result.trace.chosen_id

    def test_ties_keep_mode_order(self):
        cfg = PlannerConfig(weight_gain=0, weight_readiness=0, weight_time=0)
        result = decide_plan(_make_ctx(), cfg)
        assert result.plan.mode == PlanMode.TRAIN
        assert [o.id for o in result.trace.options] == [
            PlanMode.TRAIN, PlanMode.ACTIVE_RECOVERY, PlanMode.FULL_REST,
        ]

    def test_missing_fatigue_lowers_confidence(self):
        result = decide_plan(_make_ctx(fatigue=None))
        assert result.plan.mode == PlanMode.TRAIN
        assert result.plan.confidence == pytest.approx(0.6)

    def test_train_never_explained_with_met_volume(self):
        for done in range(0, 12):
            result = decide_plan(_make_ctx(weekly_sets_done=done))
            if result.plan.mode == PlanMode.TRAIN:
                assert "WEEKLY_VOLUME_MET" not in result.plan.reason_codes


# ======================================================================
# project_options
# ======================================================================


class TestProjectOptions:

    def test_ungated(self):
        options = project_options(_make_ctx(fatigue=_SEVERE))
        assert set(options) == set(PlanMode)
        assert options[PlanMode.TRAIN].readiness_delta == -9.0

    @pytest.mark.parametrize("slope,expected", [
        (None, 3.5),
        (3.0, 4.5),
        (30.0, 5.0),
        (-30.0, 2.0),
    ])
    def test_rest_delta_follows_slope(self, slope, expected):
        options = project_options(_make_ctx(readiness_slope_per_hr=slope))
        assert options[PlanMode.FULL_REST].readiness_delta == pytest.approx(expected)
