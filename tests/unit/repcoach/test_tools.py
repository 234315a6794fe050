"""Unit tests for the home coach toolbox and its dispatcher."""

import pytest

from app.repcoach.tools import TOOL_SPECS, CoachToolbox, ToolError
from app.schemas.coach import ActionId
from app.schemas.plan import DecisionContext, FatigueDelta, PlanMode
from app.services.text_generation import ToolCall


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


class TestGetContext:

    def test_payload(self):
        payload = CoachToolbox(_make_ctx()).get_context()
        assert payload.readiness == 82
        assert payload.weekly.done == 4
        assert payload.weekly.target == 12
        assert payload.fatigue.amplitude_drop_pct == 5
        assert payload.policy.strength_window_reps == (3, 6)
        assert payload.allowed_actions == list(ActionId)

    def test_allowed_actions_follow_gates(self):
        payload = CoachToolbox(_make_ctx(fatigue=_SEVERE)).get_context()
        assert payload.allowed_actions == [ActionId.PLAN_TOMORROW]

    def test_symmetry_falls_back_to_average(self):
        payload = CoachToolbox(_make_ctx(symmetry_pct=None, symmetry_7d_avg=91)).get_context()
        assert payload.symmetry_pct == 91

    def test_missing_fatigue(self):
        payload = CoachToolbox(_make_ctx(fatigue=None)).get_context()
        assert payload.fatigue.amplitude_drop_pct is None


class TestVerifyPlan:

    def test_selector_choice_is_ok(self):
        result = CoachToolbox(_make_ctx()).verify_plan(PlanMode.TRAIN)
        assert result.ok is True
        assert result.safe_mode == PlanMode.TRAIN

    def test_other_mode_rejected(self):
        toolbox = CoachToolbox(_make_ctx(hours_since_last_same_muscle=6))
        result = toolbox.verify_plan(PlanMode.TRAIN)
        assert result.ok is False
        assert result.safe_mode == PlanMode.ACTIVE_RECOVERY
        assert result.reason == "COOLDOWN_24H"

    @pytest.mark.parametrize("mode", list(PlanMode))
    def test_safe_mode_never_changes(self, mode):
        toolbox = CoachToolbox(_make_ctx(fatigue=_SEVERE))
        assert toolbox.verify_plan(mode).safe_mode == PlanMode.FULL_REST


class TestProjectAndCommit:

    def test_project_strength_block(self):
        proj = CoachToolbox(_make_ctx()).project_action(ActionId.START_STRENGTH_BLOCK)
        assert proj.effects.strength_gain_pct == pytest.approx(1.6)
        assert proj.effects.readiness_delta_pts == pytest.approx(-4.0)
        assert proj.effects.recovery_hours == pytest.approx(20.0)

    def test_project_rest_reports_zero_gain(self):
        proj = CoachToolbox(_make_ctx()).project_action(ActionId.PLAN_TOMORROW)
        assert proj.effects.strength_gain_pct == 0.0
        assert proj.effects.readiness_delta_pts == pytest.approx(3.5)

    def test_commit_allowed(self):
        toolbox = CoachToolbox(_make_ctx())
        assert toolbox.commit_action(ActionId.START_STRENGTH_BLOCK).ok is True
        assert toolbox.committed == [ActionId.START_STRENGTH_BLOCK]

    def test_commit_gated(self):
        toolbox = CoachToolbox(_make_ctx(fatigue=_SEVERE))
        assert toolbox.commit_action(ActionId.START_STRENGTH_BLOCK).ok is False
        assert toolbox.committed == []


class TestDispatch:

    def test_every_spec_has_handler(self):
        toolbox = CoachToolbox(_make_ctx())
        args = {"action_id": "plan_tomorrow", "mode": "FULL_REST"}
        for spec in TOOL_SPECS:
            call_args = {name: args[name] for name in spec.params}
            assert isinstance(toolbox.dispatch(ToolCall(spec.name, call_args)), dict)

    def test_json_ready_result(self):
        result = CoachToolbox(_make_ctx()).dispatch(ToolCall("verify_plan", {"mode": "TRAIN"}))
        assert result == {"ok": True, "safe_mode": "TRAIN", "reason": None}

    @pytest.mark.parametrize("call", [
        ToolCall("delete_user"),
        ToolCall("verify_plan"),
        ToolCall("verify_plan", {"mode": "SPRINT"}),
        ToolCall("project_action", {"action_id": 7}),
    ])
    def test_bad_calls(self, call):
        with pytest.raises(ToolError) as excinfo:
            CoachToolbox(_make_ctx()).dispatch(call)
        assert excinfo.value.tool_name == call.name
