"""
Tools the home coach model may call.

All four tools read one :class:`DecisionContext`, fixed for the turn:

- ``get_context()``            signals, weekly volume, flags, policy constants
- ``project_action(action_id)`` projected effect of an action
- ``verify_plan(mode)``        authoritative safety check, backed by the plan selector
- ``commit_action(action_id)`` record the accepted action

``verify_plan`` is the only tool whose answer the app enforces: a mode is
``ok`` only when it equals the plan selector's choice, and ``safe_mode`` is
always that choice.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from app.repcoach.planner import decide_plan, project_options
from app.schemas.coach import (
    ActionId,
    CommitResult,
    ContextFatigue,
    ContextFlags,
    ContextPayload,
    ContextPolicy,
    Projection,
    ProjectionEffects,
    VerifyResult,
    WeeklyVolume,
)
from app.schemas.plan import DecisionContext, PlanMode, PlanResult
from app.services.text_generation import ToolCall, ToolParam, ToolSpec

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """The model called a tool that does not exist or with bad arguments."""

    def __init__(self, message: str, tool_name: str):
        super().__init__(message)
        self.tool_name = tool_name


ACTION_MODES: Dict[ActionId, PlanMode] = {
    ActionId.START_STRENGTH_BLOCK: PlanMode.TRAIN,
    ActionId.START_RECOVERY_30M: PlanMode.ACTIVE_RECOVERY,
    ActionId.PLAN_TOMORROW: PlanMode.FULL_REST,
}

_ACTION_SUMMARIES: Dict[ActionId, str] = {
    ActionId.START_STRENGTH_BLOCK: "Short, hard block for strength",
    ActionId.START_RECOVERY_30M: "Quicker bounce-back",
    ActionId.PLAN_TOMORROW: "Full reset for a better block tomorrow",
}

_ACTION_CHOICES = tuple(a.value for a in ActionId)
_MODE_CHOICES = tuple(m.value for m in PlanMode)

TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name="get_context",
        description="Fetch current readiness, fatigue, weekly volume, flags and allowed actions.",
    ),
    ToolSpec(
        name="project_action",
        description="Project the outcome of an action. Use an action_id from allowed_actions.",
        params={"action_id": ToolParam("Action to project", _ACTION_CHOICES)},
    ),
    ToolSpec(
        name="verify_plan",
        description="REQUIRED before the final suggestion. The app verifies the chosen mode.",
        params={"mode": ToolParam("Mode to verify", _MODE_CHOICES)},
    ),
    ToolSpec(
        name="commit_action",
        description="Commit the approved action to the session log.",
        params={"action_id": ToolParam("Action to commit", _ACTION_CHOICES)},
    ),
]


def _as_dict(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json")


class CoachToolbox:
    """Tool implementations over one decision context."""

    def __init__(self, ctx: DecisionContext):
        self.ctx = ctx
        self.committed: List[ActionId] = []
        self._plan: Optional[PlanResult] = None
        self._handlers: Dict[str, Callable[[Dict[str, Any]], BaseModel]] = {
            "get_context": lambda args: self.get_context(),
            "project_action": lambda args: self.project_action(
                self._parse(ActionId, args, "action_id", "project_action"),
            ),
            "verify_plan": lambda args: self.verify_plan(
                self._parse(PlanMode, args, "mode", "verify_plan"),
            ),
            "commit_action": lambda args: self.commit_action(
                self._parse(ActionId, args, "action_id", "commit_action"),
            ),
        }

    @property
    def plan(self) -> PlanResult:
        """Plan selector result for the context, computed once."""
        if self._plan is None:
            self._plan = decide_plan(self.ctx)
        return self._plan

    @property
    def safe_mode(self) -> PlanMode:
        return self.plan.plan.mode

    # -- tools ---------------------------------------------------------------

    def allowed_actions(self) -> List[ActionId]:
        surviving = {o.id for o in self.plan.trace.options}
        return [a for a, mode in ACTION_MODES.items() if mode in surviving]

    def get_context(self) -> ContextPayload:
        ctx = self.ctx
        fatigue = ctx.fatigue
        return ContextPayload(
            readiness=ctx.readiness,
            symmetry_pct=ctx.symmetry_pct if ctx.symmetry_pct is not None else ctx.symmetry_7d_avg,
            fatigue=ContextFatigue(
                amplitude_drop_pct=fatigue.amplitude_drop_pct if fatigue else None,
                rate_of_rise_drop_pct=fatigue.rate_of_rise_drop_pct if fatigue else None,
            ),
            hours_since_last_same_muscle=ctx.hours_since_last_same_muscle,
            weekly=WeeklyVolume(done=ctx.weekly_sets_done, target=ctx.weekly_sets_target),
            flags=ContextFlags(
                hr_warning=ctx.flags.hr_warning,
                soreness_high=ctx.flags.soreness_high,
            ),
            last_end_zone=ctx.last_end_zone,
            policy=ContextPolicy(
                strength_window_reps=ctx.strength_window_reps,
                symmetry_ideal=ctx.symmetry_ideal,
                fatigue_zones={
                    "amplitude": ctx.fatigue_zones.amplitude,
                    "rate_of_rise": ctx.fatigue_zones.rate_of_rise,
                },
            ),
            allowed_actions=self.allowed_actions(),
        )

    def project_action(self, action_id: ActionId) -> Projection:
        option = project_options(self.ctx)[ACTION_MODES[action_id]]
        return Projection(
            action_id=action_id,
            effects=ProjectionEffects(
                strength_gain_pct=option.strength_gain_pct,
                readiness_delta_pts=option.readiness_delta,
                recovery_hours=option.hours_to_recover,
            ),
            summary=_ACTION_SUMMARIES[action_id],
        )

    def verify_plan(self, mode: PlanMode) -> VerifyResult:
        safe = self.safe_mode
        if mode == safe:
            return VerifyResult(ok=True, safe_mode=safe)
        reasons = ", ".join(self.plan.trace.reason_codes) or "lower utility"
        logger.info("verify_plan(%s) rejected, safe mode %s (%s)", mode.value, safe.value, reasons)
        return VerifyResult(ok=False, safe_mode=safe, reason=reasons)

    def commit_action(self, action_id: ActionId) -> CommitResult:
        if action_id not in self.allowed_actions():
            return CommitResult(ok=False)
        self.committed.append(action_id)
        return CommitResult(ok=True)

    # -- dispatch ------------------------------------------------------------

    @staticmethod
    def _parse(enum_cls, args: Dict[str, Any], key: str, tool_name: str):
        try:
            return enum_cls(args[key])
        except KeyError as exc:
            raise ToolError(f"missing argument {key!r}", tool_name) from exc
        except ValueError as exc:
            raise ToolError(f"invalid {key} {args.get(key)!r}", tool_name) from exc

    def dispatch(self, call: ToolCall) -> Dict[str, Any]:
        """Run one tool call and return its JSON-ready result.

        Raises:
            ToolError: unknown tool or bad arguments.
        """
        handler = self._handlers.get(call.name)
        if handler is None:
            raise ToolError(f"unknown tool {call.name!r}", call.name)
        return _as_dict(handler(call.args or {}))
