"""
Unit tests for the home coach turn.

A scripted generator replays a fixed list of model turns (tool calls or
final text) and records every payload it was sent, so each scenario can
check the final suggestion and the path taken to reach it.
"""

import json

import pytest

from app.repcoach.home_coach import fallback_coach, parse_coach_json, run_home_coach
from app.repcoach.session import CoachSession
from app.repcoach.variety import CoachCopy
from app.schemas.coach import (
    QuestionJSON,
    SuggestionJSON,
    WhatIfEffects,
    WhatIfNumeric,
)
from app.schemas.plan import DecisionContext, FatigueDelta, PlanMode
from app.services.text_generation import (
    CollaboratorError,
    GenerationResult,
    ReplyValidationError,
    ToolCall,
    UnavailableTextGenerator,
)


# ======================================================================
# Doubles and helpers
# ======================================================================


class _ScriptedGenerator:
    """Replays ``steps``; an Exception step is raised instead of returned."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = []

    def generate(self, system, messages, sampler=None, tools=None):
        self.calls.append(list(messages))
        if not self.steps:
            raise CollaboratorError("script exhausted")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    def intents(self) -> list:
        return [json.loads(msgs[0].text)["intent"] for msgs in self.calls]


class _LoopingGenerator:
    """Never stops calling tools."""

    def __init__(self):
        self.calls = 0

    def generate(self, system, messages, sampler=None, tools=None):
        self.calls += 1
        return GenerationResult(tool_calls=[ToolCall("get_context")])


def _tool(name: str, **args) -> GenerationResult:
    return GenerationResult(tool_calls=[ToolCall(name, args)])


def _suggest(mode: PlanMode, message: str, cta: str, **extra) -> GenerationResult:
    body = {"type": "suggestion", "mode": mode.value, "message": message, "cta": cta}
    body.update(extra)
    return GenerationResult(text=json.dumps(body))


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
_TRAIN_COPY = "Two crisp triples now, then call it."
_RECOVERY_COPY = "Easy spin and hip openers today so the next block pops."


@pytest.fixture
def session():
    return CoachSession(session_id="lifter-1")


# ======================================================================
# Scenarios
# ======================================================================


class TestScenarios:
    """End-to-end turns against the real plan selector."""

    def test_fresh_lifter_trains(self, session):
        gen = _ScriptedGenerator(
            _tool("get_context"),
            _tool("verify_plan", mode="TRAIN"),
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
        )
        result = run_home_coach(_make_ctx(), session, gen)

        assert isinstance(result, SuggestionJSON)
        assert result.mode == PlanMode.TRAIN
        assert result.message == _TRAIN_COPY
        assert len(gen.calls) == 3
        tool_turn = gen.calls[1][-1]
        assert tool_turn.tool_results[0].name == "get_context"
        assert tool_turn.tool_results[0].result["readiness"] == 82
        assert len(session.copy_history) == 1

    def test_cooldown_rewrite_accepted(self, session):
        gen = _ScriptedGenerator(
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
            _suggest(PlanMode.ACTIVE_RECOVERY, _RECOVERY_COPY, "Start recovery"),
        )
        result = run_home_coach(_make_ctx(hours_since_last_same_muscle=6), session, gen)

        assert result.mode == PlanMode.ACTIVE_RECOVERY
        assert result.message == _RECOVERY_COPY
        assert gen.intents() == ["home_coach", "rewrite_for_safe_mode"]
        rewrite_payload = json.loads(gen.calls[1][0].text)
        assert rewrite_payload["safe_mode"] == "ACTIVE_RECOVERY"
        assert rewrite_payload["previous"]["mode"] == "TRAIN"

    def test_cooldown_rewrite_still_unsafe(self, session):
        gen = _ScriptedGenerator(
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
            _suggest(PlanMode.TRAIN, "Go heavy anyway, you earned it.", "Start strength block"),
        )
        result = run_home_coach(_make_ctx(hours_since_last_same_muscle=6), session, gen)
        assert result == fallback_coach(PlanMode.ACTIVE_RECOVERY)

    def test_severe_fatigue_without_generator(self, session):
        result = run_home_coach(_make_ctx(fatigue=_SEVERE), session, UnavailableTextGenerator())
        assert result.mode == PlanMode.FULL_REST
        assert result.cta == "Plan tomorrow"
        assert len(session.copy_history) == 0

    def test_unsafe_choice_with_failed_rewrite(self, session):
        gen = _ScriptedGenerator(
            _tool("verify_plan", mode="TRAIN"),
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
            CollaboratorError("rate limited"),
        )
        result = run_home_coach(_make_ctx(fatigue=_SEVERE), session, gen)
        assert result == fallback_coach(PlanMode.FULL_REST)
        assert gen.intents() == ["home_coach", "home_coach", "rewrite_for_safe_mode"]


# ======================================================================
# Tool loop and output validation
# ======================================================================


class TestToolLoop:

    def test_turn_cap(self, session):
        gen = _LoopingGenerator()
        result = run_home_coach(_make_ctx(), session, gen, max_turns=8)
        assert gen.calls == 8
        assert result == fallback_coach(PlanMode.TRAIN)

    def test_unknown_tool_falls_back(self, session):
        gen = _ScriptedGenerator(_tool("drop_tables"))
        assert run_home_coach(_make_ctx(), session, gen) == fallback_coach(PlanMode.TRAIN)

    @pytest.mark.parametrize("text", [
        "",
        "Sure! Here's my suggestion.",
        json.dumps({"mode": "TRAIN", "message": _TRAIN_COPY, "cta": "Go"}),
        json.dumps({
            "type": "suggestion", "mode": "TRAIN", "message": _TRAIN_COPY,
            "cta": "Go", "emoji": "x",
        }),
        json.dumps({"type": "suggestion", "mode": "SPRINT", "message": _TRAIN_COPY, "cta": "Go"}),
    ])
    def test_invalid_final_text(self, session, text):
        gen = _ScriptedGenerator(GenerationResult(text=text))
        assert run_home_coach(_make_ctx(), session, gen) == fallback_coach(PlanMode.TRAIN)

    def test_question_passes_through(self, session):
        gen = _ScriptedGenerator(GenerationResult(text=json.dumps({
            "type": "question", "message": "Are your quads still sore from Tuesday?",
        })))
        result = run_home_coach(_make_ctx(readiness=60), session, gen)
        assert isinstance(result, QuestionJSON)
        assert len(session.copy_history) == 0


class TestParseCoachJson:

    def test_suggestion(self):
        text = json.dumps({
            "type": "suggestion", "mode": "FULL_REST", "message": "Rest up.", "cta": "Plan tomorrow",
        })
        assert parse_coach_json(text).mode == PlanMode.FULL_REST

    def test_rejects_array(self):
        with pytest.raises(ReplyValidationError):
            parse_coach_json("[]")


# ======================================================================
# Variety and benefit clause
# ======================================================================


class TestPolish:

    def test_repeat_copy_is_reworded(self, session):
        session.copy_history.push(CoachCopy(message=_TRAIN_COPY, cta="Start strength block"))
        fresh = "Groove one tidy block of heavy work and stop while fast."
        gen = _ScriptedGenerator(
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
            _suggest(PlanMode.TRAIN, fresh, "Start strength block"),
        )
        result = run_home_coach(_make_ctx(), session, gen)
        assert result.message == fresh
        assert gen.intents() == ["home_coach", "refresh_wording"]
        assert next(iter(session.copy_history)).message == fresh

    def test_failed_rewording_keeps_original(self, session):
        session.copy_history.push(CoachCopy(message=_TRAIN_COPY))
        gen = _ScriptedGenerator(
            _suggest(PlanMode.TRAIN, _TRAIN_COPY, "Start strength block"),
            CollaboratorError("timeout"),
        )
        assert run_home_coach(_make_ctx(), session, gen).message == _TRAIN_COPY

    def test_numeric_benefit_wins(self, session):
        gen = _ScriptedGenerator(_suggest(
            PlanMode.TRAIN, _TRAIN_COPY, "Start strength block",
            what_if={
                "kind": "walk", "impact": "HIGH", "confidence": 0.9,
                "title": "Easy walk", "clause": "a short walk speeds the rebound",
            },
        ))
        numeric = WhatIfNumeric(
            action_id="sleep_early", confidence=0.8,
            effects=WhatIfEffects(recovery_hours_saved=6),
        )
        result = run_home_coach(_make_ctx(), session, gen, what_if_numeric=numeric)
        assert result.secondary == "saving about 6h of recovery"
        assert result.what_if is None
        assert [e.key for e in session.whatif_ledger.shown] == ["sleep_early"]

    def test_qualitative_benefit(self, session):
        gen = _ScriptedGenerator(_suggest(
            PlanMode.TRAIN, _TRAIN_COPY, "Start strength block",
            what_if={
                "kind": "mobility", "impact": "MEDIUM", "confidence": 0.7,
                "title": "Hip mobility", "clause": "loose hips keep depth honest",
            },
        ))
        result = run_home_coach(_make_ctx(), session, gen, minutes_available=15)
        assert result.secondary == "loose hips keep depth honest"
