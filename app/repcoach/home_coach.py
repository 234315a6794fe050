"""
Home coach — model-first, app-verified suggestion for the home screen.

Flow of one turn
----------------
1. **Tool loop.**  The model is called with the home coach prompt and may
   call ``get_context``, ``project_action``, ``verify_plan`` and
   ``commit_action``.  Each model reply is either tool calls (answered and
   sent back) or final text.  The loop is capped at ``max_turns`` calls.
2. **Parse or reject.**  Final text must decode to exactly one
   ``SuggestionJSON`` or ``QuestionJSON``.
3. **Verify.**  A suggestion's mode is checked with ``verify_plan``.  If
   it is not ok, the model gets one rewrite request for the safe mode.
   A rewrite that fails or still names another mode is replaced by the
   fallback copy for the safe mode.
4. **Variety.**  A suggestion that repeats recent copy gets one rewording
   request; the original stays if the rewording does not help.
5. **Benefit clause.**  At most one what-if clause goes into
   ``secondary``, numeric preferred.
6. The suggestion is pushed to the session's copy history.

Questions skip steps 3 to 6.  Any transport, validation or tool error in
step 1 or 2 ends in the fallback copy for the plan selector's mode, so a
turn always produces a valid result.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Union

from pydantic import TypeAdapter, ValidationError

from app.core.config import settings
from app.repcoach.prompts import TRAINER_SAMPLER, home_coach_system_prompt
from app.repcoach.session import CoachSession
from app.repcoach.tools import TOOL_SPECS, CoachToolbox, ToolError
from app.repcoach.variety import CoachCopy, ensure_variety
from app.repcoach.whatif import pick_benefit_clause
from app.schemas.coach import (
    CoachJSON,
    QuestionJSON,
    SuggestionJSON,
    WhatIfContext,
    WhatIfNumeric,
)
from app.schemas.plan import DecisionContext, PlanMode
from app.services.text_generation import (
    CollaboratorError,
    Message,
    ReplyValidationError,
    TextGenerator,
    ToolResult,
    call_with_timeout,
    parse_json_object,
)

logger = logging.getLogger(__name__)

CoachOutput = Union[SuggestionJSON, QuestionJSON]

_COACH_JSON_ADAPTER: TypeAdapter[CoachOutput] = TypeAdapter(CoachJSON)
_SECONDARY_MAX_CHARS = 160

_FALLBACK_COPY: Dict[PlanMode, tuple[str, str]] = {
    PlanMode.TRAIN: (
        "Build strength now: short, clean block; stop before power or balance slips.",
        "Start strength block",
    ),
    PlanMode.ACTIVE_RECOVERY: (
        "Bank the work with light cardio and mobility so tomorrow hits harder.",
        "Start recovery (20-30 min)",
    ),
    PlanMode.FULL_REST: (
        "Call it for today: sleep, protein, and a short walk set up a better block.",
        "Plan tomorrow",
    ),
}

# Failures that end a model exchange and fall back to fixed copy.
_EXCHANGE_ERRORS = (CollaboratorError, ReplyValidationError, ToolError)


# ======================================================================
# Helpers
# ======================================================================


def fallback_coach(mode: PlanMode) -> SuggestionJSON:
    """Deterministic suggestion for ``mode``."""
    message, cta = _FALLBACK_COPY[mode]
    return SuggestionJSON(mode=mode, message=message, cta=cta)


def parse_coach_json(text: str) -> CoachOutput:
    """Decode final model text into a suggestion or a question.

    Raises:
        ReplyValidationError: anything that is not exactly one valid object.
    """
    data = parse_json_object(text)
    try:
        return _COACH_JSON_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise ReplyValidationError(f"invalid coach JSON: {exc}") from exc


def _copy_text(output: CoachOutput) -> str:
    if isinstance(output, QuestionJSON):
        return output.message
    return " | ".join([
        output.message, output.cta, output.secondary or "", output.science or "",
    ])


def _converse(
    generator: TextGenerator,
    system: str,
    payload: Dict[str, Any],
    toolbox: CoachToolbox,
    max_turns: int,
    timeout_s: float,
) -> CoachOutput:
    """Run the capped tool loop and return the parsed final reply."""
    messages = [Message(role="user", text=json.dumps(payload))]
    for turn in range(1, max_turns + 1):
        result = call_with_timeout(
            lambda: generator.generate(
                system, messages, sampler=TRAINER_SAMPLER, tools=TOOL_SPECS,
            ),
            timeout_s,
        )
        if not result.tool_calls:
            return parse_coach_json(result.text)

        logger.debug(
            "Turn %d: %s", turn, ", ".join(c.name for c in result.tool_calls),
        )
        messages.append(Message(role="model", tool_calls=list(result.tool_calls)))
        messages.append(Message(
            role="user",
            tool_results=[
                ToolResult(name=call.name, result=toolbox.dispatch(call))
                for call in result.tool_calls
            ],
        ))
    raise CollaboratorError(f"no final reply after {max_turns} tool turns")


# ======================================================================
# Public API
# ======================================================================


def run_home_coach(
    ctx: DecisionContext,
    session: CoachSession,
    generator: TextGenerator,
    minutes_available: Optional[float] = None,
    what_if_numeric: Optional[WhatIfNumeric] = None,
    max_turns: Optional[int] = None,
    timeout_s: Optional[float] = None,
) -> CoachOutput:
    """One home-screen coaching turn.  Never raises for model failures."""
    max_turns = settings.COACH_MAX_TOOL_TURNS if max_turns is None else max_turns
    timeout_s = settings.COACH_LLM_TIMEOUT_S if timeout_s is None else timeout_s
    toolbox = CoachToolbox(ctx)
    system = home_coach_system_prompt()

    def ask(payload: Dict[str, Any]) -> CoachOutput:
        return _converse(generator, system, payload, toolbox, max_turns, timeout_s)

    with session.lock:
        try:
            output = ask({"intent": "home_coach"})
        except _EXCHANGE_ERRORS as exc:
            logger.warning("Home coach fell back to %s: %s", toolbox.safe_mode.value, exc)
            return fallback_coach(toolbox.safe_mode)

        if isinstance(output, QuestionJSON):
            return output

        verification = toolbox.verify_plan(output.mode)
        if not verification.ok:
            safe = verification.safe_mode
            try:
                rewrite = ask({
                    "intent": "rewrite_for_safe_mode",
                    "safe_mode": safe.value,
                    "previous": output.model_dump(mode="json"),
                })
            except _EXCHANGE_ERRORS as exc:
                logger.warning("Safe-mode rewrite failed, using fallback: %s", exc)
                rewrite = None
            if not isinstance(rewrite, SuggestionJSON) or rewrite.mode != safe:
                logger.warning(
                    "Suggestion %s downgraded to fallback %s",
                    output.mode.value, safe.value,
                )
                output = fallback_coach(safe)
            else:
                output = rewrite

        mode = output.mode

        def reword(hint: str) -> Optional[SuggestionJSON]:
            try:
                candidate = ask({
                    "intent": "refresh_wording",
                    "hint": hint,
                    "previous": output.model_dump(mode="json"),
                })
            except _EXCHANGE_ERRORS as exc:
                logger.warning("Rewording request failed: %s", exc)
                return None
            if isinstance(candidate, SuggestionJSON) and candidate.mode == mode:
                return candidate
            return None

        output = ensure_variety(output, session.copy_history, reword, _copy_text)

        clause = pick_benefit_clause(
            WhatIfContext(
                safe_mode=mode,
                minutes_available=minutes_available,
                hours_since_last_same_muscle=ctx.hours_since_last_same_muscle,
            ),
            session.whatif_ledger,
            numeric=what_if_numeric,
            qual=output.what_if,
        )
        updates: Dict[str, Any] = {"what_if": None}
        if clause:
            updates["secondary"] = clause[:_SECONDARY_MAX_CHARS]
        output = output.model_copy(update=updates)

        session.copy_history.push(CoachCopy(
            message=output.message,
            cta=output.cta,
            secondary=output.secondary,
            science=output.science,
        ))
        return output
