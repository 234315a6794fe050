"""
Coaching policy table.

One :class:`Policy` per app surface, refined by an optional experience-band
override.  Quiet surfaces (home, rest overlay, recovery mode) only speak
when the engine says something needs to change.

Overrides replace fields wholesale: a novice override with
``allowed_topics`` swaps the whole topic set, it does not extend it.
"""

from __future__ import annotations

from app.schemas.policy import (
    AppSurface,
    CoachObjective,
    ExperienceBand,
    Policy,
    PolicyOverride,
    Topic,
)

# ======================================================================
# Tables
# ======================================================================

_PLANNING_TOPICS = frozenset({Topic.PLAN, Topic.READINESS_BUDGET})

BASE_POLICY: dict[AppSurface, Policy] = {
    AppSurface.HOME: Policy(
        objective=CoachObjective.DECIDE_NEXT_BLOCK,
        allowed_topics=_PLANNING_TOPICS,
        banned_topics=frozenset({
            Topic.LOAD, Topic.TEMPO, Topic.DEPTH, Topic.STANCE, Topic.SYMMETRY,
        }),
        word_budget=18,
        silent_unless_change=True,
    ),
    AppSurface.PRE_SESSION: Policy(
        objective=CoachObjective.DECIDE_NEXT_BLOCK,
        allowed_topics=_PLANNING_TOPICS,
        word_budget=18,
    ),
    AppSurface.WARMUP: Policy(
        objective=CoachObjective.FIX_SINGLE_FAULT,
        allowed_topics=frozenset({
            Topic.TEMPO, Topic.DEPTH, Topic.STANCE, Topic.SYMMETRY,
        }),
        word_budget=18,
    ),
    AppSurface.WORKING_SET: Policy(
        objective=CoachObjective.EXECUTE_REPS,
        allowed_topics=frozenset({
            Topic.LOAD, Topic.REPS, Topic.TEMPO, Topic.DEPTH, Topic.SYMMETRY,
        }),
        word_budget=18,
    ),
    AppSurface.TOP_SET: Policy(
        objective=CoachObjective.PUSH_OR_HOLD,
        allowed_topics=frozenset({
            Topic.LOAD, Topic.REPS, Topic.DEPTH, Topic.TEMPO, Topic.READINESS_BUDGET,
        }),
        word_budget=18,
    ),
    AppSurface.BACKOFF: Policy(
        objective=CoachObjective.EXECUTE_REPS,
        allowed_topics=frozenset({
            Topic.TEMPO, Topic.DEPTH, Topic.REPS, Topic.SYMMETRY,
        }),
        word_budget=16,
    ),
    AppSurface.REST_OVERLAY: Policy(
        objective=CoachObjective.PROTECT_BUDGET,
        allowed_topics=frozenset({Topic.READINESS_BUDGET, Topic.PLAN, Topic.LOAD}),
        word_budget=16,
        silent_unless_change=True,
    ),
    AppSurface.COOLDOWN: Policy(
        objective=CoachObjective.WRAP_AND_TRANSITION,
        allowed_topics=_PLANNING_TOPICS,
        word_budget=18,
    ),
    AppSurface.POST_SESSION: Policy(
        objective=CoachObjective.WRAP_AND_TRANSITION,
        allowed_topics=_PLANNING_TOPICS,
        word_budget=18,
    ),
    AppSurface.RECOVERY_MODE: Policy(
        objective=CoachObjective.DECIDE_NEXT_BLOCK,
        allowed_topics=_PLANNING_TOPICS,
        word_budget=16,
        silent_unless_change=True,
    ),
}

# Novices get more words and basic topics; advanced lifters terse load cues.
EXPERIENCE_OVERRIDES: dict[ExperienceBand, PolicyOverride] = {
    ExperienceBand.NOVICE: PolicyOverride(
        word_budget=22,
        allowed_topics=frozenset({
            Topic.TEMPO, Topic.DEPTH, Topic.STANCE, Topic.REPS, Topic.PLAN,
        }),
    ),
    ExperienceBand.INTERMEDIATE: PolicyOverride(word_budget=18),
    ExperienceBand.ADVANCED: PolicyOverride(
        word_budget=14,
        allowed_topics=frozenset({
            Topic.LOAD, Topic.REPS, Topic.TEMPO, Topic.READINESS_BUDGET,
        }),
    ),
}

SAFETY_MESSAGE = (
    "Stop the set. We don't push through pain. "
    "Skip squats and switch to leg press light."
)

_FALLBACK_CUES: dict[CoachObjective, str] = {
    CoachObjective.DECIDE_NEXT_BLOCK: "Start squats now and finish near 50 readiness.",
    CoachObjective.EXECUTE_REPS: "Own the bottom; pause 2 seconds, then drive up hard.",
    CoachObjective.PUSH_OR_HOLD: "Keep the weight; hit a tight triple with clean depth.",
    CoachObjective.FIX_SINGLE_FAULT: (
        "Feel the stance: knees track over toes through the whole rep."
    ),
    CoachObjective.PROTECT_BUDGET: "Stay on plan: one more hard set, then backoff.",
    CoachObjective.WRAP_AND_TRANSITION: (
        "Wrap this block. You hit the target readiness window."
    ),
}


# ======================================================================
# Public API
# ======================================================================


def merge_policy(
    base: Policy,
    override: PolicyOverride,
) -> tuple[Policy, frozenset[str]]:
    """Apply ``override`` on top of ``base``.

    Returns the merged policy and the names of the fields whose value
    actually changed (an override equal to the base value is not a change).
    """
    updates = {
        name: value
        for name, value in override.model_dump(exclude_none=True).items()
        if value != getattr(base, name)
    }
    return base.model_copy(update=updates), frozenset(updates)


def resolve_policy(surface: AppSurface, band: ExperienceBand) -> Policy:
    """Policy for a surface as seen by a lifter of the given band."""
    base = BASE_POLICY[surface]
    override = EXPERIENCE_OVERRIDES.get(band)
    if override is None:
        return base
    merged, _ = merge_policy(base, override)
    return merged


def fallback_cue(objective: CoachObjective) -> str:
    """Deterministic cue for an objective, used whenever generated text is rejected."""
    return _FALLBACK_CUES[objective]
