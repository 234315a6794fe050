"""
Plan selector — train, recover actively, or rest.

For the target muscle group the selector scores three candidate modes and
picks the best one that survives the hard safety gates.

Scoring
-------
Each mode gets a projected strength gain, readiness delta and hours to
recover, from a few boolean predicates over the context:

    in_band          readiness inside the target band
    symmetry_ok      session symmetry (or 7-day average) ≥ ideal
    within_cooldown  same muscle trained less than ``full_cooldown_hours`` ago
    weekly_room      weekly sets done < weekly target
    severe           amplitude or rate-of-rise drop above the top fatigue zone

and the utility is

    U = 2.0·gain + 0.3·readiness_delta - 0.02·hours_to_recover

Gates (applied before ranking, in order)
----------------------------------------
1. severe fatigue      → only FULL_REST survives
2. heart-rate warning  → TRAIN removed
3. weekly target met   → TRAIN removed

Survivors are ranked by utility, descending.  The sort is stable, so equal
utilities keep the TRAIN, ACTIVE_RECOVERY, FULL_REST order.  Reason codes
are derived from the same predicates, so the explanation cannot
contradict the decision.
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple, Optional

from pydantic import BaseModel

from app.schemas.plan import (
    DecisionContext,
    DecisionOption,
    DecisionTrace,
    PlanMode,
    PlanProjections,
    PlanResult,
    ReadinessProjection,
    StrengthPlan,
    TrainBlockProjection,
)

logger = logging.getLogger(__name__)

# ======================================================================
# Configuration
# ======================================================================


class PlannerConfig(BaseModel):
    """Utility weights and readiness floors of the plan selector."""

    weight_gain: float = 2.0
    weight_readiness: float = 0.3
    weight_time: float = 0.02
    low_readiness_floor: float = 55.0
    base_confidence: float = 0.7


DEFAULT_PLANNER_CONFIG = PlannerConfig()

# Insertion order doubles as the tie-break.
_MODE_ORDER: tuple[PlanMode, ...] = (
    PlanMode.TRAIN,
    PlanMode.ACTIVE_RECOVERY,
    PlanMode.FULL_REST,
)


class _Predicates(NamedTuple):
    in_band: bool
    symmetry_ok: bool
    within_cooldown: bool
    weekly_room: bool
    severe: bool
    hr_warning: bool
    readiness: float


# ======================================================================
# Predicates and scoring
# ======================================================================


def _is_severe(ctx: DecisionContext) -> bool:
    if ctx.fatigue is None:
        return False
    return (
        ctx.fatigue.amplitude_drop_pct > ctx.fatigue_zones.amplitude[2]
        or ctx.fatigue.rate_of_rise_drop_pct > ctx.fatigue_zones.rate_of_rise[2]
    )


def _within_cooldown(ctx: DecisionContext) -> bool:
    hours = ctx.hours_since_last_same_muscle
    if hours is None:
        hours = math.inf
    return hours < ctx.full_cooldown_hours


def _predicates(ctx: DecisionContext) -> _Predicates:
    symmetry = ctx.symmetry_pct
    if symmetry is None:
        symmetry = ctx.symmetry_7d_avg if ctx.symmetry_7d_avg is not None else math.inf
    return _Predicates(
        in_band=ctx.target_readiness_min <= ctx.readiness <= ctx.target_readiness_max,
        symmetry_ok=symmetry >= ctx.symmetry_ideal,
        within_cooldown=_within_cooldown(ctx),
        weekly_room=ctx.weekly_sets_done < ctx.weekly_sets_target,
        severe=_is_severe(ctx),
        hr_warning=ctx.flags.hr_warning,
        readiness=ctx.readiness,
    )


def _utility(gain: float, delta: float, hours: float, cfg: PlannerConfig) -> float:
    return (
        cfg.weight_gain * gain
        + cfg.weight_readiness * delta
        - cfg.weight_time * hours
    )


def _score_options(
    ctx: DecisionContext,
    p: _Predicates,
    cfg: PlannerConfig,
) -> list[DecisionOption]:
    train_gain = 1.6 if p.in_band and p.symmetry_ok else 0.8
    if p.severe:
        train_cost = 9.0
    elif p.within_cooldown:
        train_cost = 6.0
    else:
        train_cost = 4.0
    train_hours = 30.0 if p.within_cooldown else 20.0

    ar_gain = 0.4 if p.within_cooldown else 0.2
    ar_delta = 4.0 if p.within_cooldown else 2.0
    ar_hours = 5.0 if p.within_cooldown else 6.0

    slope = ctx.readiness_slope_per_hr or 0.0
    rest_delta = max(2.0, min(5.0, 3.5 + slope / 3.0))
    rest_hours = 12.0

    raw = {
        PlanMode.TRAIN: (train_gain, -train_cost, train_hours),
        PlanMode.ACTIVE_RECOVERY: (ar_gain, ar_delta, ar_hours),
        PlanMode.FULL_REST: (0.0, rest_delta, rest_hours),
    }
    return [
        DecisionOption(
            id=mode,
            strength_gain_pct=gain,
            readiness_delta=delta,
            hours_to_recover=hours,
            utility=_utility(gain, delta, hours, cfg),
        )
        for mode in _MODE_ORDER
        for gain, delta, hours in [raw[mode]]
    ]


def _survives(option: DecisionOption, p: _Predicates) -> bool:
    if p.severe:
        return option.id == PlanMode.FULL_REST
    if p.hr_warning or not p.weekly_room:
        return option.id != PlanMode.TRAIN
    return True


# ======================================================================
# Explanation
# ======================================================================


def _reason_codes(mode: PlanMode, p: _Predicates, cfg: PlannerConfig) -> list[str]:
    codes: list[str] = []
    if mode == PlanMode.TRAIN:
        if p.in_band:
            codes.append("IN_WINDOW")
        codes.append("SYMMETRY_OK" if p.symmetry_ok else "SYMMETRY_BORDERLINE")
        codes.append("WEEKLY_VOLUME_UNDER" if p.weekly_room else "WEEKLY_VOLUME_MET")
    elif mode == PlanMode.ACTIVE_RECOVERY:
        if not p.in_band:
            codes.append("READINESS_OUT_OF_WINDOW")
        if p.within_cooldown:
            codes.append("COOLDOWN_24H")
        if not p.symmetry_ok:
            codes.append("SYMMETRY_LOW")
        if p.hr_warning:
            codes.append("HR_WARNING")
        if not p.weekly_room:
            codes.append("WEEKLY_VOLUME_MET")
    else:
        if p.severe:
            codes.append("SEVERE_FATIGUE")
        if not p.weekly_room:
            codes.append("WEEKLY_VOLUME_MET")
        if p.readiness < cfg.low_readiness_floor:
            codes.append("LOW_READINESS")
        if p.hr_warning:
            codes.append("HR_WARNING")
    return codes


def _confidence(
    ctx: DecisionContext,
    mode: PlanMode,
    p: _Predicates,
    cfg: PlannerConfig,
) -> float:
    confidence = cfg.base_confidence
    if ctx.fatigue is None:
        confidence -= 0.1
    if mode == PlanMode.TRAIN and p.within_cooldown:
        confidence -= 0.2
    if mode == PlanMode.TRAIN and ctx.readiness < cfg.low_readiness_floor:
        confidence -= 0.3
    return round(max(0.2, min(0.95, confidence)), 2)


def _build_plan(
    ctx: DecisionContext,
    option: DecisionOption,
    codes: list[str],
    confidence: float,
) -> StrengthPlan:
    if option.id == PlanMode.FULL_REST:
        return StrengthPlan(
            mode=option.id,
            reason_codes=codes,
            primary_actions=[
                "No strength today",
                "8+ hrs sleep",
                "Protein each meal",
                "10-20 min easy walk",
            ],
            guardrails=["Avoid heavy eccentrics or max effort work"],
            next_check="Tomorrow morning",
            projections=PlanProjections(
                full_rest_tonight=ReadinessProjection(
                    readiness_delta=option.readiness_delta,
                ),
            ),
            confidence=confidence,
        )

    if option.id == PlanMode.ACTIVE_RECOVERY:
        return StrengthPlan(
            mode=option.id,
            reason_codes=codes,
            primary_actions=[
                "20-30 min zone-2 or brisk walk",
                "Mobility for target joint",
                "2x10 easy isos/tempo",
            ],
            guardrails=["No grinding sets", "Stop if effort spikes without power"],
            next_check="Recheck this evening",
            projections=PlanProjections(
                active_recovery_30m=ReadinessProjection(
                    readiness_delta=option.readiness_delta,
                ),
            ),
            confidence=confidence,
        )

    remaining = max(0, ctx.weekly_sets_target - ctx.weekly_sets_done)
    expected_sets = min(2, remaining) or 1
    lo, hi = ctx.strength_window_reps
    return StrengthPlan(
        mode=option.id,
        reason_codes=codes,
        primary_actions=[
            f"Do {expected_sets} hard {lo}-{hi}-rep set(s)",
            "Add +1-2 reps only if RoR holds and RMS drop <10%",
        ],
        guardrails=["End if RoR drop >25% or symmetry <90%"],
        next_check="After each set (rest screen)",
        projections=PlanProjections(
            train_block=TrainBlockProjection(
                strength_gain_pct=option.strength_gain_pct,
                readiness_delta=option.readiness_delta,
                expected_sets=expected_sets,
            ),
        ),
        confidence=confidence,
    )


# ======================================================================
# Public API
# ======================================================================


def project_options(
    ctx: DecisionContext,
    config: Optional[PlannerConfig] = None,
) -> dict[PlanMode, DecisionOption]:
    """Scored projection of every mode, before the safety gates."""
    cfg = config or DEFAULT_PLANNER_CONFIG
    return {o.id: o for o in _score_options(ctx, _predicates(ctx), cfg)}


def decide_plan(
    ctx: DecisionContext,
    config: Optional[PlannerConfig] = None,
) -> PlanResult:
    """Choose today's mode for ``ctx.muscle_group`` with its decision trace."""
    cfg = config or DEFAULT_PLANNER_CONFIG
    p = _predicates(ctx)
    survivors = [o for o in _score_options(ctx, p, cfg) if _survives(o, p)]
    ranked = sorted(survivors, key=lambda o: o.utility, reverse=True)
    chosen = ranked[0]

    codes = _reason_codes(chosen.id, p, cfg)
    plan = _build_plan(ctx, chosen, codes, _confidence(ctx, chosen.id, p, cfg))
    logger.debug(
        "Plan for %s: %s (utility=%.2f, reasons=%s)",
        ctx.muscle_group, chosen.id.value, chosen.utility, codes,
    )
    return PlanResult(
        plan=plan,
        trace=DecisionTrace(options=ranked, chosen_id=chosen.id, reason_codes=codes),
    )
