"""
Recovery estimator — recovery windows and readiness curve for a session.

Given a lifter profile, the features of a finished session and the
session-level signal deltas, this module forecasts *when* the lifter will
be ready to train the same muscle hard again.

Model
-----
1. **Level** — novice / intermediate / advanced from training age, pattern
   exposures, training frequency and relative strength.  Each level has
   base windows (novice 48 h / 60 h, others 36 h / 48 h for T80 / T85).

2. **Session Stress Score (SSS)** — a convex blend in [0, 1]:

       SSS = 0.30·volume + 0.20·effort + 0.20·amp + 0.15·ror
           + 0.10·novel + 0.05·eccentric

   where ``volume = sets × reps / 60`` (clamped), ``effort`` comes from
   reps in reserve or perceived effort, ``amp = amplitude_drop / 30`` and
   ``ror = rate_of_rise_drop / 40`` (both clamped).

3. **Windows** — base windows scaled by ``1 + SSS``, plus fixed tag hours
   (heavy singles +12 h, hypertrophy +8 h), minus an 8 h bonus when every
   fatigue marker is low.  T80 is clamped to [12, 120]; T85 ≥ T80 + 4.

4. **Readiness curve** — two-exponential recovery from an initial
   readiness R0:

       R(t) = 100 - (0.55·A·exp(-t / 8) + 0.45·A·exp(-t / tau_slow))

   with ``A = 100 - R0`` and ``tau_slow = max(12, T80 / 1.2)``, sampled
   every 4 h.

These constants are coaching heuristics, not fitted parameters.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.schemas.recovery import (
    LifterLevel,
    LifterProfile,
    ReadinessPoint,
    RecoveryEstimate,
    RecoveryWhatIf,
    SessionFeatures,
    SessionTag,
    SignalDelta,
)

# ======================================================================
# Configuration
# ======================================================================

_BASE_WINDOWS: dict[LifterLevel, tuple[int, int]] = {
    LifterLevel.NOVICE: (48, 60),
    LifterLevel.INTERMEDIATE: (36, 48),
    LifterLevel.ADVANCED: (36, 48),
}

_TAG_HOURS: dict[SessionTag, int] = {
    SessionTag.HEAVY_SINGLES: 12,
    SessionTag.HYPERTROPHY: 8,
}

# (weight, name) of each SSS component, in blend order.
_SSS_WEIGHTS: dict[str, float] = {
    "volume": 0.30,
    "effort": 0.20,
    "amplitude": 0.20,
    "rate_of_rise": 0.15,
    "novel": 0.10,
    "eccentric": 0.05,
}


class RecoveryConfig(BaseModel):
    """Tunables of the recovery estimator."""

    base_windows: dict[LifterLevel, tuple[int, int]] = Field(
        default_factory=lambda: dict(_BASE_WINDOWS),
    )
    tag_hours: dict[SessionTag, int] = Field(
        default_factory=lambda: dict(_TAG_HOURS),
    )
    sss_weights: dict[str, float] = Field(
        default_factory=lambda: dict(_SSS_WEIGHTS),
    )
    min_t80_hours: int = 12
    max_t80_hours: int = 120
    min_t85_offset_hours: int = 4
    low_fatigue_bonus_hours: int = 8
    curve_step_hours: int = 4
    curve_min_horizon_hours: int = 96
    fast_tau_hours: float = 8.0
    novel_penalty: float = 10.0
    symmetry_note_below: float = 90.0


DEFAULT_RECOVERY_CONFIG = RecoveryConfig()


# ======================================================================
# Helpers
# ======================================================================


def _clamp(value: float, lo: float, hi: float) -> float:
    if math.isnan(value):
        return lo
    return min(hi, max(lo, value))


def _effort_from_rir(rir: float) -> float:
    """Reps in reserve → effort factor."""
    if rir <= 1:
        return 1.0
    if rir <= 2:
        return 0.8
    if rir <= 3:
        return 0.6
    if rir <= 5:
        return 0.3
    return 0.2


def _effort_from_rpe(rpe: float) -> float:
    """Perceived effort (RPE) → effort factor."""
    if rpe >= 9.5:
        return 1.0
    if rpe >= 9.0:
        return 0.9
    if rpe >= 8.0:
        return 0.6
    if rpe >= 7.0:
        return 0.4
    return 0.2


def _effort(session: SessionFeatures) -> float:
    if session.avg_reps_in_reserve is not None:
        return _effort_from_rir(session.avg_reps_in_reserve)
    if session.avg_perceived_effort is not None:
        return _effort_from_rpe(session.avg_perceived_effort)
    return 0.4


def _amplitude_factor(signal: SignalDelta) -> float:
    return _clamp(signal.amplitude_drop_pct / 30.0, 0.0, 1.0)


def _ror_factor(signal: SignalDelta) -> float:
    return _clamp(signal.rate_of_rise_drop_pct / 40.0, 0.0, 1.0)


def _is_low_fatigue(session: SessionFeatures, signal: SignalDelta) -> bool:
    """All markers low: small drops and an easy session."""
    if signal.amplitude_drop_pct >= 10 or signal.rate_of_rise_drop_pct >= 10:
        return False
    easy_rir = (
        session.avg_reps_in_reserve is not None
        and session.avg_reps_in_reserve >= 3
    )
    easy_rpe = (
        session.avg_perceived_effort is not None
        and session.avg_perceived_effort <= 6.5
    )
    return easy_rir or easy_rpe


def _build_notes(
    session: SessionFeatures,
    signal: SignalDelta,
    low_fatigue: bool,
    cfg: RecoveryConfig,
) -> list[str]:
    notes: list[str] = []
    if session.novel_exercise:
        notes.append("New movement, expect extra soreness before rebound.")
    if SessionTag.HEAVY_SINGLES in session.tags:
        notes.append("Heavy singles extend recovery window.")
    if SessionTag.HYPERTROPHY in session.tags:
        notes.append("Hypertrophy work adds extra fatigue to clear.")
    if low_fatigue:
        notes.append(
            f"Low fatigue markers detected, faster rebound applied "
            f"(-{cfg.low_fatigue_bonus_hours}h)."
        )
    if signal.symmetry_pct < cfg.symmetry_note_below:
        notes.append("Monitor symmetry, recovery curve assumes corrective work.")
    return notes


def _build_curve(
    session: SessionFeatures,
    signal: SignalDelta,
    t80: int,
    t85: int,
    cfg: RecoveryConfig,
) -> list[ReadinessPoint]:
    fatigue_score = _amplitude_factor(signal) * 40.0 + _ror_factor(signal) * 30.0
    if session.novel_exercise:
        fatigue_score += cfg.novel_penalty
    r0 = max(45.0, 100.0 - fatigue_score)
    gap = max(0.0, 100.0 - r0)
    a_fast = 0.55 * gap
    a_slow = 0.45 * gap
    tau_slow = max(12.0, t80 / 1.2)
    horizon = max(cfg.curve_min_horizon_hours, t85 + 24)

    points: list[ReadinessPoint] = []
    for t in range(0, horizon + 1, cfg.curve_step_hours):
        value = 100.0 - (
            a_fast * math.exp(-t / cfg.fast_tau_hours)
            + a_slow * math.exp(-t / tau_slow)
        )
        points.append(ReadinessPoint(hours=t, readiness=round(value, 2)))

    # The first sample is R0 exactly, not the model's value at t=0.
    points[0] = ReadinessPoint(hours=0, readiness=round(r0, 2))
    return points


# ======================================================================
# Public API
# ======================================================================


def classify_level(
    profile: LifterProfile,
    movement_pattern: str = "squat",
) -> LifterLevel:
    """Dominant lifter level for the recovery base windows."""
    exposures = profile.exposure_count_by_movement_pattern.get(movement_pattern, 0)
    if (
        profile.training_age_months < 6
        or exposures < 12
        or profile.sessions_per_week_trailing_8w < 1.5
    ):
        return LifterLevel.NOVICE
    strength = profile.relative_strength_ratio or 0.0
    if profile.training_age_months >= 36 or strength >= 1.6:
        return LifterLevel.ADVANCED
    return LifterLevel.INTERMEDIATE


def compute_session_stress(
    session: SessionFeatures,
    signal: SignalDelta,
    config: Optional[RecoveryConfig] = None,
) -> float:
    """Session Stress Score rounded to 4 decimals (the precision used for windows)."""
    cfg = config or DEFAULT_RECOVERY_CONFIG
    w = cfg.sss_weights
    components = {
        "volume": _clamp(session.total_sets * session.total_reps / 60.0, 0.0, 1.0),
        "effort": _effort(session),
        "amplitude": _amplitude_factor(signal),
        "rate_of_rise": _ror_factor(signal),
        "novel": 1.0 if session.novel_exercise else 0.0,
        "eccentric": 1.0 if session.eccentric_bias else 0.0,
    }
    raw = sum(w[name] * value for name, value in components.items())
    return round(raw, 4)


def estimate_recovery(
    profile: LifterProfile,
    session: SessionFeatures,
    signal: SignalDelta,
    movement_pattern: str = "squat",
    config: Optional[RecoveryConfig] = None,
) -> RecoveryEstimate:
    """Forecast recovery windows, readiness curve and notes for one session."""
    cfg = config or DEFAULT_RECOVERY_CONFIG
    level = classify_level(profile, movement_pattern)
    base_t80, base_t85 = cfg.base_windows[level]
    sss = compute_session_stress(session, signal, cfg)

    mult = 1.0 + sss
    tag_hours = sum(cfg.tag_hours.get(tag, 0) for tag in session.tags)
    low_fatigue = _is_low_fatigue(session, signal)
    bonus = cfg.low_fatigue_bonus_hours if low_fatigue else 0

    t80 = math.floor(base_t80 * mult + tag_hours - bonus)
    t80 = int(_clamp(t80, cfg.min_t80_hours, cfg.max_t80_hours))
    t85 = math.floor(base_t85 * mult + tag_hours - bonus)
    t85 = max(t85, t80 + cfg.min_t85_offset_hours)

    return RecoveryEstimate(
        level=level,
        session_stress_score=round(sss, 2),
        t80_hours=t80,
        t85_hours=t85,
        readiness_curve=_build_curve(session, signal, t80, t85, cfg),
        notes=_build_notes(session, signal, low_fatigue, cfg),
    )


def what_if(
    profile: LifterProfile,
    session: SessionFeatures,
    signal: SignalDelta,
    movement_pattern: str = "squat",
    config: Optional[RecoveryConfig] = None,
    **changes: Any,
) -> RecoveryWhatIf:
    """Re-estimate recovery with some session fields changed.

    ``changes`` are :class:`SessionFeatures` field names, e.g.
    ``what_if(p, s, d, total_sets=s.total_sets + 1)``.  The input session
    is never mutated.

    Raises:
        ValueError: if a change names an unknown session field.
    """
    unknown = sorted(set(changes) - set(SessionFeatures.model_fields))
    if unknown:
        raise ValueError(f"Unknown session fields: {', '.join(unknown)}")

    base = estimate_recovery(profile, session, signal, movement_pattern, config)
    merged = {**session.model_dump(), **changes}
    changed = SessionFeatures.model_validate(merged)
    est = estimate_recovery(profile, changed, signal, movement_pattern, config)
    return RecoveryWhatIf(
        delta_t80_hours=est.t80_hours - base.t80_hours,
        delta_t85_hours=est.t85_hours - base.t85_hours,
        estimate=est,
    )
