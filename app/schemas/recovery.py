"""
Recovery estimate schemas.

The recovery estimator turns a lifter profile, the features of a finished
session and the session-level signal deltas into two recovery windows and a
readiness curve:

- ``T80`` — hours until readiness is forecast to reach 80 % of full recovery
- ``T85`` — hours until readiness is forecast to reach 85 % (always ≥ T80 + 4)

The curve is a sampled two-exponential model:

    readiness(t) = 100 - (A_fast · exp(-t / 8) + A_slow · exp(-t / tau_slow))

where ``A_fast``/``A_slow`` split the initial readiness gap 55 / 45 and
``tau_slow`` scales with T80.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LifterLevel(str, Enum):
    """Dominant training level, drives the base recovery windows."""
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SessionTag(str, Enum):
    """Session qualifiers that extend recovery by a fixed amount."""
    HEAVY_SINGLES = "heavy_singles"
    HYPERTROPHY = "hypertrophy"


class LifterProfile(BaseModel):
    """Long-lived lifter profile, updated between sessions."""

    training_age_months: float = Field(..., ge=0.0)
    sessions_per_week_trailing_8w: float = Field(
        ..., ge=0.0,
        description="Average weekly sessions over the trailing 8 weeks",
    )
    relative_strength_ratio: Optional[float] = Field(
        None, ge=0.0,
        description="Best lift / bodyweight for the main pattern",
    )
    exposure_count_by_movement_pattern: dict[str, int] = Field(
        default_factory=dict,
        description="Lifetime exposures per movement pattern, e.g. {'squat': 24}",
    )


class SessionFeatures(BaseModel):
    """Aggregate features of a finished session."""

    model_config = ConfigDict(frozen=True)

    total_sets: int = Field(..., ge=0)
    total_reps: int = Field(..., ge=0)
    avg_reps_in_reserve: Optional[float] = Field(None, ge=0.0)
    avg_perceived_effort: Optional[float] = Field(None, ge=0.0, le=10.0)
    novel_exercise: bool = False
    eccentric_bias: bool = False
    duration_min: Optional[float] = Field(None, ge=0.0)
    tags: frozenset[SessionTag] = Field(default_factory=frozenset)


class SignalDelta(BaseModel):
    """Session-level muscle-signal deltas (first sets vs last sets)."""

    model_config = ConfigDict(frozen=True)

    amplitude_drop_pct: float = Field(..., description="Amplitude drop, percent")
    rate_of_rise_drop_pct: float = Field(..., description="Rate-of-rise drop, percent")
    symmetry_pct: float = Field(100.0, ge=0.0, le=100.0)


class ReadinessPoint(BaseModel):
    """One sample of the readiness curve."""

    hours: int = Field(..., ge=0)
    readiness: float = Field(..., ge=0.0, le=100.0)


class RecoveryEstimate(BaseModel):
    """Full recovery forecast for a session."""

    level: LifterLevel
    session_stress_score: float = Field(
        ..., ge=0.0, le=1.0,
        description="Session Stress Score (SSS), 0 = trivial, 1 = maximal",
    )
    t80_hours: int = Field(..., description="Hours to 80 % readiness")
    t85_hours: int = Field(..., description="Hours to 85 % readiness")
    readiness_curve: list[ReadinessPoint]
    notes: list[str] = Field(default_factory=list)


class RecoveryWhatIf(BaseModel):
    """Outcome of re-estimating recovery with modified session features."""

    delta_t80_hours: int
    delta_t85_hours: int
    estimate: RecoveryEstimate


class RecoveryRequest(BaseModel):
    """Inputs of a recovery estimate."""

    profile: LifterProfile
    session: SessionFeatures
    signal: SignalDelta
    movement_pattern: str = Field(
        "squat", description="Pattern used for the exposure-count novice rule",
    )


class RecoveryWhatIfRequest(RecoveryRequest):
    """Recovery inputs plus the session fields to change."""

    changes: dict[str, object] = Field(
        ..., description="SessionFeatures fields to override, e.g. {'total_sets': 5}",
    )
