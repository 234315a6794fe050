"""
Plan selection schemas.

The plan selector answers a single question — *what should the lifter do
with the target muscle today?* — with one of three modes:

- ``TRAIN``            — a short, hard strength block
- ``ACTIVE_RECOVERY``  — light cardio, mobility, easy isometrics
- ``FULL_REST``        — nothing for the target muscle today

The answer carries a machine-checkable :class:`DecisionTrace` so the
reason codes can be audited against the inputs.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PlanMode(str, Enum):
    """Training mode chosen for the target muscle."""
    TRAIN = "TRAIN"
    ACTIVE_RECOVERY = "ACTIVE_RECOVERY"
    FULL_REST = "FULL_REST"


class FatigueBand(str, Enum):
    """Traffic-light label of the last session's end fatigue."""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    ORANGE = "ORANGE"
    RED = "RED"


class FatigueDelta(BaseModel):
    """Amplitude / rate-of-rise drop measured in today's session."""

    amplitude_drop_pct: float
    rate_of_rise_drop_pct: float


class FatigueZones(BaseModel):
    """Upper bounds of the GREEN / YELLOW / ORANGE bands (percent drop).

    Anything above the third value is RED, i.e. severe fatigue.
    """

    amplitude: tuple[float, float, float] = (10.0, 20.0, 30.0)
    rate_of_rise: tuple[float, float, float] = (10.0, 25.0, 40.0)


class SafetyFlags(BaseModel):
    """Safety signals that gate training regardless of utility."""

    hr_warning: bool = False
    soreness_high: bool = False


class DecisionContext(BaseModel):
    """Everything the plan selector needs, supplied fresh per decision."""

    muscle_group: str = "quads"
    readiness: float = Field(..., ge=0.0, le=100.0)
    readiness_slope_per_hr: Optional[float] = Field(
        None, description="Readiness gain per hour of rest (recent trend)",
    )
    symmetry_pct: Optional[float] = Field(
        None, ge=0.0, le=100.0,
        description="Average left/right symmetry of today's session",
    )
    symmetry_7d_avg: Optional[float] = Field(None, ge=0.0, le=100.0)
    fatigue: Optional[FatigueDelta] = Field(
        None, description="Today's signal deltas (None if not measured)",
    )
    hours_since_last_same_muscle: Optional[float] = Field(None, ge=0.0)
    weekly_sets_done: int = Field(0, ge=0)
    weekly_sets_target: int = Field(12, ge=0)
    flags: SafetyFlags = Field(default_factory=SafetyFlags)
    last_end_zone: Optional[FatigueBand] = None
    target_readiness_min: float = 70.0
    target_readiness_max: float = 90.0
    symmetry_ideal: float = 90.0
    strength_window_reps: tuple[int, int] = (3, 6)
    fatigue_zones: FatigueZones = Field(default_factory=FatigueZones)
    full_cooldown_hours: float = 24.0


class DecisionOption(BaseModel):
    """One scored candidate mode."""

    id: PlanMode
    strength_gain_pct: float
    readiness_delta: float
    hours_to_recover: float
    utility: float


class DecisionTrace(BaseModel):
    """Ranked surviving options and the codes explaining the choice."""

    options: list[DecisionOption]
    chosen_id: PlanMode
    reason_codes: list[str]


class TrainBlockProjection(BaseModel):
    strength_gain_pct: float
    readiness_delta: float
    expected_sets: int


class ReadinessProjection(BaseModel):
    readiness_delta: float


class PlanProjections(BaseModel):
    """Projected effect of the chosen mode (only one field is set)."""

    train_block: Optional[TrainBlockProjection] = None
    active_recovery_30m: Optional[ReadinessProjection] = None
    full_rest_tonight: Optional[ReadinessProjection] = None


class StrengthPlan(BaseModel):
    """The chosen plan, ready to narrate."""

    mode: PlanMode
    reason_codes: list[str]
    primary_actions: list[str]
    guardrails: list[str]
    next_check: str
    projections: PlanProjections
    confidence: float = Field(..., ge=0.2, le=0.95)


class PlanResult(BaseModel):
    """Plan selector output: the plan plus its decision trace."""

    plan: StrengthPlan
    trace: DecisionTrace
