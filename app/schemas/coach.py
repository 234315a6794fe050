"""
Home coach schemas — tool payloads and the validated coach output.

The home coach is *LLM-first, app-verified*: the text generator picks a
mode and writes the copy, but it must go through the app's tools to see
the signals, and the app's ``verify_plan`` has the last word on safety.

The generator output is parse-or-reject: it must decode to exactly one of

    {"type": "suggestion", "mode", "message", "cta", "secondary"?, "science"?, "what_if"?}
    {"type": "question", "message"}

Anything else is a validation failure and ends in the deterministic
fallback copy.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.plan import DecisionContext, FatigueBand, PlanMode


class ActionId(str, Enum):
    """Actions the generator may project or commit."""
    START_STRENGTH_BLOCK = "start_strength_block"
    START_RECOVERY_30M = "start_recovery_30m"
    PLAN_TOMORROW = "plan_tomorrow"


class ImpactBand(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ======================================================================
# What-if payloads
# ======================================================================


class WhatIfQual(BaseModel):
    """Qualitative benefit estimated by the generator itself."""

    kind: str = Field(..., description="walk, zone2, mobility, sleep_early, ...")
    impact: ImpactBand
    confidence: float = Field(..., ge=0.0, le=1.0)
    title: str
    clause: Optional[str] = None


class WhatIfEffects(BaseModel):
    recovery_hours_saved: Optional[float] = None
    readiness_delta_pts: Optional[float] = None
    next_session_quality_prob: Optional[float] = None


class WhatIfNumeric(BaseModel):
    """Numeric benefit projected by the app for a concrete action."""

    action_id: str = Field(
        ..., description="walk_after_workout, active_recovery, sleep_early, ...",
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    effects: WhatIfEffects = Field(default_factory=WhatIfEffects)


class WhatIfContext(BaseModel):
    """Minimal context the benefit gates look at."""

    safe_mode: PlanMode
    minutes_available: Optional[float] = None
    hours_since_last_same_muscle: Optional[float] = None


# ======================================================================
# Coach output
# ======================================================================


class SuggestionJSON(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["suggestion"] = "suggestion"
    mode: PlanMode
    message: str = Field(..., min_length=4, max_length=240)
    cta: str = Field(..., min_length=2, max_length=60)
    secondary: Optional[str] = Field(None, max_length=160)
    science: Optional[str] = Field(None, max_length=160)
    what_if: Optional[WhatIfQual] = None


class QuestionJSON(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["question"] = "question"
    message: str = Field(..., min_length=4, max_length=140)


CoachJSON = Annotated[Union[SuggestionJSON, QuestionJSON], Field(discriminator="type")]


# ======================================================================
# Tool payloads
# ======================================================================


class ContextFatigue(BaseModel):
    amplitude_drop_pct: Optional[float] = None
    rate_of_rise_drop_pct: Optional[float] = None


class WeeklyVolume(BaseModel):
    done: int
    target: int


class ContextFlags(BaseModel):
    hr_warning: bool = False
    soreness_high: bool = False


class ContextPolicy(BaseModel):
    strength_window_reps: tuple[int, int]
    symmetry_ideal: float
    fatigue_zones: dict[str, tuple[float, float, float]]


class ContextPayload(BaseModel):
    """Result of ``get_context()``."""

    readiness: float
    symmetry_pct: Optional[float] = None
    fatigue: ContextFatigue
    hours_since_last_same_muscle: Optional[float] = None
    weekly: WeeklyVolume
    flags: ContextFlags
    last_end_zone: Optional[FatigueBand] = None
    policy: ContextPolicy
    allowed_actions: list[ActionId]


class ProjectionEffects(BaseModel):
    strength_gain_pct: Optional[float] = None
    readiness_delta_pts: Optional[float] = None
    recovery_hours: Optional[float] = None


class Projection(BaseModel):
    """Result of ``project_action(action_id)``."""

    action_id: ActionId
    effects: ProjectionEffects
    summary: str


class VerifyResult(BaseModel):
    """Result of ``verify_plan(mode)``."""

    ok: bool
    safe_mode: PlanMode
    reason: Optional[str] = None


class CommitResult(BaseModel):
    """Result of ``commit_action(action_id)``."""

    ok: bool


# ======================================================================
# API
# ======================================================================


class HomeCoachRequest(BaseModel):
    """Inputs of one home-screen coaching turn."""

    session_id: str = Field(..., min_length=1)
    context: DecisionContext
    minutes_available: Optional[float] = Field(None, ge=0.0)
    what_if_numeric: Optional[WhatIfNumeric] = Field(
        None, description="App-side numeric projection for the benefit line",
    )
