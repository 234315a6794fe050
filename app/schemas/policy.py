"""
Coaching policy schemas.

A :class:`Policy` is the rulebook for one coaching turn: which topics the
coach may talk about, how many words it may use, and whether it should
stay quiet unless something needs to change.  Policies are looked up by
``(app_surface, experience_band)``; see :mod:`app.repcoach.policy`.

A :class:`CoachSnapshot` is the per-turn input of the router and a
:class:`StructuredReply` is the untrusted output of the text generator.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ======================================================================
# Enums
# ======================================================================


class AppSurface(str, Enum):
    """Where the lifter currently is in the app."""
    HOME = "home"
    PRE_SESSION = "pre_session"
    WARMUP = "warmup"
    WORKING_SET = "working_set"
    TOP_SET = "top_set"
    BACKOFF = "backoff"
    REST_OVERLAY = "rest_overlay"
    COOLDOWN = "cooldown"
    POST_SESSION = "post_session"
    RECOVERY_MODE = "recovery_mode"


class ExperienceBand(str, Enum):
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Topic(str, Enum):
    """Coaching topics a reply can address."""
    LOAD = "load"
    REPS = "reps"
    TEMPO = "tempo"
    DEPTH = "depth"
    STANCE = "stance"
    SYMMETRY = "symmetry"
    PLAN = "plan"
    READINESS_BUDGET = "readiness_budget"
    MOTIVATION = "motivation"


class CoachObjective(str, Enum):
    """What the coach is trying to achieve on a surface."""
    DECIDE_NEXT_BLOCK = "decide_next_block"
    EXECUTE_REPS = "execute_reps"
    PUSH_OR_HOLD = "push_or_hold"
    FIX_SINGLE_FAULT = "fix_single_fault"
    PROTECT_BUDGET = "protect_budget"
    WRAP_AND_TRANSITION = "wrap_and_transition"


class ExecutionPhase(str, Enum):
    PLANNING = "planning"
    EXECUTING = "executing"
    RESTING = "resting"


class Intent(str, Enum):
    """Coarse classification of the lifter's utterance."""
    REPORT = "report"
    ASK = "ask"
    STRUGGLE = "struggle"
    BRAG = "brag"
    STALL = "stall"


class ReplySource(str, Enum):
    """Which branch of the router produced the final text."""
    SILENT = "silent"
    SAFETY = "safety"
    MODEL = "model"
    FALLBACK = "fallback"


# ======================================================================
# Policy
# ======================================================================


class Policy(BaseModel):
    """Fully-resolved rulebook for one turn."""

    model_config = ConfigDict(frozen=True)

    objective: CoachObjective
    allowed_topics: frozenset[Topic]
    banned_topics: frozenset[Topic] = frozenset()
    word_budget: int = Field(..., ge=1)
    silent_unless_change: bool = False


class PolicyOverride(BaseModel):
    """Experience-band override.  ``None`` means "keep the surface value"."""

    model_config = ConfigDict(frozen=True)

    objective: Optional[CoachObjective] = None
    allowed_topics: Optional[frozenset[Topic]] = None
    banned_topics: Optional[frozenset[Topic]] = None
    word_budget: Optional[int] = Field(None, ge=1)
    silent_unless_change: Optional[bool] = None


# ======================================================================
# Snapshot
# ======================================================================


class LastSet(BaseModel):
    exercise: str
    weight_lb: float = 0.0
    reps: int = Field(..., ge=0)
    tempo: Optional[str] = None
    depth: Optional[str] = Field(None, description="above | parallel | below")
    bar_speed: Optional[str] = Field(None, description="slow | stable | fast")


class SymmetrySplit(BaseModel):
    left_pct: float
    right_pct: float


class SnapshotSafety(BaseModel):
    pain_flag: bool = False


class CoachSnapshot(BaseModel):
    """Ephemeral per-turn context, built fresh for every user turn."""

    app_surface: AppSurface
    experience_band: ExperienceBand = ExperienceBand.INTERMEDIATE
    readiness_now: float = Field(75.0, ge=0.0, le=100.0)
    readiness_target: float = Field(50.0, ge=0.0, le=100.0)
    requires_change: Optional[bool] = Field(
        None, description="Filled from the last set and session state when unset",
    )
    phase: ExecutionPhase = ExecutionPhase.PLANNING
    last_set: Optional[LastSet] = None
    symmetry: Optional[SymmetrySplit] = None
    time_left_min: Optional[float] = None
    safety: SnapshotSafety = Field(default_factory=SnapshotSafety)
    intent: Optional[Intent] = Field(
        None, description="Classified from the utterance when unset",
    )
    utterance: str = ""


# ======================================================================
# Generator output
# ======================================================================


class Prosody(BaseModel):
    pace: Optional[str] = None
    energy: Optional[str] = None


class StructuredReply(BaseModel):
    """Untrusted HOOK + WHY + ACTION reply from the text generator."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    silent: Optional[bool] = None
    hook: Optional[str] = None
    why: Optional[str] = None
    action: Optional[str] = None
    topic: Optional[Topic] = Field(
        None, validation_alias=AliasChoices("topic", "action_type"),
    )
    prosody: Optional[Prosody] = None


class CoachReplyResult(BaseModel):
    """Router output: speak or stay silent."""

    speak: bool
    text: Optional[str] = None
    source: ReplySource
    raw: Optional[StructuredReply] = None
