"""
Per-repetition signal schemas.

A :class:`RepFeature` is produced once per repetition by the sensor layer
and never changes afterwards.  The amplitude is normalised against a
resting / first-rep baseline, so ``1.0`` means "same as the first rep" and
``1.2`` means "20 % more muscle activity than the first rep".

Zones are *derived* labels, recomputed from the full rep sequence of the
current set every time a new rep arrives:

- ``building``         — no verdict yet, more reps needed
- ``in_zone``          — the effort has reached the productive fatigue window
- ``too_heavy_early``  — activity climbs too fast in the first reps
- ``too_light``        — the set reached the top of the window without rising
- ``low_signal``       — the latest rep cannot be trusted
- ``fall``             — the hard rep ceiling was crossed (ends the set)
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Zone(str, Enum):
    """Fatigue zone of the set in progress."""
    BUILDING = "building"
    IN_ZONE = "in_zone"
    TOO_HEAVY_EARLY = "too_heavy_early"
    TOO_LIGHT = "too_light"
    LOW_SIGNAL = "low_signal"
    FALL = "fall"


class RepFeature(BaseModel):
    """Signal features of a single repetition (1-indexed within the set)."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1, description="1-based rep index within the set")
    normalized_amplitude: float = Field(
        ..., ge=0.0,
        description="Signal amplitude relative to baseline (≈1.0 at first rep)",
    )
    signal_confidence: float = Field(
        ..., ge=0.0, le=1.0,
        description="Sensor confidence for this rep",
    )
    velocity: Optional[float] = Field(
        None, ge=0.0, le=1.0,
        description="Normalised concentric velocity, if measured",
    )
    tempo_ok: Optional[bool] = Field(
        None, description="Whether the rep respected the prescribed tempo",
    )


class ZoneRequest(BaseModel):
    """Rep sequence of the current set, in recording order."""

    reps: list[RepFeature] = Field(default_factory=list)


class ZoneResponse(BaseModel):
    """Live classification plus post-set narration anchor."""

    zone: Zone
    rep_count: int = Field(..., ge=0)
    fatigue_rep: Optional[int] = Field(
        None,
        description="First rep at which the in-zone rule held (None if never)",
    )
