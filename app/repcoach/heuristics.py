"""
Change and intent heuristics for coaching turns.

``compute_requires_change`` decides whether a quiet surface (home, rest
overlay, recovery mode) has something worth saying.  ``classify_intent``
labels the lifter's utterance with a coarse keyword classifier.  Both are
rules of thumb.  ``resolve_snapshot`` uses them to fill the snapshot
fields a caller left unset; values a caller sends are never overridden.
"""

from __future__ import annotations

import re

from app.schemas.policy import AppSurface, CoachSnapshot, ExecutionPhase, Intent

# Readiness within this many points above target counts as "near target".
_NEAR_TARGET_POINTS = 4.0
_SYMMETRY_IMBALANCE_PCT = 12.0
_CRITICAL_READINESS = 35.0
_EAGER_READINESS = 75.0

_STRUGGLE_RE = re.compile(
    r"hard|difficult|can't|too heavy|struggling|tough|tired|exhausted"
)
_ASK_RE = re.compile(r"what|how|should|when|why|\?")
_ASK_START_RE = re.compile(r"^(do|can|will|is|are)")
_BRAG_RE = re.compile(
    r"easy|felt great|crushed|strong|nailed|best|\bpr\b|personal record"
)
_STALL_RE = re.compile(r"rest|break|wait|pause|later|not now|maybe")


def compute_requires_change(snapshot: CoachSnapshot) -> bool:
    """True when the last set or the session state calls for a cue."""
    last = snapshot.last_set
    if last is None:
        return False

    if last.depth == "above":
        return True

    near_target = snapshot.readiness_now <= snapshot.readiness_target + _NEAR_TARGET_POINTS
    if last.bar_speed in ("stable", "fast", "slow") and not near_target:
        return True

    if snapshot.symmetry is not None:
        imbalance = abs(snapshot.symmetry.left_pct - snapshot.symmetry.right_pct)
        if imbalance > _SYMMETRY_IMBALANCE_PCT:
            return True

    if snapshot.app_surface == AppSurface.REST_OVERLAY:
        return True
    if snapshot.intent == Intent.STRUGGLE:
        return True
    if (
        snapshot.readiness_now < _CRITICAL_READINESS
        and snapshot.phase == ExecutionPhase.EXECUTING
    ):
        return True
    if (
        snapshot.readiness_now > _EAGER_READINESS
        and snapshot.phase == ExecutionPhase.PLANNING
    ):
        return True
    return False


def classify_intent(utterance: str) -> Intent:
    """Keyword classifier, first match wins: struggle, ask, brag, stall, report."""
    text = utterance.lower().strip()
    if _STRUGGLE_RE.search(text):
        return Intent.STRUGGLE
    if _ASK_RE.search(text) or _ASK_START_RE.search(text):
        return Intent.ASK
    if _BRAG_RE.search(text):
        return Intent.BRAG
    if _STALL_RE.search(text):
        return Intent.STALL
    return Intent.REPORT


def resolve_snapshot(snapshot: CoachSnapshot) -> CoachSnapshot:
    """Copy of ``snapshot`` with an unset intent and change flag filled in.

    Intent goes first because a struggling lifter counts as a change.
    Values the caller set are kept.
    """
    if snapshot.intent is not None and snapshot.requires_change is not None:
        return snapshot
    intent = snapshot.intent
    if intent is None:
        intent = classify_intent(snapshot.utterance)
    resolved = snapshot.model_copy(update={"intent": intent})
    if resolved.requires_change is None:
        resolved = resolved.model_copy(
            update={"requires_change": compute_requires_change(resolved)},
        )
    return resolved
