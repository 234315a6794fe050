"""
What-if benefit gating.

A suggestion may end with one short benefit clause ("likely saving about
6h of recovery").  Two sources can supply it:

- **numeric**: an app-side projection with effect sizes and a confidence;
- **qualitative**: a LOW / MEDIUM / HIGH impact band written by the text
  generator itself.

Either is shown only when it is confident, material, doable in the time
the lifter has, compatible with the safe mode and not shown for the same
action in the last 36 hours.  A HIGH impact band counts as confident
whatever its confidence.  Numeric wins when both qualify.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.schemas.coach import ImpactBand, WhatIfContext, WhatIfNumeric, WhatIfQual
from app.schemas.plan import PlanMode

RECENCY_HOURS = 36.0
MIN_CONFIDENCE = 0.5
HEDGE_BELOW_CONFIDENCE = 0.7
DEFAULT_MINUTES_AVAILABLE = 30.0

MIN_HOURS_SAVED = 3.0
MIN_READINESS_POINTS = 2.0
MIN_QUALITY_PROB = 0.12

_NUMERIC_MINUTES: dict[str, float] = {
    "active_recovery": 20,
    "walk_after_workout": 15,
    "sleep_early": 30,
}
_FULL_REST_NUMERIC_OK = frozenset({"sleep_early", "protein_target"})

# (title keywords, minutes needed), first match wins.
_QUAL_MINUTES: tuple[tuple[tuple[str, ...], float], ...] = (
    (("zone-2", "walk"), 20),
    (("mobility", "breathing"), 10),
    (("sleep",), 30),
)


@dataclass
class ShownEntry:
    key: str
    shown_at: float


@dataclass
class WhatIfLedger:
    """Per-session record of which benefit clauses were shown and when.

    Entries older than ``RECENCY_HOURS`` can no longer block a clause and
    are dropped on every read and write.
    """

    clock: Callable[[], float] = time.time
    shown: list[ShownEntry] = field(default_factory=list)

    def _prune(self, now: float) -> None:
        cutoff = now - RECENCY_HOURS * 3600.0
        self.shown = [e for e in self.shown if e.shown_at >= cutoff]

    def recently_shown(self, key: str) -> bool:
        self._prune(self.clock())
        return any(e.key == key for e in self.shown)

    def record(self, key: str) -> None:
        now = self.clock()
        self._prune(now)
        self.shown.append(ShownEntry(key=key, shown_at=now))


def _has_minutes(ctx: WhatIfContext, needed: float) -> bool:
    available = ctx.minutes_available
    if available is None:
        available = DEFAULT_MINUTES_AVAILABLE
    return available >= needed


# ======================================================================
# Gates
# ======================================================================


def should_show_numeric(
    ctx: WhatIfContext,
    res: WhatIfNumeric,
    ledger: WhatIfLedger,
) -> bool:
    if res.confidence < MIN_CONFIDENCE:
        return False

    e = res.effects
    material = (
        (e.recovery_hours_saved or 0) >= MIN_HOURS_SAVED
        or (e.readiness_delta_pts or 0) >= MIN_READINESS_POINTS
        or (e.next_session_quality_prob or 0) >= MIN_QUALITY_PROB
    )
    if not material:
        return False

    key = res.action_id
    needed = _NUMERIC_MINUTES.get(key, 10)
    # Sleep happens tonight whatever the lifter has free right now.
    if key != "sleep_early" and not _has_minutes(ctx, needed):
        return False

    if ctx.safe_mode == PlanMode.FULL_REST and key not in _FULL_REST_NUMERIC_OK:
        return False

    return not ledger.recently_shown(key)


def should_show_qual(
    ctx: WhatIfContext,
    wf: WhatIfQual,
    ledger: WhatIfLedger,
) -> bool:
    if wf.impact == ImpactBand.LOW:
        return False
    # HIGH impact is shown at any confidence.
    if wf.impact == ImpactBand.MEDIUM and wf.confidence < MIN_CONFIDENCE:
        return False

    title = wf.title.lower()
    needed = 10.0
    for keywords, minutes in _QUAL_MINUTES:
        if any(k in title for k in keywords):
            needed = minutes
            break
    if wf.kind != "sleep_early" and not _has_minutes(ctx, needed):
        return False

    if ctx.safe_mode == PlanMode.FULL_REST and wf.kind == "unilateral_control":
        return False

    return not ledger.recently_shown(wf.kind)


# ======================================================================
# Clause text
# ======================================================================


def numeric_to_secondary(res: WhatIfNumeric) -> Optional[str]:
    """Short benefit clause for a numeric projection, hedged below 0.7 confidence."""
    e = res.effects
    hedge = "likely " if res.confidence < HEDGE_BELOW_CONFIDENCE else ""
    if (e.recovery_hours_saved or 0) >= MIN_HOURS_SAVED:
        return f"{hedge}saving about {round(e.recovery_hours_saved)}h of recovery"
    if (e.readiness_delta_pts or 0) >= MIN_READINESS_POINTS:
        return f"{hedge}boosting readiness for the next lift"
    if (e.next_session_quality_prob or 0) >= MIN_QUALITY_PROB:
        return f"{hedge}improving next-session quality odds"
    return None


def qual_to_secondary(clause: Optional[str]) -> Optional[str]:
    if not clause:
        return None
    trimmed = clause.strip()
    return trimmed or None


def pick_benefit_clause(
    ctx: WhatIfContext,
    ledger: WhatIfLedger,
    numeric: Optional[WhatIfNumeric] = None,
    qual: Optional[WhatIfQual] = None,
) -> Optional[str]:
    """At most one clause, numeric preferred.  Records what it returns."""
    if numeric is not None and should_show_numeric(ctx, numeric, ledger):
        clause = numeric_to_secondary(numeric)
        if clause:
            ledger.record(numeric.action_id)
            return clause
    if qual is not None and should_show_qual(ctx, qual, ledger):
        clause = qual_to_secondary(qual.clause)
        if clause:
            ledger.record(qual.kind)
            return clause
    return None
