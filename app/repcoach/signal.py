"""
Signal classifier — live fatigue zone of the set in progress.

Each rep contributes a normalised amplitude (≈1.0 at the first rep).  As
motor units fatigue, the same load needs more activity, so the amplitude
*rises* across a productive set.  The classifier looks at the rise versus
the first rep (baseline) and at the rep-over-rep slope:

    rise(i)  = (amp_i - amp_1) / amp_1
    slope(i) = (amp_i - amp_{i-1}) / amp_{i-1}

Rules, in order
---------------
1. **Confidence gate** — if the latest rep is below the confidence floor
   the set is ``low_signal``, whatever the amplitudes say.
2. **Too heavy early** — within the first reps, both a large rise *and* a
   steep slope.  One noisy spike is not enough.
3. **In zone** — inside the target rep window, the last two reps both
   risen enough, still climbing, and not collapsing off the running peak
   (a drop of 10 % or more after the peak means the lifter already failed).
4. **Too light** — at the top of the window with almost no rise.
5. **Fall** — past the hard rep ceiling.
6. Otherwise ``building``.

All functions are pure: the zone is recomputed from the full rep list
every time, nothing is cached between reps.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, Field

from app.schemas.signal import RepFeature, Zone

# ======================================================================
# Configuration
# ======================================================================


class SignalConfig(BaseModel):
    """Thresholds of the zone classifier."""

    target_min_rep: int = 7
    target_max_rep: int = 10
    early_window_max_rep: int = 3
    confirm_reps: int = 2
    in_zone_rise_min: float = 0.10
    in_zone_slope_min: float = 0.02
    too_heavy_rise_min: float = 0.18
    too_heavy_slope_min: float = 0.03
    drop_after_peak: float = 0.10
    too_light_rise_max: float = 0.06
    low_signal_confidence: float = Field(0.7, ge=0.0, le=1.0)
    hard_ceiling_rep: int = 9


DEFAULT_SIGNAL_CONFIG = SignalConfig()


# ======================================================================
# Helpers
# ======================================================================


def _pct(a: float, b: float) -> float:
    """Relative change from *a* to *b*."""
    return (b - a) / max(1e-6, a)


def _confirms_zone(
    baseline: float,
    prev: RepFeature,
    cur: RepFeature,
    peak: float,
    cfg: SignalConfig,
) -> bool:
    """Two consecutive reps both risen, still climbing, no post-peak drop."""
    rise_prev = _pct(baseline, prev.normalized_amplitude)
    rise_cur = _pct(baseline, cur.normalized_amplitude)
    slope = _pct(prev.normalized_amplitude, cur.normalized_amplitude)
    dropped = _pct(peak, cur.normalized_amplitude) <= -cfg.drop_after_peak
    return (
        rise_prev >= cfg.in_zone_rise_min
        and rise_cur >= cfg.in_zone_rise_min
        and slope >= cfg.in_zone_slope_min
        and not dropped
    )


# ======================================================================
# Public API
# ======================================================================


def determine_zone(
    reps: Sequence[RepFeature],
    config: Optional[SignalConfig] = None,
) -> Zone:
    """Classify the current state of the set from its full rep sequence."""
    cfg = config or DEFAULT_SIGNAL_CONFIG
    n = len(reps)
    if n == 0:
        return Zone.BUILDING

    last = reps[-1]
    if last.signal_confidence < cfg.low_signal_confidence:
        return Zone.LOW_SIGNAL

    baseline = reps[0].normalized_amplitude

    if last.index <= cfg.early_window_max_rep and n >= cfg.confirm_reps:
        prev = reps[-2]
        rise = _pct(baseline, last.normalized_amplitude)
        slope = _pct(prev.normalized_amplitude, last.normalized_amplitude)
        if rise >= cfg.too_heavy_rise_min and slope >= cfg.too_heavy_slope_min:
            return Zone.TOO_HEAVY_EARLY

    within = cfg.target_min_rep <= last.index <= cfg.target_max_rep
    if within and n >= cfg.confirm_reps:
        peak = max(r.normalized_amplitude for r in reps)
        if _confirms_zone(baseline, reps[-2], last, peak, cfg):
            return Zone.IN_ZONE

    # too_light is checked before the ceiling when both apply.
    if last.index >= cfg.target_max_rep:
        if _pct(baseline, last.normalized_amplitude) < cfg.too_light_rise_max:
            return Zone.TOO_LIGHT

    if last.index >= cfg.hard_ceiling_rep:
        return Zone.FALL

    return Zone.BUILDING


def find_fatigue_rep(
    reps: Sequence[RepFeature],
    config: Optional[SignalConfig] = None,
) -> Optional[int]:
    """Return the first rep index at which the in-zone rule held.

    Replays the in-zone rule over the target window, using the running
    peak up to each candidate rep.  Used for post-set narration ("you hit
    the zone at rep 8"), not for live classification.

    If the rule never held but the set ran to the hard ceiling, the last
    rep is returned.  Otherwise ``None``.
    """
    cfg = config or DEFAULT_SIGNAL_CONFIG
    if len(reps) < cfg.confirm_reps:
        return None

    baseline = reps[0].normalized_amplitude
    upper = min(cfg.target_max_rep, len(reps))
    for pos in range(max(cfg.target_min_rep, 2), upper + 1):
        prev, cur = reps[pos - 2], reps[pos - 1]
        peak = max(r.normalized_amplitude for r in reps[:pos])
        if _confirms_zone(baseline, prev, cur, peak, cfg):
            return cur.index

    if len(reps) >= cfg.hard_ceiling_rep:
        return reps[-1].index
    return None
