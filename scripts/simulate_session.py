"""What would RepCoach say about one squat session?

Replays a recorded set rep by rep through the live zone classifier, then
runs the recovery estimate, the plan selector and a home coach turn for
the next morning.  With no GEMINI_API_KEY the home coach answers with its
fallback copy.

Usage:
    python scripts/simulate_session.py
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv()

from app.repcoach.home_coach import run_home_coach
from app.repcoach.planner import decide_plan
from app.repcoach.recovery import estimate_recovery
from app.repcoach.session import CoachSession
from app.repcoach.signal import determine_zone, find_fatigue_rep
from app.schemas.plan import DecisionContext, FatigueDelta
from app.schemas.recovery import LifterProfile, SessionFeatures, SignalDelta
from app.schemas.signal import RepFeature
from app.services.text_generation import build_text_generator

# ─── Recorded set: normalized amplitude per rep ─────────────────────
SET_AMPLITUDES = [1.00, 1.01, 1.03, 1.04, 1.06, 1.09, 1.13, 1.17, 1.20]

PROFILE = LifterProfile(
    training_age_months=30,
    sessions_per_week_trailing_8w=3.5,
    relative_strength_ratio=1.4,
    exposure_count_by_movement_pattern={"squat": 60},
)
SESSION = SessionFeatures(total_sets=4, total_reps=28, avg_reps_in_reserve=2)
SIGNAL = SignalDelta(amplitude_drop_pct=14, rate_of_rise_drop_pct=18, symmetry_pct=93)


def replay_set():
    reps = []
    print("  Rep  Amp    Zone")
    print("  " + "-" * 30)
    for i, amp in enumerate(SET_AMPLITUDES, start=1):
        reps.append(RepFeature(index=i, normalized_amplitude=amp, signal_confidence=0.9))
        print(f"  {i:>3}  {amp:.2f}   {determine_zone(reps).value}")
    print()
    print(f"  Fatigue rep: {find_fatigue_rep(reps)}")
    print()


def main():
    print()
    print("=" * 60)
    print("  RepCoach session replay")
    print("=" * 60)
    print()

    replay_set()

    est = estimate_recovery(PROFILE, SESSION, SIGNAL)
    print(f"  Level: {est.level.value}   SSS: {est.session_stress_score:.2f}")
    print(f"  T80: {est.t80_hours}h   T85: {est.t85_hours}h")
    for note in est.notes:
        print(f"  - {note}")
    print()

    # Next morning, 20h later.
    ctx = DecisionContext(
        readiness=74,
        hours_since_last_same_muscle=20,
        weekly_sets_done=8,
        weekly_sets_target=12,
        fatigue=FatigueDelta(
            amplitude_drop_pct=SIGNAL.amplitude_drop_pct,
            rate_of_rise_drop_pct=SIGNAL.rate_of_rise_drop_pct,
        ),
        symmetry_pct=SIGNAL.symmetry_pct,
    )
    result = decide_plan(ctx)
    print(f"  Plan: {result.plan.mode.value}  ({', '.join(result.plan.reason_codes)})")
    for action in result.plan.primary_actions:
        print(f"    * {action}")
    print()

    reply = run_home_coach(ctx, CoachSession(session_id="replay"), build_text_generator())
    print(f"  Home coach: {reply.model_dump_json(exclude_none=True)}")
    print()


if __name__ == "__main__":
    main()
