"""RepCoach core — fatigue zones, recovery forecast, plan selection, coaching copy."""

from app.repcoach.planner import decide_plan
from app.repcoach.recovery import estimate_recovery, what_if
from app.repcoach.router import route_coach_reply
from app.repcoach.signal import determine_zone, find_fatigue_rep

__all__ = [
    "decide_plan",
    "determine_zone",
    "estimate_recovery",
    "find_fatigue_rep",
    "route_coach_reply",
    "what_if",
]
