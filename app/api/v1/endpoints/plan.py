"""
Plan endpoints — today's mode for the target muscle.
"""

from fastapi import APIRouter

from app.repcoach.planner import decide_plan
from app.schemas.plan import DecisionContext, PlanResult

router = APIRouter()


@router.post(
    "/decide",
    summary="Choose TRAIN, ACTIVE_RECOVERY or FULL_REST with a decision trace.",
    response_model=PlanResult,
)
def decide(ctx: DecisionContext):
    return decide_plan(ctx)
