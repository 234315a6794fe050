"""
Signal endpoints — live fatigue zone of a set.
"""

from fastapi import APIRouter

from app.repcoach.signal import determine_zone, find_fatigue_rep
from app.schemas.signal import ZoneRequest, ZoneResponse

router = APIRouter()


@router.post(
    "/zone",
    summary="Classify the current set from its rep features.",
    response_model=ZoneResponse,
)
def classify_zone(request: ZoneRequest):
    return ZoneResponse(
        zone=determine_zone(request.reps),
        rep_count=len(request.reps),
        fatigue_rep=find_fatigue_rep(request.reps),
    )
