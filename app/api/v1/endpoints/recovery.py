"""
Recovery endpoints — recovery windows, readiness curve and what-if deltas.
"""

from fastapi import APIRouter, HTTPException, status

from app.repcoach.recovery import estimate_recovery, what_if
from app.schemas.recovery import (
    RecoveryEstimate,
    RecoveryRequest,
    RecoveryWhatIf,
    RecoveryWhatIfRequest,
    SessionFeatures,
)

router = APIRouter()


@router.post(
    "/estimate",
    summary="Estimate recovery windows and readiness curve for a session.",
    response_model=RecoveryEstimate,
)
def estimate(request: RecoveryRequest):
    return estimate_recovery(
        request.profile, request.session, request.signal, request.movement_pattern,
    )


@router.post(
    "/what-if",
    summary="Re-estimate recovery with changed session features.",
    response_model=RecoveryWhatIf,
)
def estimate_what_if(request: RecoveryWhatIfRequest):
    unknown = sorted(set(request.changes) - set(SessionFeatures.model_fields))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown session fields: {', '.join(unknown)}",
        )
    try:
        return what_if(
            request.profile,
            request.session,
            request.signal,
            request.movement_pattern,
            **request.changes,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc),
        ) from exc
