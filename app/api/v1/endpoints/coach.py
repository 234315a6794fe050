"""
Coach endpoints — voice cue routing and the home-screen suggestion.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_session_store, get_text_generator
from app.repcoach.home_coach import run_home_coach
from app.repcoach.router import route_coach_reply
from app.repcoach.session import SessionStore
from app.schemas.coach import CoachJSON, HomeCoachRequest
from app.schemas.policy import CoachReplyResult, CoachSnapshot
from app.services.text_generation import TextGenerator

router = APIRouter()


@router.post(
    "/reply",
    summary="Route one voice-coaching turn (speak, stay silent, or safety stop).",
    response_model=CoachReplyResult,
)
def coach_reply(
    snapshot: CoachSnapshot,
    generator: TextGenerator = Depends(get_text_generator),
):
    return route_coach_reply(snapshot, generator)


@router.post(
    "/home",
    summary="Home-screen suggestion or clarifying question, verified by the plan selector.",
    response_model=CoachJSON,
)
def home_coach(
    request: HomeCoachRequest,
    store: SessionStore = Depends(get_session_store),
    generator: TextGenerator = Depends(get_text_generator),
):
    return run_home_coach(
        request.context,
        store.get(request.session_id),
        generator,
        minutes_available=request.minutes_available,
        what_if_numeric=request.what_if_numeric,
    )


@router.delete(
    "/sessions/{session_id}",
    summary="Forget a session's copy history and what-if ledger.",
    status_code=status.HTTP_204_NO_CONTENT,
)
def end_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    store.drop(session_id)
