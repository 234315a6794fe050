"""
API v1 router.

Aggregates all v1 endpoints.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import coach, plan, recovery, signal

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    signal.router, prefix="/signal", tags=["Signal"]
)
api_router.include_router(
    recovery.router, prefix="/recovery", tags=["Recovery"]
)
api_router.include_router(
    plan.router, prefix="/plan", tags=["Plan"]
)
api_router.include_router(
    coach.router, prefix="/coach", tags=["Coach"]
)
