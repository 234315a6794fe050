"""
Shared API dependencies.

Process-wide singletons for the coaching session store and the text
generator.  Tests override them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from app.core.config import settings
from app.repcoach.session import SessionStore
from app.services.text_generation import TextGenerator, build_text_generator


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(idle_hours=settings.COACH_SESSION_IDLE_HOURS)


@lru_cache
def get_text_generator() -> TextGenerator:
    return build_text_generator()
