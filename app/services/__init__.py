"""External collaborators used by the coaching core."""

from app.services.text_generation import (
    CollaboratorError,
    GeminiTextGenerator,
    ReplyValidationError,
    TextGenerator,
    UnavailableTextGenerator,
    build_text_generator,
)

__all__ = [
    "CollaboratorError",
    "GeminiTextGenerator",
    "ReplyValidationError",
    "TextGenerator",
    "UnavailableTextGenerator",
    "build_text_generator",
]
