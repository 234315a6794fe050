"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables (.env file).
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Project Info
    PROJECT_NAME: str = "RepCoach: muscle-signal strength coaching engine."
    VERSION: str = "0.1.0"
    AUTHORS: List[str] = ["RepCoach contributors"]
    PROJECT_URL: str = ""

    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json

    # Text generation (Gemini).  An empty key disables the collaborator and
    # every coaching turn uses the deterministic fallback copy.
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Coaching turn limits
    COACH_LLM_TIMEOUT_S: float = 12.0
    COACH_MAX_TOOL_TURNS: int = 8
    COACH_TEMPERATURE: float = 0.85
    COACH_TOP_P: float = 0.9
    COACH_MAX_OUTPUT_TOKENS: int = 400

    # Sessions idle longer than this are evicted from the in-process store.
    # Keep it above the 36 h what-if recency window.
    COACH_SESSION_IDLE_HOURS: float = 48.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Global settings instance
settings = Settings()
