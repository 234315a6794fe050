"""
Development server launcher.

Loads the .env file, reports which text generator the coaching endpoints
will use and runs the RepCoach API with uvicorn.  Reload follows ``DEBUG``.

Usage:
    python scripts/run_dev.py
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# .env must be loaded before settings are read
from dotenv import load_dotenv

load_dotenv()

import uvicorn

from app.core.config import settings

if __name__ == "__main__":
    generator = (
        f"Gemini ({settings.GEMINI_MODEL})" if settings.GEMINI_API_KEY
        else "none, fallback copy only"
    )
    print("=" * 60)
    print(settings.PROJECT_NAME)
    print("=" * 60)
    print()
    print(f"Text generator: {generator}")
    print(f"Tool turns: {settings.COACH_MAX_TOOL_TURNS}, timeout: {settings.COACH_LLM_TIMEOUT_S}s")
    print("API: http://localhost:8000/api/v1")
    print("Docs: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop")
    print("=" * 60)

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
