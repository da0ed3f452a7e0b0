# main.py
"""Main entry point for the findings assistant API."""

import uvicorn

from findings_assistant.core.config import Config

# Load environment variables before the app reads settings
Config.load_env_for_development()

from findings_assistant.web.app import app  # noqa: E402

if __name__ == "__main__":
    # Development server
    uvicorn.run(
        "findings_assistant.web.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
