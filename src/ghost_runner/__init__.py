"""Ghost Runner - scheduled browser-automation tasks with a live dashboard."""

import logging

import uvicorn

from ghost_runner.config import Settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def main() -> None:
    """Dashboard server entry point using uvicorn directly."""
    settings = Settings()
    uvicorn.run("ghost_runner.app:create_app", factory=True, host=settings.host, port=settings.port)
