"""FastAPI server entry point for the medication reminder service."""

import uvicorn

from .config import get_settings


def main():
    """Run the FastAPI server."""
    settings = get_settings()

    # A single worker process: reminder state lives in memory
    uvicorn.run(
        "medtracker.app:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
