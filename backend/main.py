"""
Zapflow server entry point

Run from the backend directory:
    python main.py
"""
import uvicorn
from zapflow.core.config import settings


def run() -> None:
    """Serve the webhook and management API"""
    uvicorn.run(
        "zapflow.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )


if __name__ == "__main__":
    run()
