"""
FastAPI application
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..core.config import settings
from .dependencies import get_engine
from .routes import (
    webhook_router,
    triggers_router,
    sessions_router,
    flows_router
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Zapflow - WhatsApp chatbot flow engine",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify allowed origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(webhook_router)
    app.include_router(triggers_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(flows_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": settings.APP_NAME,
            "version": "1.0.0",
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup():
        """Startup event"""
        logger.info(f"Starting {settings.APP_NAME}...")

        # Load triggers and start the session sweeper
        engine = app.dependency_overrides.get(get_engine, get_engine)()
        await engine.start()
        logger.info(f"Loaded {len(engine.triggers)} flow triggers, session sweeper started")

    @app.on_event("shutdown")
    async def shutdown():
        """Shutdown event"""
        logger.info(f"Shutting down {settings.APP_NAME}...")

        engine = app.dependency_overrides.get(get_engine, get_engine)()
        await engine.stop()
        logger.info("Session sweeper stopped")

    return app


# Create app instance
app = create_app()
