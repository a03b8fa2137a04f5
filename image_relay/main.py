"""
Image Relay API

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import Depends, FastAPI

from image_relay import __version__
from image_relay.config import Settings, load_settings
from image_relay.dependencies import get_limiter, get_sweeper
from image_relay.middleware import ErrorHandlerMiddleware
from image_relay.routes import upload
from image_relay.services.cleanup_scheduler import StaleFileSweeper
from image_relay.services.concurrency import ConcurrencyLimiter
from image_relay.services.orchestrator import UploadOrchestrator
from image_relay.services.platform_uploader import PlatformUploader
from image_relay.services.staging import StagingStore
from image_relay.services.telegram_uploader import TelegramUploader

logger = logging.getLogger(__name__)

SERVICE_NAME = "image-relay"


def create_app(
    settings: Optional[Settings] = None,
    uploader: Optional[PlatformUploader] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Loaded settings; read from the default config file at
                  startup when omitted
        uploader: Platform uploader; a TelegramUploader over a shared
                  httpx client is built at startup when omitted

    Returns:
        FastAPI: Configured application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the shared pipeline on startup and tear it down on shutdown."""
        app_settings = settings or load_settings()

        store = StagingStore(app_settings.STAGING_DIR)
        store.ensure_directory()

        client: Optional[httpx.AsyncClient] = None
        platform = uploader
        if platform is None:
            client = httpx.AsyncClient(timeout=app_settings.UPSTREAM_TIMEOUT_SECONDS)
            platform = TelegramUploader.from_settings(app_settings, client)

        limiter = ConcurrencyLimiter(app_settings.MAX_CONCURRENT_UPLOADS)
        sweeper = StaleFileSweeper(
            store.staging_dir,
            ttl_minutes=app_settings.STALE_FILE_TTL_MINUTES,
            interval_minutes=app_settings.SWEEP_INTERVAL_MINUTES,
            in_use=store.active_paths,
        )

        app.state.settings = app_settings
        app.state.limiter = limiter
        app.state.sweeper = sweeper
        app.state.orchestrator = UploadOrchestrator(
            store=store,
            limiter=limiter,
            uploader=platform,
            destination=app_settings.CHAT_ID,
        )

        # Startup
        sweeper.start()
        logger.info(
            f"Relay ready: {platform.platform_name}, "
            f"{limiter.capacity} concurrent upload(s)"
        )
        try:
            yield
        finally:
            # Shutdown
            sweeper.stop()
            if client is not None:
                await client.aclose()

    app = FastAPI(
        title="Image Relay API",
        description="Relays uploaded images to Telegram and returns their public URL",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Error handling middleware
    app.add_middleware(ErrorHandlerMiddleware)

    # Register routers
    app.include_router(upload.router, tags=["Upload"])

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
        }

    @app.get("/health")
    async def health_check(
        limiter: ConcurrencyLimiter = Depends(get_limiter),
        sweeper: StaleFileSweeper = Depends(get_sweeper),
    ):
        """
        Detailed health check endpoint.

        Reports upload slot usage and sweeper state. Never includes the bot
        token or chat id.
        """
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "uploads": limiter.status(),
            "sweeper": sweeper.status(),
        }

    return app


app = create_app()
