"""
Photo Capture Server - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from api.exceptions import register_exception_handlers
from api.routers import capture, pages
from config import Settings, get_settings
from core.constants import SystemConstants
from core.sinks import ActivityLog, ActivityLogHandler, PreviewSink
from services.capture_service import build_capture_service

# Get configuration
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.system.log_level),
    format=SystemConstants.LOG_FORMAT,
)
logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI, app_settings: Settings) -> ActivityLogHandler:
    """Create services and store them on app state; returns the log mirror handler"""
    activity_log = ActivityLog(max_size=app_settings.system.activity_log_size)
    handler = ActivityLogHandler(activity_log)
    logging.getLogger().addHandler(handler)

    preview_sink = PreviewSink()
    capture_service = build_capture_service(app_settings, preview_sink=preview_sink)

    app.state.settings = app_settings
    app.state.config = app_settings.to_dict()
    app.state.activity_log = activity_log
    app.state.preview_sink = preview_sink
    app.state.capture_service = capture_service
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info("Starting photo capture server...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Camera backend: {settings.camera.backend}")

    handler = init_app_state(app, settings)
    logger.info(f"Server started at http://{settings.api.host}:{settings.api.port}")

    yield

    logger.info("Shutting down photo capture server...")
    try:
        app.state.capture_service.shutdown()
    except Exception as e:
        logger.error(f"Error during cleanup: {e}")
    finally:
        logging.getLogger().removeHandler(handler)

    logger.info("Server shutdown complete")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Photo Capture Server",
        description="Remotely triggerable still camera over HTTP",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_exception_handlers(application)
    application.include_router(pages.router, tags=["Pages"])
    application.include_router(capture.router, tags=["Capture"])
    return application


# Create FastAPI app
app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Serve the app with uvicorn until interrupted"""
    server_config = uvicorn.Config(
        app,
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_level=settings.system.log_level.lower(),
        loop="asyncio",
    )
    server = uvicorn.Server(server_config)

    try:
        server.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        logger.info("Server exiting...")


if __name__ == "__main__":
    run_server()
