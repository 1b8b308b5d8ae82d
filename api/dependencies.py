"""
Shared FastAPI dependencies for the Photo Capture Server.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Query, Request

from api.exceptions import InvalidCaptureSizeException
from config import Settings, get_settings
from core.models import CaptureRequest
from core.sinks import ActivityLog, PreviewSink
from schemas import CaptureQuery
from services.capture_service import CaptureService

logger = logging.getLogger(__name__)


class Services:
    """Container for all service instances."""

    def __init__(
        self,
        capture_service: CaptureService,
        preview_sink: PreviewSink,
        activity_log: ActivityLog,
    ):
        self.capture_service = capture_service
        self.preview_sink = preview_sink
        self.activity_log = activity_log


def get_services(request: Request) -> Services:
    """
    Get all service instances from app state.

    Raises:
        HTTPException: If services not initialized
    """
    try:
        return Services(
            capture_service=request.app.state.capture_service,
            preview_sink=request.app.state.preview_sink,
            activity_log=request.app.state.activity_log,
        )
    except AttributeError as e:
        logger.error(f"Services not initialized in app state: {e}")
        raise HTTPException(status_code=500, detail="Internal server error: Services not initialized")


def get_capture_service(services: Services = Depends(get_services)) -> CaptureService:
    """Get CaptureService instance."""
    return services.capture_service


def get_preview_sink(services: Services = Depends(get_services)) -> PreviewSink:
    """Get PreviewSink instance."""
    return services.preview_sink


def get_activity_log(services: Services = Depends(get_services)) -> ActivityLog:
    """Get ActivityLog instance."""
    return services.activity_log


def get_app_settings(request: Request) -> Settings:
    """Settings stored at startup, falling back to the environment"""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        logger.warning("Settings not found in app state, using defaults")
        return get_settings()
    return settings


def capture_query_params(
    camera_id: Optional[str] = Query(None, alias="cameraId", description="Camera identifier"),
    width: Optional[str] = Query(None, description="Image width (default 1920)"),
    height: Optional[str] = Query(None, description="Image height (default 1080)"),
    focus: Optional[str] = Query(None, description="Manual focus distance, 0.0 = infinity"),
    af: Optional[str] = Query(None, description="Autofocus: true or false"),
    exposure: Optional[str] = Query(None, description="Shutter time in nanoseconds"),
    iso: Optional[str] = Query(None, description="ISO sensitivity"),
    save_photo: Optional[str] = Query(
        None, alias="savePhoto", description="return, local or returnAndLocal"
    ),
) -> CaptureQuery:
    """
    Raw /capture query parameters.

    Everything arrives as text so malformed numbers can fall back to their
    defaults instead of failing validation.

    Raises:
        InvalidPersistenceModeError: If savePhoto is not a known mode
    """
    return CaptureQuery(
        camera_id=camera_id,
        width=width,
        height=height,
        focus=focus,
        af=af,
        exposure=exposure,
        iso=iso,
        save_photo=save_photo,
    )


def capture_request_param(
    query: CaptureQuery = Depends(capture_query_params),
    settings: Settings = Depends(get_app_settings),
) -> CaptureRequest:
    """Build the immutable capture request for this HTTP call"""
    try:
        return query.to_request(settings.capture.default_width, settings.capture.default_height)
    except ValueError as e:
        raise InvalidCaptureSizeException(str(e))
