"""
Capture API Router
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from api.dependencies import capture_request_param, get_app_settings, get_capture_service
from api.exceptions import safe_endpoint
from config import Settings
from core.constants import APIConstants, ImageConstants
from core.models import CaptureRequest, CaptureResult, PersistenceMode

logger = logging.getLogger(__name__)

router = APIRouter()

NO_IMAGE_MESSAGE = "No image captured"


def build_capture_response(result: CaptureResult, mode: PersistenceMode) -> Response:
    """Turn a finished capture into the response its persistence mode asks for"""
    if not result.ok:
        logger.error(f"Error: no image captured ({result.error})")
        return PlainTextResponse(NO_IMAGE_MESSAGE)

    if mode.persists and result.saved_path is None:
        return PlainTextResponse(f"Failed to save photo: {result.error}", status_code=500)

    if mode == PersistenceMode.LOCAL:
        return PlainTextResponse(f"Saved at: {result.saved_path}")

    headers = {}
    if mode == PersistenceMode.RETURN_AND_LOCAL:
        headers[APIConstants.SAVED_PATH_HEADER] = str(result.saved_path)
    return Response(content=result.image, media_type=ImageConstants.JPEG_MIME_TYPE, headers=headers)


@router.get(APIConstants.CAPTURE_PATH)
@safe_endpoint
async def capture(
    request: Request,
    capture_request: CaptureRequest = Depends(capture_request_param),
    capture_service=Depends(get_capture_service),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Capture one still and return it, save it, or both.

    Optional query parameters: cameraId, width, height, focus, af, exposure,
    iso, savePhoto. An unknown savePhoto is rejected with 400 before the
    camera is touched.
    """
    logger.info(f"Request: {request.url.path}")
    logger.info(capture_request.describe())
    if capture_request.partial_exposure:
        logger.warning("exposure and iso must be given together, using auto exposure")

    result = await capture_service.capture(capture_request, timeout=settings.capture.timeout_seconds)
    return build_capture_response(result, capture_request.persistence)
