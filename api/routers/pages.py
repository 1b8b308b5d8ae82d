"""
Pages Router - redirect and status/help page
"""

import html
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from api.dependencies import get_activity_log, get_capture_service, get_preview_sink
from api.exceptions import safe_endpoint
from core.constants import APIConstants
from core.models import CameraDescriptor, CaptureResult
from core.sinks import PreviewSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()

EXAMPLE_QUERY = "cameraId=0&width=1920&height=1080&focus=0.0&af=false&exposure=50000000&iso=400&savePhoto=return"


def render_camera_list(cameras: List[CameraDescriptor]) -> str:
    if not cameras:
        return "<p>No cameras found.</p>"
    items = [
        f"<li><b>ID:</b> {html.escape(c.id)} &ndash; "
        f"<b>Lens:</b> {c.facing.label} &ndash; "
        f"<b>Resolution:</b> {c.resolution_label} &ndash; "
        f"<b>Focal:</b> {html.escape(c.focal_label)}</li>"
        for c in cameras
    ]
    return "<ul>" + "".join(items) + "</ul>"


def render_last_capture(result: Optional[CaptureResult], preview: Optional[PreviewSnapshot]) -> str:
    if result is None:
        return "<p>No capture yet.</p>"

    when = result.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    if not result.ok:
        return f"<p>{when}: failed ({html.escape(result.error or 'unknown error')})</p>"

    parts = [f"<p>{when}: camera {html.escape(str(result.camera_id))}, {result.width}x{result.height}"]
    if result.saved_path:
        parts.append(f", saved at <code>{html.escape(str(result.saved_path))}</code>")
    parts.append("</p>")
    if preview is not None and preview.request_id == result.request_id:
        parts.append(f'<img alt="last capture" src="data:image/jpeg;base64,{preview.thumbnail_base64}">')
    return "".join(parts)


def render_index(base_url: str, cameras_html: str, last_capture_html: str, log_lines: List[str]) -> str:
    example = f"{base_url}{APIConstants.CAPTURE_PATH.lstrip('/')}?{EXAMPLE_QUERY}"
    example = html.escape(example)
    log_html = html.escape("\n".join(log_lines)) if log_lines else "(empty)"

    return f"""<html>
<head><title>Photo Server</title></head>
<body>
    <h2>Welcome to the photo capture server</h2>
    <p><b>Available endpoint:</b> <code>{APIConstants.CAPTURE_PATH}</code></p>
    <p><b>Optional parameters:</b></p>
    <ul>
        <li><code>cameraId</code>: camera ID to use (see below)</li>
        <li><code>width</code>: image width (default: 1920)</li>
        <li><code>height</code>: image height (default: 1080)</li>
        <li><code>focus</code>: manual focus distance (0.0 = infinity)</li>
        <li><code>af</code>: autofocus (<code>true</code> or <code>false</code>)</li>
        <li><code>exposure</code>: shutter time in nanoseconds (needs <code>iso</code>)</li>
        <li><code>iso</code>: ISO sensitivity (needs <code>exposure</code>)</li>
        <li><code>savePhoto</code>: <code>return</code>, <code>local</code>, or <code>returnAndLocal</code></li>
    </ul>
    <p><b>Camera list:</b></p>
    {cameras_html}
    <p><b>Example:</b></p>
    <pre><a href="{example}">{example}</a></pre>
    <p><b>Last capture:</b></p>
    {last_capture_html}
    <p><b>Activity:</b></p>
    <pre>{log_html}</pre>
</body>
</html>"""


@router.get("/")
async def root() -> RedirectResponse:
    """Redirect to the status page"""
    return RedirectResponse(url=APIConstants.INDEX_PATH, status_code=302)


@router.get(APIConstants.INDEX_PATH, response_class=HTMLResponse)
@safe_endpoint
async def index(
    request: Request,
    capture_service=Depends(get_capture_service),
    preview_sink=Depends(get_preview_sink),
    activity_log=Depends(get_activity_log),
) -> HTMLResponse:
    """Status page: usage, camera list, last capture and recent activity"""
    cameras = await capture_service.list_cameras()
    page = render_index(
        base_url=str(request.base_url),
        cameras_html=render_camera_list(cameras),
        last_capture_html=render_last_capture(capture_service.latest_result(), preview_sink.snapshot()),
        log_lines=activity_log.recent(),
    )
    return HTMLResponse(page)
