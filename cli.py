"""
Photo Capture Server - command line

`serve` runs the HTTP server, `capture` takes one photo and saves it locally
(the on-device capture button), `cameras` lists what the backend sees.
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from config import get_settings
from core.constants import SystemConstants
from core.exceptions import CaptureTimeoutError
from core.models import CaptureRequest, PersistenceMode
from core.sinks import PreviewSink
from services.capture_service import build_capture_service

app = typer.Typer(add_completion=False)
console = Console()
logger = logging.getLogger(__name__)


def _configure_logging():
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.system.log_level),
        format=SystemConstants.LOG_FORMAT,
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default from settings)"),
    port: Optional[int] = typer.Option(None, help="Port (default 8080)"),
):
    """Run the HTTP capture server."""
    from main import run_server

    run_server(host=host, port=port)


@app.command()
def capture(
    camera_id: Optional[str] = typer.Option(None, "--camera-id", help="Camera ID, back camera if omitted"),
    width: int = typer.Option(1920, help="Width in pixels"),
    height: int = typer.Option(1080, help="Height in pixels"),
    focus: float = typer.Option(0.0, help="Manual focus distance (0.0 = infinity)"),
    af: bool = typer.Option(True, "--af/--no-af", help="Autofocus"),
    exposure: Optional[int] = typer.Option(None, help="Shutter time in nanoseconds"),
    iso: Optional[int] = typer.Option(None, help="ISO sensitivity"),
):
    """Take one photo and save it to the photo directory."""
    _configure_logging()
    settings = get_settings()

    request = CaptureRequest(
        camera_id=camera_id,
        width=width,
        height=height,
        focus=focus,
        autofocus=af,
        exposure_time_ns=exposure,
        sensitivity=iso,
        persistence=PersistenceMode.LOCAL,
    )
    logger.info(f"Manual capture: {request.describe()}")
    if request.partial_exposure:
        console.print("[yellow]exposure and iso must be given together, using auto exposure[/yellow]")

    preview = PreviewSink()
    service = build_capture_service(settings, preview_sink=preview)
    try:
        result = asyncio.run(service.capture(request))
    except CaptureTimeoutError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)
    finally:
        service.shutdown()

    if not result.ok:
        console.print(f"[red]No image captured:[/red] {result.error}")
        raise typer.Exit(code=1)
    if result.saved_path is None:
        console.print(f"[red]Failed to save photo:[/red] {result.error}")
        raise typer.Exit(code=1)

    snapshot = preview.snapshot()
    size = f"{snapshot.width}x{snapshot.height}" if snapshot else f"{result.width}x{result.height}"
    console.print(f"[green]Saved at:[/green] {result.saved_path} ({size}, {len(result.image)} bytes)")


@app.command()
def cameras():
    """List available cameras."""
    _configure_logging()
    service = build_capture_service(get_settings())
    try:
        found = service.backend.enumerate()
    finally:
        service.shutdown()

    table = Table(title="Cameras")
    table.add_column("ID")
    table.add_column("Lens")
    table.add_column("Resolution")
    table.add_column("Focal")
    for camera in found:
        table.add_row(camera.id, camera.facing.label, camera.resolution_label, camera.focal_label)
    console.print(table)


if __name__ == "__main__":
    app()
