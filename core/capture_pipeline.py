"""
Capture Pipeline - one still capture from camera resolution to completion

Each run resolves a camera, opens it, configures a single-buffer session,
waits for autofocus when requested, issues exactly one still request and
hands the encoded bytes to the completion sinks. Hardware calls are posted to
one camera thread so the event loop never blocks on the device.
"""

import asyncio
import functools
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from core.camera_backend import (
    CameraBackend,
    CameraDevice,
    CaptureSession,
    ImageReader,
    resolve_camera_id,
)
from core.capture_state import CaptureEvent, CaptureStateMachine
from core.constants import CameraConstants
from core.exceptions import (
    CameraDeviceError,
    CameraDisconnectedError,
    CameraPermissionError,
    PhotoApiError,
    SessionConfigurationError,
)
from core.models import CaptureRequest, CaptureResult, StillSettings
from core.photo_storage import PhotoStorage

logger = logging.getLogger(__name__)

CompletionSink = Callable[[CaptureResult], None]


def create_camera_executor() -> ThreadPoolExecutor:
    """The single thread all camera calls are posted to"""
    return ThreadPoolExecutor(max_workers=1, thread_name_prefix="camera")


class CameraSession:
    """
    Owns the device, image reader and capture session of one run.

    Used as an async context manager: whatever was acquired is released on
    exit, whether the run succeeded, failed or was cancelled.
    """

    def __init__(self, backend: CameraBackend, camera_id: str, width: int, height: int, executor: Executor):
        self.backend = backend
        self.camera_id = camera_id
        self.executor = executor
        self.reader = ImageReader(width, height)
        self.device: Optional[CameraDevice] = None
        self.session: Optional[CaptureSession] = None

    async def _call(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(func, *args))

    def _open_device(self):
        self.device = self.backend.open(self.camera_id)

    def _create_session(self):
        self.session = self.device.create_session(self.reader)

    # Handles are stored on the camera thread, so a release queued behind a
    # cancelled open or configure still sees them
    async def open(self):
        await self._call(self._open_device)

    async def configure(self):
        await self._call(self._create_session)

    async def preview(self, settings: StillSettings):
        return await self._call(self.session.preview, settings)

    async def capture_still(self, settings: StillSettings) -> bytes:
        await self._call(self.session.stop_repeating)
        await self._call(self.session.capture, settings)
        image = self.reader.acquire_latest()
        if image is None:
            raise CameraDeviceError(self.camera_id, "no image delivered")
        return image

    def _release(self):
        for name, handle in (("session", self.session), ("device", self.device), ("reader", self.reader)):
            if handle is None:
                continue
            try:
                handle.close()
            except Exception as e:
                logger.warning(f"Failed to close {name} of camera {self.camera_id}: {e}")
        self.session = None
        self.device = None

    async def __aenter__(self) -> "CameraSession":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        loop = asyncio.get_running_loop()
        # Shielded so a cancelled run still releases the device
        await asyncio.shield(loop.run_in_executor(self.executor, self._release))
        return False


class CapturePipeline:
    """Runs capture requests against a camera backend"""

    def __init__(
        self,
        backend: CameraBackend,
        storage: Optional[PhotoStorage] = None,
        sinks: Optional[Iterable[CompletionSink]] = None,
        executor: Optional[Executor] = None,
        af_max_preview_frames: int = CameraConstants.AF_MAX_PREVIEW_FRAMES,
    ):
        self.backend = backend
        self.storage = storage
        self.sinks: List[CompletionSink] = list(sinks or [])
        self.executor = executor or create_camera_executor()
        self.af_max_preview_frames = af_max_preview_frames

    def add_sink(self, sink: CompletionSink):
        self.sinks.append(sink)

    async def _call(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(func, *args))

    async def run(self, request: CaptureRequest) -> CaptureResult:
        """
        Capture one still.

        Camera failures are logged and produce a result without an image.
        Cancellation propagates after the camera has been released.
        """
        machine = CaptureStateMachine(request.request_id)
        camera_id = request.camera_id

        try:
            camera_id = await self._call(resolve_camera_id, self.backend, request.camera_id)
            logger.info(f"Resolved request: {replace(request, camera_id=camera_id).describe()}")
            machine.fire(CaptureEvent.OPEN_REQUESTED)

            async with CameraSession(
                self.backend, camera_id, request.width, request.height, self.executor
            ) as session:
                await session.open()
                machine.fire(CaptureEvent.OPENED)

                await session.configure()
                machine.fire(CaptureEvent.CONFIGURED)

                await self._converge(session, request, machine)

                image = await session.capture_still(StillSettings.for_still(request))
                machine.fire(CaptureEvent.IMAGE_AVAILABLE)

        except asyncio.CancelledError:
            machine.fire_if_accepted(CaptureEvent.CANCELLED)
            logger.warning(f"Capture {request.request_id} cancelled")
            raise
        except CameraPermissionError as e:
            machine.fire_if_accepted(CaptureEvent.ERROR)
            logger.warning(f"Capture not started: {e}")
            return CaptureResult.failed(request, str(e), camera_id)
        except CameraDisconnectedError as e:
            machine.fire_if_accepted(CaptureEvent.DISCONNECTED)
            logger.error(f"Camera disconnected: {e}")
            return CaptureResult.failed(request, str(e), camera_id)
        except SessionConfigurationError as e:
            machine.fire_if_accepted(CaptureEvent.CONFIGURE_FAILED)
            logger.error(f"Error: session configuration failed ({e})")
            return CaptureResult.failed(request, str(e), camera_id)
        except PhotoApiError as e:
            machine.fire_if_accepted(CaptureEvent.ERROR)
            logger.error(f"Camera error: {e}")
            return CaptureResult.failed(request, str(e), camera_id)

        logger.info(f"Photo captured ({len(image)} bytes) from camera {camera_id}")
        result = CaptureResult(
            request_id=request.request_id,
            camera_id=camera_id,
            image=image,
            width=request.width,
            height=request.height,
        )
        result = await self._persist(request, result)
        self._notify(result)
        return result

    async def _converge(self, session: CameraSession, request: CaptureRequest, machine: CaptureStateMachine):
        """Run the repeating preview until autofocus settles or the frame budget runs out"""
        preview_settings = StillSettings.for_preview(request)

        for _ in range(max(self.af_max_preview_frames, 1)):
            frame = await session.preview(preview_settings)
            if not request.autofocus or frame.af_state.converged:
                break
            machine.fire(CaptureEvent.PREVIEW_PROGRESSED)
        else:
            logger.warning(
                f"Autofocus did not converge within {self.af_max_preview_frames} frames, capturing anyway"
            )

        machine.fire(CaptureEvent.CONVERGED)

    async def _persist(self, request: CaptureRequest, result: CaptureResult) -> CaptureResult:
        if not request.persistence.persists:
            return result
        if self.storage is None:
            logger.error("No photo storage configured, cannot save capture")
            return replace(result, error="no storage configured")

        loop = asyncio.get_running_loop()
        try:
            path = await loop.run_in_executor(None, self.storage.save, result.image)
        except OSError as e:
            logger.error(f"Failed to save photo: {e}")
            return replace(result, error=f"save failed: {e}")
        return replace(result, saved_path=path)

    def _notify(self, result: CaptureResult):
        for sink in self.sinks:
            try:
                sink(result)
            except Exception as e:
                logger.error(f"Completion sink {sink!r} failed: {e}")
