"""
Capture Service - coordinates HTTP requests with pipeline runs.

Every request gets its own future keyed by request id. The pipeline resolves
it exactly once and the caller awaits it with a bounded timeout, so responses
never race each other for a shared slot.
"""

import asyncio
import logging
from threading import Lock
from typing import Dict, List, Optional, Set

from core.camera_backend import CameraBackend, create_backend
from core.capture_pipeline import CapturePipeline, create_camera_executor
from core.constants import CameraConstants
from core.exceptions import CaptureTimeoutError
from core.models import CameraDescriptor, CaptureRequest, CaptureResult
from core.photo_storage import PhotoStorage
from core.sinks import PreviewSink

logger = logging.getLogger(__name__)


class PendingCaptures:
    """Futures of in-flight captures, keyed by request id"""

    def __init__(self):
        self.futures: Dict[str, asyncio.Future] = {}

    def register(self, request_id: str) -> asyncio.Future:
        if request_id in self.futures:
            raise ValueError(f"Capture {request_id} already pending")
        future = asyncio.get_running_loop().create_future()
        self.futures[request_id] = future
        return future

    def resolve(self, request_id: str, result: CaptureResult) -> bool:
        """Complete a pending capture; later resolutions are ignored"""
        future = self.futures.pop(request_id, None)
        if future is None or future.done():
            logger.debug(f"Capture {request_id} already resolved, dropping result")
            return False
        future.set_result(result)
        return True

    def discard(self, request_id: str):
        future = self.futures.pop(request_id, None)
        if future is not None and not future.done():
            future.cancel()

    def __contains__(self, request_id: str) -> bool:
        return request_id in self.futures

    def __len__(self) -> int:
        return len(self.futures)


class ResultSlot:
    """Most recent capture result, last writer wins"""

    def __init__(self):
        self.lock = Lock()
        self._result: Optional[CaptureResult] = None

    def put(self, result: CaptureResult):
        with self.lock:
            self._result = result

    def get(self) -> Optional[CaptureResult]:
        with self.lock:
            return self._result

    def clear(self):
        with self.lock:
            self._result = None


class CaptureService:
    """
    Service for capture operations.

    Starts pipeline runs, awaits their results and keeps the latest result
    for the status page.
    """

    def __init__(self, pipeline: CapturePipeline, default_timeout: float = 10.0):
        """
        Initialize capture service.

        Args:
            pipeline: Capture pipeline instance
            default_timeout: Seconds to wait for a capture when none is given
        """
        self.pipeline = pipeline
        self.default_timeout = default_timeout
        self.pending = PendingCaptures()
        self.slot = ResultSlot()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def backend(self) -> CameraBackend:
        return self.pipeline.backend

    async def capture(self, request: CaptureRequest, timeout: Optional[float] = None) -> CaptureResult:
        """
        Run one capture and wait for its result.

        Raises:
            CaptureTimeoutError: If the pipeline does not finish in time
        """
        timeout = self.default_timeout if timeout is None else timeout
        future = self.pending.register(request.request_id)

        task = asyncio.create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.error(f"Capture {request.request_id} timed out after {timeout:g}s")
            task.cancel()
            self.pending.discard(request.request_id)
            raise CaptureTimeoutError(request.request_id, timeout)

    async def _run(self, request: CaptureRequest):
        try:
            result = await self.pipeline.run(request)
        except asyncio.CancelledError:
            self.pending.discard(request.request_id)
            raise
        except Exception as e:
            logger.error(f"Capture {request.request_id} failed unexpectedly: {e}", exc_info=True)
            result = CaptureResult.failed(request, f"unexpected error: {e}")

        self.slot.put(result)
        self.pending.resolve(request.request_id, result)

    async def list_cameras(self) -> List[CameraDescriptor]:
        """Enumerate cameras on the camera thread"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.pipeline.executor, self.backend.enumerate)

    def latest_result(self) -> Optional[CaptureResult]:
        return self.slot.get()

    def shutdown(self):
        """Release the backend and stop the camera thread"""
        logger.info("Shutting down capture service...")
        for task in list(self._tasks):
            task.cancel()
        self.pipeline.executor.shutdown(wait=False)
        try:
            self.backend.close()
        except Exception as e:
            logger.warning(f"Error closing camera backend: {e}")


def build_capture_service(settings, preview_sink: Optional[PreviewSink] = None) -> CaptureService:
    """Wire backend, storage, sinks and pipeline from settings"""
    camera = settings.camera
    if camera.backend == CameraConstants.BACKEND_OPENCV:
        options = dict(
            max_devices=camera.max_devices,
            facing=camera.facing,
            jpeg_quality=camera.jpeg_quality,
        )
    else:
        options = dict(
            af_converge_frames=camera.synthetic_af_frames,
            jpeg_quality=camera.jpeg_quality,
        )
    backend = create_backend(camera.backend, **options)

    storage = PhotoStorage(settings.storage.directory, prefix=settings.storage.filename_prefix)
    pipeline = CapturePipeline(
        backend=backend,
        storage=storage,
        sinks=[preview_sink] if preview_sink else [],
        executor=create_camera_executor(),
        af_max_preview_frames=camera.af_max_preview_frames,
    )

    logger.info(f"Capture service ready (backend={backend.name}, storage={storage.directory})")
    return CaptureService(pipeline, default_timeout=settings.capture.timeout_seconds)
