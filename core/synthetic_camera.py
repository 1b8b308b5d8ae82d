"""
Synthetic Camera - test-pattern backend for development and tests

Simulates a phone with a back and a front camera. Autofocus converges after a
fixed number of preview frames and stills are rendered at exactly the
reader's size. Failure modes reproduce the errors a real device can raise.
"""

import logging
import time
from enum import Enum
from threading import Lock
from typing import List, Optional, Sequence

from core.camera_backend import CameraBackend, CameraDevice, CaptureSession, ImageReader
from core.constants import CameraConstants, ImageConstants
from core.exceptions import (
    CameraDeviceError,
    CameraDisconnectedError,
    CameraPermissionError,
    SessionConfigurationError,
)
from core.image_utils import ImageUtils
from core.models import AfMode, AfState, CameraDescriptor, LensFacing, PreviewFrame, StillSettings

logger = logging.getLogger(__name__)


class FailureMode(str, Enum):
    NONE = "none"
    OPEN_ERROR = "open_error"
    DISCONNECT = "disconnect"
    CONFIGURE = "configure"
    NO_IMAGE = "no_image"


DEFAULT_CAMERAS = (
    CameraDescriptor(
        id="0", facing=LensFacing.BACK, pixel_width=4032, pixel_height=3024, focal_lengths=(4.38,)
    ),
    CameraDescriptor(
        id="1", facing=LensFacing.FRONT, pixel_width=3264, pixel_height=2448, focal_lengths=(2.6,)
    ),
)


class SyntheticCaptureSession(CaptureSession):
    def __init__(self, backend: "SyntheticCameraBackend", camera_id: str, reader: ImageReader):
        super().__init__(camera_id, reader)
        self.backend = backend
        self.frames = 0
        self.closed = False

    def preview(self, settings: StillSettings) -> PreviewFrame:
        self.repeating = True
        self.frames += 1
        self.backend.record_preview(settings)

        if settings.af_mode == AfMode.OFF:
            af_state = AfState.INACTIVE
        elif self.frames >= self.backend.af_converge_frames:
            af_state = AfState.FOCUSED_LOCKED
        else:
            af_state = AfState.ACTIVE_SCAN
        return PreviewFrame(frame_number=self.frames, af_state=af_state)

    def capture(self, settings: StillSettings) -> None:
        sequence = self.backend.record_still(settings)
        if self.backend.failure == FailureMode.NO_IMAGE:
            return

        lines = [
            f"Camera {self.camera_id} #{sequence}",
            f"{self.reader.width}x{self.reader.height} af={settings.af_mode.value}",
            f"ae={settings.ae_mode.value} exposure={settings.exposure_time_ns} iso={settings.sensitivity}",
        ]
        image = ImageUtils.create_test_pattern(self.reader.width, self.reader.height, lines)
        self.reader.deliver(ImageUtils.encode_jpeg(image, self.backend.jpeg_quality))

    def close(self):
        self.repeating = False
        self.closed = True


class SyntheticCameraDevice(CameraDevice):
    def __init__(self, backend: "SyntheticCameraBackend", camera_id: str):
        super().__init__(camera_id)
        self.backend = backend
        self.closed = False

    def create_session(self, reader: ImageReader) -> CaptureSession:
        if self.backend.failure == FailureMode.CONFIGURE:
            raise SessionConfigurationError(self.camera_id)
        return SyntheticCaptureSession(self.backend, self.camera_id, reader)

    def close(self):
        if not self.closed:
            self.closed = True
            self.backend.record_close(self.camera_id)


class SyntheticCameraBackend(CameraBackend):
    """Deterministic camera used when no hardware is attached"""

    name = CameraConstants.BACKEND_SYNTHETIC

    def __init__(
        self,
        cameras: Optional[Sequence[CameraDescriptor]] = None,
        af_converge_frames: int = CameraConstants.SYNTHETIC_AF_CONVERGE_FRAMES,
        jpeg_quality: int = ImageConstants.DEFAULT_JPEG_QUALITY,
        permission_granted: bool = True,
        failure: FailureMode = FailureMode.NONE,
        open_delay_seconds: float = 0.0,
    ):
        self.cameras: List[CameraDescriptor] = list(DEFAULT_CAMERAS if cameras is None else cameras)
        self.af_converge_frames = af_converge_frames
        self.jpeg_quality = jpeg_quality
        self.permission_granted = permission_granted
        self.failure = FailureMode(failure)
        self.open_delay_seconds = open_delay_seconds

        self.lock = Lock()
        self.preview_requests: List[StillSettings] = []
        self.still_requests: List[StillSettings] = []
        self.opened: List[str] = []
        self.closed: List[str] = []

        logger.info(f"Synthetic camera backend with {len(self.cameras)} camera(s)")

    def enumerate(self) -> List[CameraDescriptor]:
        return list(self.cameras)

    def open(self, camera_id: str) -> CameraDevice:
        if not self.permission_granted:
            raise CameraPermissionError(camera_id)
        if self.open_delay_seconds:
            time.sleep(self.open_delay_seconds)
        if not any(c.id == camera_id for c in self.cameras):
            raise CameraDeviceError(camera_id, "no such camera")
        if self.failure == FailureMode.DISCONNECT:
            raise CameraDisconnectedError(camera_id)
        if self.failure == FailureMode.OPEN_ERROR:
            raise CameraDeviceError(camera_id, "camera device error", code=4)

        with self.lock:
            self.opened.append(camera_id)
        return SyntheticCameraDevice(self, camera_id)

    def record_preview(self, settings: StillSettings):
        with self.lock:
            self.preview_requests.append(settings)

    def record_still(self, settings: StillSettings) -> int:
        with self.lock:
            self.still_requests.append(settings)
            return len(self.still_requests)

    def record_close(self, camera_id: str):
        with self.lock:
            self.closed.append(camera_id)
