"""
Camera Backend - the hardware contract consumed by the capture pipeline

A backend enumerates cameras and opens devices. A device configures a single
capture session bound to an ImageReader. The session answers preview
(repeating) requests with AF metadata and delivers one compressed still per
capture request into the reader.

All methods are blocking and are only called from the camera thread.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from threading import Lock
from typing import Deque, List, Optional

from core.constants import CameraConstants, ImageConstants
from core.exceptions import CameraUnavailableError
from core.models import CameraDescriptor, LensFacing, PreviewFrame, StillSettings

logger = logging.getLogger(__name__)


class ImageReader:
    """Capture destination of a fixed size holding at most max_images frames"""

    def __init__(
        self,
        width: int,
        height: int,
        image_format: str = ImageConstants.JPEG_MIME_TYPE,
        max_images: int = CameraConstants.IMAGE_READER_MAX_IMAGES,
    ):
        self.width = width
        self.height = height
        self.image_format = image_format
        self.max_images = max_images
        self._images: Deque[bytes] = deque()
        self._lock = Lock()
        self.closed = False

    def deliver(self, data: bytes) -> bool:
        """Queue an encoded frame; returns False when the buffer is full"""
        with self._lock:
            if self.closed:
                logger.warning("Image delivered to a closed reader, dropping")
                return False
            if len(self._images) >= self.max_images:
                logger.warning(
                    f"Image reader full ({self.max_images} in flight), dropping frame"
                )
                return False
            self._images.append(data)
            return True

    def acquire_latest(self) -> Optional[bytes]:
        """Take the newest frame and discard any older ones"""
        with self._lock:
            if not self._images:
                return None
            latest = self._images.pop()
            self._images.clear()
            return latest

    def close(self):
        with self._lock:
            self._images.clear()
            self.closed = True


class CaptureSession(ABC):
    """Configured session on an open device"""

    def __init__(self, camera_id: str, reader: ImageReader):
        self.camera_id = camera_id
        self.reader = reader
        self.repeating = False

    @abstractmethod
    def preview(self, settings: StillSettings) -> PreviewFrame:
        """Produce one frame of the repeating preview request"""

    def stop_repeating(self):
        self.repeating = False

    @abstractmethod
    def capture(self, settings: StillSettings) -> None:
        """Issue one still capture; the encoded image lands in the reader"""

    @abstractmethod
    def close(self):
        """Release the session"""


class CameraDevice(ABC):
    """An opened camera"""

    def __init__(self, camera_id: str):
        self.camera_id = camera_id

    @abstractmethod
    def create_session(self, reader: ImageReader) -> CaptureSession:
        """
        Configure a capture session targeting the reader.

        Raises:
            SessionConfigurationError: If the device rejects the configuration
        """

    @abstractmethod
    def close(self):
        """Release the device"""


class CameraBackend(ABC):
    """Source of cameras"""

    name = "abstract"

    @abstractmethod
    def enumerate(self) -> List[CameraDescriptor]:
        """List cameras currently available"""

    @abstractmethod
    def open(self, camera_id: str) -> CameraDevice:
        """
        Open a camera device.

        Raises:
            CameraPermissionError: If access is refused
            CameraDisconnectedError: If the device vanished while opening
            CameraDeviceError: If the device fails to open
        """

    def close(self):
        """Release backend-wide resources"""


def resolve_camera_id(backend: CameraBackend, requested: Optional[str]) -> str:
    """
    Pick the camera for a capture.

    A requested id is used when it is among the enumerated cameras; anything
    else falls back to the first back-facing camera.

    Raises:
        CameraUnavailableError: If no camera matches
    """
    cameras = backend.enumerate()
    if not cameras:
        raise CameraUnavailableError("No camera available")

    if requested is not None:
        if any(camera.id == requested for camera in cameras):
            return requested
        logger.info(f"Camera {requested} not found, falling back to back camera")

    for camera in cameras:
        if camera.facing == LensFacing.BACK:
            return camera.id

    raise CameraUnavailableError("No back-facing camera available")


def create_backend(name: str, **options) -> CameraBackend:
    """Instantiate a backend by its configured name"""
    if name == CameraConstants.BACKEND_SYNTHETIC:
        from core.synthetic_camera import SyntheticCameraBackend

        return SyntheticCameraBackend(**options)
    if name == CameraConstants.BACKEND_OPENCV:
        from core.opencv_camera import OpenCVCameraBackend

        return OpenCVCameraBackend(**options)
    raise ValueError(f"Unknown camera backend: {name}")
