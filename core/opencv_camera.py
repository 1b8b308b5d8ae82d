"""
OpenCV Camera - USB/V4L2 cameras through cv2.VideoCapture
"""

import logging
from threading import Lock
from typing import List

import cv2

from core.camera_backend import CameraBackend, CameraDevice, CaptureSession, ImageReader
from core.constants import CameraConstants, ImageConstants
from core.exceptions import (
    CameraDeviceError,
    CameraDisconnectedError,
    CameraUnavailableError,
    SessionConfigurationError,
)
from core.image_utils import ImageUtils
from core.models import AeMode, AfMode, AfState, CameraDescriptor, LensFacing, PreviewFrame, StillSettings

logger = logging.getLogger(__name__)


class OpenCVCaptureSession(CaptureSession):
    """Session over an opened VideoCapture"""

    def __init__(self, device: "OpenCVCameraDevice", reader: ImageReader, settle_frames: int):
        super().__init__(device.camera_id, reader)
        self.device = device
        self.settle_frames = settle_frames
        self.frames = 0

    def _apply(self, settings: StillSettings):
        cap = self.device.cap
        if settings.af_mode == AfMode.CONTINUOUS_PICTURE:
            cap.set(cv2.CAP_PROP_AUTOFOCUS, 1)
        else:
            cap.set(cv2.CAP_PROP_AUTOFOCUS, 0)
            if settings.focus_distance is not None:
                cap.set(cv2.CAP_PROP_FOCUS, settings.focus_distance)

        if settings.ae_mode == AeMode.OFF:
            cap.set(cv2.CAP_PROP_AUTO_EXPOSURE, CameraConstants.V4L2_AUTO_EXPOSURE_MANUAL)
            cap.set(
                cv2.CAP_PROP_EXPOSURE,
                settings.exposure_time_ns / CameraConstants.V4L2_EXPOSURE_UNIT_NS,
            )
            cap.set(cv2.CAP_PROP_ISO_SPEED, settings.sensitivity)
        else:
            cap.set(cv2.CAP_PROP_AUTO_EXPOSURE, CameraConstants.V4L2_AUTO_EXPOSURE_AUTO)

    def _read(self):
        with self.device.lock:
            ret, frame = self.device.cap.read()
        if not ret or frame is None:
            raise CameraDisconnectedError(self.camera_id)
        return frame

    def preview(self, settings: StillSettings) -> PreviewFrame:
        if not self.repeating:
            self._apply(settings)
            self.repeating = True
        self._read()
        self.frames += 1

        # VideoCapture exposes no AF metadata; treat the stream as settled after a few frames
        if settings.af_mode == AfMode.OFF:
            af_state = AfState.INACTIVE
        elif self.frames >= self.settle_frames:
            af_state = AfState.PASSIVE_FOCUSED
        else:
            af_state = AfState.PASSIVE_SCAN
        return PreviewFrame(frame_number=self.frames, af_state=af_state)

    def capture(self, settings: StillSettings) -> None:
        self._apply(settings)
        frame = self._read()
        frame = ImageUtils.fit_to_size(frame, self.reader.width, self.reader.height)
        self.reader.deliver(ImageUtils.encode_jpeg(frame, self.device.jpeg_quality))

    def close(self):
        self.repeating = False


class OpenCVCameraDevice(CameraDevice):
    def __init__(self, camera_id: str, cap, jpeg_quality: int, settle_frames: int):
        super().__init__(camera_id)
        self.cap = cap
        self.jpeg_quality = jpeg_quality
        self.settle_frames = settle_frames
        self.lock = Lock()

    def create_session(self, reader: ImageReader) -> CaptureSession:
        with self.lock:
            if self.cap is None or not self.cap.isOpened():
                raise SessionConfigurationError(self.camera_id, "device is not open")
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, reader.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, reader.height)
            # Keep a single frame queued in the driver
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, reader.max_images)

        return OpenCVCaptureSession(self, reader, self.settle_frames)

    def close(self):
        with self.lock:
            if self.cap is not None:
                self.cap.release()
                self.cap = None
                logger.info(f"Camera {self.camera_id} released")


class OpenCVCameraBackend(CameraBackend):
    """Cameras found by probing VideoCapture indices"""

    name = CameraConstants.BACKEND_OPENCV

    def __init__(
        self,
        max_devices: int = CameraConstants.MAX_USB_CAMERAS_TO_CHECK,
        facing: LensFacing = LensFacing.BACK,
        jpeg_quality: int = ImageConstants.DEFAULT_JPEG_QUALITY,
        settle_frames: int = CameraConstants.OPENCV_SETTLE_FRAMES,
    ):
        self.max_devices = max_devices
        self.facing = LensFacing(facing)
        self.jpeg_quality = jpeg_quality
        self.settle_frames = settle_frames
        logger.info(f"OpenCV camera backend probing {max_devices} device index(es)")

    def enumerate(self) -> List[CameraDescriptor]:
        cameras = []
        for i in range(self.max_devices):
            try:
                cap = cv2.VideoCapture(i)
                if cap.isOpened():
                    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
                    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
                    cameras.append(
                        CameraDescriptor(
                            id=str(i),
                            facing=self.facing,
                            pixel_width=width if width > 0 else None,
                            pixel_height=height if height > 0 else None,
                        )
                    )
                cap.release()
            except cv2.error as e:
                logger.debug(f"Camera index {i} not available: {e}")
                continue
        return cameras

    def open(self, camera_id: str) -> CameraDevice:
        try:
            index = int(camera_id)
        except ValueError:
            raise CameraUnavailableError(f"Camera id {camera_id} is not a device index")

        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise CameraDeviceError(camera_id, "failed to open device")

        logger.info(f"Camera {camera_id} opened")
        return OpenCVCameraDevice(camera_id, cap, self.jpeg_quality, self.settle_frames)
