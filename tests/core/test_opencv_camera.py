"""
Tests for the OpenCV camera backend with a fake VideoCapture
"""

import cv2
import numpy as np
import pytest

from core.camera_backend import ImageReader
from core.exceptions import (
    CameraDeviceError,
    CameraDisconnectedError,
    CameraUnavailableError,
    SessionConfigurationError,
)
from core.image_utils import ImageUtils
from core.models import AfState, CaptureRequest, LensFacing, StillSettings
from core.opencv_camera import OpenCVCameraBackend


class FakeVideoCapture:
    """Stands in for cv2.VideoCapture; indices in `present` are openable"""

    present = {0: (1280, 720)}
    instances = []

    def __init__(self, index):
        self.index = index
        self.size = self.present.get(index)
        self.props = {}
        self.released = False
        self.fail_reads = False
        FakeVideoCapture.instances.append(self)

    def isOpened(self):
        return self.size is not None and not self.released

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return self.size[0] if self.size else 0
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return self.size[1] if self.size else 0
        return self.props.get(prop, 0)

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if self.fail_reads or not self.isOpened():
            return False, None
        width, height = self.size
        return True, np.full((height, width, 3), 128, dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture(monkeypatch):
    FakeVideoCapture.instances = []
    FakeVideoCapture.present = {0: (1280, 720)}
    monkeypatch.setattr("core.opencv_camera.cv2.VideoCapture", FakeVideoCapture)
    return FakeVideoCapture


@pytest.fixture
def backend(fake_capture):
    return OpenCVCameraBackend(max_devices=3, settle_frames=2)


class TestOpenCVCameraBackend:
    """Test enumeration and opening"""

    def test_enumerate(self, backend, fake_capture):
        fake_capture.present = {0: (1280, 720), 2: (640, 480)}

        cameras = backend.enumerate()

        assert [c.id for c in cameras] == ["0", "2"]
        assert cameras[0].resolution_label == "1280x720"
        assert cameras[0].facing == LensFacing.BACK
        assert all(cap.released for cap in fake_capture.instances)

    def test_configured_facing(self, fake_capture):
        backend = OpenCVCameraBackend(max_devices=1, facing=LensFacing.FRONT)

        assert backend.enumerate()[0].facing == LensFacing.FRONT

    def test_open_missing_device(self, backend):
        with pytest.raises(CameraDeviceError):
            backend.open("1")

    def test_open_non_numeric_id(self, backend):
        with pytest.raises(CameraUnavailableError):
            backend.open("usb-cam")


class TestOpenCVCaptureSession:
    """Test preview and still capture"""

    def test_still_resized_to_reader(self, backend):
        reader = ImageReader(320, 240)
        session = backend.open("0").create_session(reader)

        session.capture(StillSettings.for_still(CaptureRequest(width=320, height=240)))

        image = ImageUtils.decode_image(reader.acquire_latest())
        assert image.shape[:2] == (240, 320)

    def test_session_requests_reader_size(self, backend, fake_capture):
        session = backend.open("0").create_session(ImageReader(640, 480))

        props = session.device.cap.props
        assert props[cv2.CAP_PROP_FRAME_WIDTH] == 640
        assert props[cv2.CAP_PROP_FRAME_HEIGHT] == 480

    def test_autofocus_settles_after_frames(self, backend):
        session = backend.open("0").create_session(ImageReader(64, 64))
        settings = StillSettings.for_preview(CaptureRequest(autofocus=True))

        states = [session.preview(settings).af_state for _ in range(2)]

        assert states == [AfState.PASSIVE_SCAN, AfState.PASSIVE_FOCUSED]

    def test_manual_exposure_applied(self, backend):
        session = backend.open("0").create_session(ImageReader(64, 64))
        request = CaptureRequest(width=64, height=64, exposure_time_ns=50_000_000, sensitivity=400)

        session.capture(StillSettings.for_still(request))

        props = session.device.cap.props
        assert props[cv2.CAP_PROP_AUTO_EXPOSURE] == 0.25
        assert props[cv2.CAP_PROP_EXPOSURE] == 500
        assert props[cv2.CAP_PROP_ISO_SPEED] == 400

    def test_manual_focus_applied(self, backend):
        session = backend.open("0").create_session(ImageReader(64, 64))

        session.capture(StillSettings.for_still(CaptureRequest(focus=1.5)))

        props = session.device.cap.props
        assert props[cv2.CAP_PROP_AUTOFOCUS] == 0
        assert props[cv2.CAP_PROP_FOCUS] == 1.5

    def test_failed_read_is_disconnect(self, backend):
        device = backend.open("0")
        session = device.create_session(ImageReader(64, 64))
        device.cap.fail_reads = True

        with pytest.raises(CameraDisconnectedError):
            session.capture(StillSettings.for_still(CaptureRequest()))

    def test_session_on_released_device(self, backend):
        device = backend.open("0")
        device.close()

        with pytest.raises(SessionConfigurationError):
            device.create_session(ImageReader(64, 64))
