"""
Tests for the camera backend contract and the synthetic camera
"""

import pytest

from core.camera_backend import ImageReader, create_backend, resolve_camera_id
from core.exceptions import (
    CameraDeviceError,
    CameraDisconnectedError,
    CameraPermissionError,
    CameraUnavailableError,
    SessionConfigurationError,
)
from core.models import AfState, CameraDescriptor, CaptureRequest, LensFacing, StillSettings
from core.synthetic_camera import FailureMode, SyntheticCameraBackend


class TestImageReader:
    """Test the single-buffer image reader"""

    def test_holds_one_image(self):
        reader = ImageReader(64, 48)

        assert reader.deliver(b"first")
        assert not reader.deliver(b"second")
        assert reader.acquire_latest() == b"first"
        assert reader.acquire_latest() is None

    def test_acquire_latest_discards_older(self):
        reader = ImageReader(64, 48, max_images=3)
        for data in (b"a", b"b", b"c"):
            reader.deliver(data)

        assert reader.acquire_latest() == b"c"
        assert reader.acquire_latest() is None

    def test_closed_reader_drops_images(self):
        reader = ImageReader(64, 48)
        reader.deliver(b"pending")
        reader.close()

        assert reader.closed
        assert reader.acquire_latest() is None
        assert not reader.deliver(b"late")


class TestResolveCameraId:
    """Test camera selection and fallback"""

    @pytest.fixture
    def backend(self):
        return SyntheticCameraBackend(
            cameras=[
                CameraDescriptor(id="front", facing=LensFacing.FRONT),
                CameraDescriptor(id="back", facing=LensFacing.BACK),
                CameraDescriptor(id="usb", facing=LensFacing.EXTERNAL),
            ]
        )

    def test_requested_camera_used(self, backend):
        assert resolve_camera_id(backend, "usb") == "usb"

    def test_no_request_uses_first_back_camera(self, backend):
        assert resolve_camera_id(backend, None) == "back"

    def test_unknown_request_falls_back(self, backend):
        assert resolve_camera_id(backend, "missing") == "back"

    def test_no_cameras(self):
        with pytest.raises(CameraUnavailableError):
            resolve_camera_id(SyntheticCameraBackend(cameras=[]), None)

    def test_no_back_camera(self):
        backend = SyntheticCameraBackend(cameras=[CameraDescriptor(id="1", facing=LensFacing.FRONT)])

        with pytest.raises(CameraUnavailableError):
            resolve_camera_id(backend, None)
        assert resolve_camera_id(backend, "1") == "1"


class TestCreateBackend:
    def test_synthetic(self):
        backend = create_backend("synthetic", af_converge_frames=2)

        assert isinstance(backend, SyntheticCameraBackend)
        assert backend.af_converge_frames == 2

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_backend("gphoto")


class TestSyntheticCamera:
    """Test the synthetic device behaviour used by the pipeline"""

    def test_default_cameras(self):
        cameras = SyntheticCameraBackend().enumerate()

        assert [(c.id, c.facing) for c in cameras] == [("0", LensFacing.BACK), ("1", LensFacing.FRONT)]

    def test_autofocus_converges_after_frames(self):
        backend = SyntheticCameraBackend(af_converge_frames=3)
        session = backend.open("0").create_session(ImageReader(32, 32))
        settings = StillSettings.for_preview(CaptureRequest(autofocus=True))

        states = [session.preview(settings).af_state for _ in range(3)]

        assert states == [AfState.ACTIVE_SCAN, AfState.ACTIVE_SCAN, AfState.FOCUSED_LOCKED]

    def test_still_lands_in_reader(self):
        backend = SyntheticCameraBackend()
        reader = ImageReader(100, 50)
        session = backend.open("0").create_session(reader)

        session.capture(StillSettings.for_still(CaptureRequest(width=100, height=50)))

        assert reader.acquire_latest()[:2] == b"\xff\xd8"
        assert len(backend.still_requests) == 1

    @pytest.mark.parametrize(
        "kwargs,error",
        [
            ({"permission_granted": False}, CameraPermissionError),
            ({"failure": FailureMode.DISCONNECT}, CameraDisconnectedError),
            ({"failure": FailureMode.OPEN_ERROR}, CameraDeviceError),
        ],
    )
    def test_open_failures(self, kwargs, error):
        with pytest.raises(error):
            SyntheticCameraBackend(**kwargs).open("0")

    def test_open_unknown_camera(self):
        with pytest.raises(CameraDeviceError):
            SyntheticCameraBackend().open("7")

    def test_configure_failure(self):
        device = SyntheticCameraBackend(failure=FailureMode.CONFIGURE).open("0")

        with pytest.raises(SessionConfigurationError):
            device.create_session(ImageReader(32, 32))

    def test_device_close_recorded_once(self):
        backend = SyntheticCameraBackend()
        device = backend.open("1")

        device.close()
        device.close()

        assert backend.closed == ["1"]
