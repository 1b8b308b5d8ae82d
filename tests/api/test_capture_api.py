"""
API Integration Tests for the /capture endpoint
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from core.image_utils import ImageUtils
from core.models import AeMode, AfMode, AfTrigger
from core.synthetic_camera import FailureMode, SyntheticCameraBackend


def decoded_size(content: bytes):
    image = ImageUtils.decode_image(content)
    assert image is not None, "response body is not a decodable image"
    return image.shape[1], image.shape[0]


class TestCaptureAPI:
    """Integration tests for GET /capture"""

    def test_capture_returns_jpeg_of_requested_size(self, client):
        """Test the documented 640x480 scenario"""
        response = client.get("/capture?width=640&height=480&af=false&focus=0.0&savePhoto=return")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert decoded_size(response.content) == (640, 480)

    def test_result_slot_holds_last_capture(self, client):
        """Test that the latest result is kept after the response"""
        from main import app

        response = client.get("/capture?width=640&height=480")
        latest = app.state.capture_service.latest_result()

        assert latest is not None
        assert latest.ok
        assert latest.image == response.content

    def test_capture_defaults(self, client, backend):
        """Test default size and back camera"""
        response = client.get("/capture")

        assert response.status_code == 200
        assert decoded_size(response.content) == (1920, 1080)
        assert backend.opened == ["0"]

    @pytest.mark.parametrize("width,height", [(320, 240), (1280, 720), (1080, 1920), (17, 31)])
    def test_dimensions_match_request(self, client, width, height):
        """Test decoded size equals the requested size"""
        response = client.get(f"/capture?width={width}&height={height}")

        assert response.status_code == 200
        assert decoded_size(response.content) == (width, height)

    def test_unparseable_numbers_fall_back_to_defaults(self, client):
        """Test lenient parsing of malformed numbers"""
        response = client.get("/capture?width=abc&height=-5&focus=near")

        assert response.status_code == 200
        assert decoded_size(response.content) == (1920, 1080)

    def test_oversized_capture_rejected(self, client):
        """Test capture size beyond the supported maximum"""
        response = client.get("/capture?width=100000&height=100")

        assert response.status_code == 400

    def test_camera_id_selects_camera(self, client, backend):
        """Test explicit camera selection"""
        client.get("/capture?cameraId=1&width=64&height=64")

        assert backend.opened == ["1"]

    def test_unknown_camera_id_falls_back_to_back_camera(self, client, backend):
        """Test unknown cameraId uses the back camera"""
        response = client.get("/capture?cameraId=99&width=64&height=64")

        assert response.status_code == 200
        assert backend.opened == ["0"]


class TestExposureAPI:
    """Manual exposure pair handling"""

    def test_exposure_and_iso_use_manual_exposure(self, client, backend):
        """Test both values switch auto exposure off"""
        client.get("/capture?width=64&height=64&exposure=50000000&iso=400")

        still = backend.still_requests[-1]
        assert still.ae_mode == AeMode.OFF
        assert still.exposure_time_ns == 50000000
        assert still.sensitivity == 400

    @pytest.mark.parametrize("query", ["exposure=50000000", "iso=400", ""])
    def test_partial_pair_uses_auto_exposure(self, client, backend, query):
        """Test a lone exposure or iso is ignored"""
        response = client.get(f"/capture?width=64&height=64&{query}")

        assert response.status_code == 200
        still = backend.still_requests[-1]
        assert still.ae_mode == AeMode.ON
        assert still.exposure_time_ns is None
        assert still.sensitivity is None

    def test_manual_focus_when_af_disabled(self, client, backend):
        """Test focus distance reaches the still request"""
        client.get("/capture?width=64&height=64&af=false&focus=2.5")

        still = backend.still_requests[-1]
        assert still.af_mode == AfMode.OFF
        assert still.focus_distance == 2.5

    def test_autofocus_waits_for_convergence(self, client, backend):
        """Test preview frames run until AF locks"""
        client.get("/capture?width=64&height=64&af=true")

        still = backend.still_requests[-1]
        assert still.af_mode == AfMode.CONTINUOUS_PICTURE
        assert still.af_trigger == AfTrigger.START
        assert len(backend.preview_requests) == backend.af_converge_frames
        assert len(backend.still_requests) == 1

    @pytest.mark.parametrize("value", ["True", "1", "yes", "on"])
    def test_af_accepts_only_lowercase_true(self, client, backend, value):
        """Test non-strict booleans count as false"""
        client.get(f"/capture?width=64&height=64&af={value}")

        assert backend.still_requests[-1].af_mode == AfMode.OFF


class TestPersistenceAPI:
    """savePhoto modes"""

    def test_return_does_not_persist(self, client, tmp_path):
        """Test return mode leaves storage untouched"""
        response = client.get("/capture?width=64&height=64&savePhoto=return")

        assert response.headers["content-type"] == "image/jpeg"
        pictures = tmp_path / "Pictures"
        assert not pictures.exists() or not list(pictures.glob("*.jpg"))

    def test_local_returns_path_not_image(self, client):
        """Test local mode replies with the saved path only"""
        response = client.get("/capture?width=64&height=64&savePhoto=local")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Saved at: ")

        saved = Path(response.text[len("Saved at: "):])
        assert saved.exists()
        assert saved.name.startswith("slide_")
        assert decoded_size(saved.read_bytes()) == (64, 64)

    def test_return_and_local_body_matches_file(self, client):
        """Test returnAndLocal body is byte-identical to the saved file"""
        response = client.get("/capture?width=64&height=48&savePhoto=returnAndLocal")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        saved = Path(response.headers["x-saved-path"])
        assert saved.read_bytes() == response.content

    def test_each_capture_saved_once(self, client, tmp_path):
        """Test one file per persisted capture"""
        client.get("/capture?width=64&height=64&savePhoto=local")
        client.get("/capture?width=64&height=64&savePhoto=returnAndLocal")

        assert len(list((tmp_path / "Pictures").glob("slide_*.jpg"))) == 2

    @pytest.mark.parametrize("value", ["disk", "RETURN", ""])
    def test_invalid_save_photo_rejected(self, client, backend, value):
        """Test unknown savePhoto is a client error and never opens the camera"""
        response = client.get(f"/capture?width=64&height=64&savePhoto={value}")

        assert response.status_code == 400
        assert response.text == "Invalid savePhoto value"
        assert backend.opened == []

    def test_invalid_save_photo_rejected_without_camera(self, make_client):
        """Test the client error does not depend on capture success"""
        client = make_client(SyntheticCameraBackend(permission_granted=False))

        response = client.get("/capture?savePhoto=bogus")

        assert response.status_code == 400


class TestCaptureFailures:
    """Degraded responses when the camera fails"""

    @pytest.mark.parametrize(
        "backend_kwargs",
        [
            {"permission_granted": False},
            {"failure": FailureMode.DISCONNECT},
            {"failure": FailureMode.OPEN_ERROR},
            {"failure": FailureMode.CONFIGURE},
            {"failure": FailureMode.NO_IMAGE},
            {"cameras": []},
        ],
    )
    def test_failure_degrades_to_no_image(self, make_client, backend_kwargs):
        """Test every pipeline failure yields the no-image text"""
        client = make_client(SyntheticCameraBackend(**backend_kwargs))

        response = client.get("/capture?width=64&height=64")

        assert response.status_code == 200
        assert response.text == "No image captured"

    def test_no_camera_degrades_instead_of_erroring(self, make_client):
        """Test an empty camera list answers like any other failed capture"""
        client = make_client(SyntheticCameraBackend(cameras=[]))

        response = client.get("/capture?savePhoto=returnAndLocal")

        assert response.status_code == 200
        assert response.text == "No image captured"
        assert "x-saved-path" not in response.headers

    def test_failed_local_capture_writes_nothing(self, make_client, tmp_path):
        """Test no file is written when the capture fails"""
        client = make_client(SyntheticCameraBackend(failure=FailureMode.DISCONNECT))

        response = client.get("/capture?savePhoto=local")

        assert response.text == "No image captured"
        assert not (tmp_path / "Pictures").exists()

    def test_stalled_camera_times_out(self, make_client):
        """Test a stalled open produces a timeout error"""
        client = make_client(SyntheticCameraBackend(open_delay_seconds=1.0), timeout=0.2)

        response = client.get("/capture?width=64&height=64")

        assert response.status_code == 504
        assert response.text.startswith("Capture timed out")

        from main import app

        backend = app.state.capture_service.backend
        app.state.capture_service.pipeline.executor.shutdown(wait=True)
        assert backend.opened == ["0"]
        assert backend.closed == backend.opened


class TestConcurrentCaptures:
    """Captures arriving back to back"""

    def test_rapid_captures_each_get_a_complete_image(self, client):
        """Test overlapping requests never return partial bytes"""
        sizes = [(160, 120), (320, 240), (200, 100), (96, 64)]

        def fetch(size):
            return client.get(f"/capture?width={size[0]}&height={size[1]}")

        with ThreadPoolExecutor(max_workers=len(sizes)) as pool:
            responses = list(pool.map(fetch, sizes))

        for size, response in zip(sizes, responses):
            assert response.status_code == 200
            assert decoded_size(response.content) == size
