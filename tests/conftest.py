"""
Pytest configuration and fixtures for Photo Capture Server tests
"""

import pytest

from core.capture_pipeline import CapturePipeline, create_camera_executor
from core.photo_storage import PhotoStorage
from core.sinks import ActivityLog, PreviewSink
from core.synthetic_camera import SyntheticCameraBackend
from services.capture_service import CaptureService


@pytest.fixture
def synthetic_backend():
    """Synthetic camera with a back (id 0) and a front (id 1) camera"""
    return SyntheticCameraBackend(af_converge_frames=3)


@pytest.fixture
def photo_storage(tmp_path):
    """PhotoStorage writing into a temporary directory"""
    return PhotoStorage(tmp_path / "Pictures")


@pytest.fixture
def preview_sink():
    return PreviewSink()


@pytest.fixture
def activity_log():
    return ActivityLog(max_size=50)


@pytest.fixture
def camera_executor():
    """Dedicated camera thread, stopped after the test"""
    executor = create_camera_executor()
    yield executor
    executor.shutdown(wait=False)


@pytest.fixture
def capture_pipeline(synthetic_backend, photo_storage, preview_sink, camera_executor):
    """Pipeline over the synthetic backend"""
    return CapturePipeline(
        backend=synthetic_backend,
        storage=photo_storage,
        sinks=[preview_sink],
        executor=camera_executor,
        af_max_preview_frames=10,
    )


@pytest.fixture
def capture_service(capture_pipeline):
    """CaptureService with a generous timeout"""
    return CaptureService(capture_pipeline, default_timeout=5.0)
