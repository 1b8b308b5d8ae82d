"""
Pytest configuration for API integration tests
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="function")
def make_client(tmp_path):
    """
    Build a test client with properly initialized app state.

    Accepts an optional camera backend and capture timeout so tests can
    exercise failure modes. Each call replaces the app state to avoid
    contamination between tests.
    """
    from config import CaptureSettings, Settings, StorageSettings
    from core.capture_pipeline import CapturePipeline, create_camera_executor
    from core.photo_storage import PhotoStorage
    from core.sinks import ActivityLog, PreviewSink
    from core.synthetic_camera import SyntheticCameraBackend
    from main import app
    from services.capture_service import CaptureService

    services = []

    def _make(backend=None, timeout: float = 5.0):
        settings = Settings(
            storage=StorageSettings(directory=str(tmp_path / "Pictures")),
            capture=CaptureSettings(timeout_seconds=timeout),
        )
        backend = backend or SyntheticCameraBackend()
        preview_sink = PreviewSink()
        pipeline = CapturePipeline(
            backend=backend,
            storage=PhotoStorage(settings.storage.directory),
            sinks=[preview_sink],
            executor=create_camera_executor(),
        )
        capture_service = CaptureService(pipeline, default_timeout=timeout)
        services.append(capture_service)

        # Set in app state
        app.state.settings = settings
        app.state.config = settings.to_dict()
        app.state.capture_service = capture_service
        app.state.preview_sink = preview_sink
        app.state.activity_log = ActivityLog(max_size=50)

        # Create test client (no context manager so the real lifespan is skipped)
        return TestClient(app, raise_server_exceptions=False)

    yield _make

    for service in services:
        service.shutdown()


@pytest.fixture
def client(make_client):
    """Test client over the default synthetic camera"""
    return make_client()


@pytest.fixture
def backend(client):
    """Camera backend behind the default client"""
    from main import app

    return app.state.capture_service.backend
