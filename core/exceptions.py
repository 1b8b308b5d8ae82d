"""
Domain exceptions for the capture pipeline.

Every failure the pipeline can meet is a subclass of PhotoApiError so callers
can absorb them in one place and degrade the response.
"""

from typing import Optional


class PhotoApiError(Exception):
    """Base class for all capture server errors"""


class CameraPermissionError(PhotoApiError):
    """Access to the camera device was refused"""

    def __init__(self, camera_id: Optional[str] = None):
        self.camera_id = camera_id
        target = f"camera {camera_id}" if camera_id else "camera"
        super().__init__(f"Permission denied for {target}")


class CameraUnavailableError(PhotoApiError):
    """No usable camera could be resolved"""


class CameraDisconnectedError(PhotoApiError):
    """The device went away while a capture was in flight"""

    def __init__(self, camera_id: str):
        self.camera_id = camera_id
        super().__init__(f"Camera {camera_id} disconnected")


class CameraDeviceError(PhotoApiError):
    """The device reported an error"""

    def __init__(self, camera_id: str, reason: str, code: Optional[int] = None):
        self.camera_id = camera_id
        self.reason = reason
        self.code = code
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"Camera {camera_id} error: {reason}{suffix}")


class SessionConfigurationError(PhotoApiError):
    """The capture session could not be configured"""

    def __init__(self, camera_id: str, reason: str = "session configuration failed"):
        self.camera_id = camera_id
        super().__init__(f"Camera {camera_id}: {reason}")


class InvalidTransitionError(PhotoApiError):
    """A capture state machine received an event it cannot accept"""

    def __init__(self, state, event):
        self.state = state
        self.event = event
        super().__init__(f"Event {event.value} not allowed in state {state.value}")


class InvalidPersistenceModeError(PhotoApiError):
    """Unrecognized savePhoto value"""

    def __init__(self, value: Optional[str]):
        self.value = value
        super().__init__("Invalid savePhoto value")


class CaptureTimeoutError(PhotoApiError):
    """The pipeline did not resolve a request within its deadline"""

    def __init__(self, request_id: str, timeout: float):
        self.request_id = request_id
        self.timeout = timeout
        super().__init__(f"Capture timed out after {timeout:g}s")
