"""
Core modules for the Photo Capture Server
"""

from .camera_backend import CameraBackend, ImageReader, create_backend, resolve_camera_id
from .capture_pipeline import CapturePipeline, CameraSession
from .capture_state import CaptureEvent, CaptureState, CaptureStateMachine
from .models import (
    CameraDescriptor,
    CaptureRequest,
    CaptureResult,
    LensFacing,
    PersistenceMode,
    StillSettings,
)
from .photo_storage import MediaIndex, PhotoStorage
from .sinks import ActivityLog, PreviewSink

__all__ = [
    "CameraBackend",
    "ImageReader",
    "create_backend",
    "resolve_camera_id",
    "CapturePipeline",
    "CameraSession",
    "CaptureEvent",
    "CaptureState",
    "CaptureStateMachine",
    "CameraDescriptor",
    "CaptureRequest",
    "CaptureResult",
    "LensFacing",
    "PersistenceMode",
    "StillSettings",
    "MediaIndex",
    "PhotoStorage",
    "ActivityLog",
    "PreviewSink",
]
