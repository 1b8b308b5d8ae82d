"""
Service layer of the Photo Capture Server
"""

from .capture_service import CaptureService, PendingCaptures, ResultSlot, build_capture_service

__all__ = ["CaptureService", "PendingCaptures", "ResultSlot", "build_capture_service"]
