"""
Constants and configuration values for the Photo Capture Server.
Centralizes all magic numbers and configuration constants.
"""


# Image Constants
class ImageConstants:
    """Constants related to image encoding and previews."""

    # Image dimensions
    DEFAULT_IMAGE_WIDTH = 1920
    DEFAULT_IMAGE_HEIGHT = 1080
    MAX_IMAGE_DIMENSION = 8192

    # Encoding
    DEFAULT_JPEG_QUALITY = 90
    JPEG_MIME_TYPE = "image/jpeg"
    JPEG_EXTENSION = ".jpg"

    # Thumbnail settings
    DEFAULT_THUMBNAIL_WIDTH = 320
    THUMBNAIL_JPEG_QUALITY = 70


# Camera Constants
class CameraConstants:
    """Constants related to camera operations."""

    # Backends
    BACKEND_SYNTHETIC = "synthetic"
    BACKEND_OPENCV = "opencv"

    # USB camera enumeration
    MAX_USB_CAMERAS_TO_CHECK = 5

    # Autofocus convergence
    AF_MAX_PREVIEW_FRAMES = 30
    SYNTHETIC_AF_CONVERGE_FRAMES = 3
    OPENCV_SETTLE_FRAMES = 5

    # Capture target
    IMAGE_READER_MAX_IMAGES = 1

    # V4L2 reports exposure in units of 100 microseconds
    V4L2_EXPOSURE_UNIT_NS = 100_000
    V4L2_AUTO_EXPOSURE_MANUAL = 0.25
    V4L2_AUTO_EXPOSURE_AUTO = 0.75


# Capture Constants
class CaptureConstants:
    """Constants for the capture request flow."""

    DEFAULT_FOCUS_DISTANCE = 0.0
    DEFAULT_AUTOFOCUS = False
    DEFAULT_TIMEOUT_SECONDS = 10.0
    MIN_TIMEOUT_SECONDS = 0.1
    MAX_TIMEOUT_SECONDS = 120.0


# Storage Constants
class StorageConstants:
    """Constants for local photo persistence."""

    DEFAULT_DIRECTORY = "~/Pictures"
    DEFAULT_FILENAME_PREFIX = "slide_"
    MEDIA_INDEX_FILENAME = "index.json"


# API Constants
class APIConstants:
    """Constants for the HTTP surface."""

    DEFAULT_HOST = "0.0.0.0"
    DEFAULT_PORT = 8080
    INDEX_PATH = "/index.html"
    CAPTURE_PATH = "/capture"
    SAVED_PATH_HEADER = "X-Saved-Path"


# System Constants
class SystemConstants:
    """Constants for system operations."""

    # Logging
    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ACTIVITY_LOG_SIZE = 200
    # Loggers mirrored into the on-page activity log
    ACTIVITY_LOGGERS = ("api", "core", "services", "main", "cli")
