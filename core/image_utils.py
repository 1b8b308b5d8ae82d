"""
Image processing utilities for the Photo Capture Server.
Centralizes JPEG encoding, decoding and preview thumbnails.
"""

import base64
import logging
import time
from typing import List, Optional, Tuple

import cv2
import numpy as np

from core.constants import ImageConstants

logger = logging.getLogger(__name__)


class ImageUtils:
    """Utility class for common image operations."""

    @staticmethod
    def encode_jpeg(image: np.ndarray, quality: int = ImageConstants.DEFAULT_JPEG_QUALITY) -> bytes:
        """
        Encode a BGR image as JPEG.

        Args:
            image: NumPy array in BGR format (OpenCV)
            quality: JPEG quality (1-100)

        Returns:
            Encoded JPEG bytes

        Raises:
            ValueError: If OpenCV fails to encode the image
        """
        ok, buffer = cv2.imencode(ImageConstants.JPEG_EXTENSION, image, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            raise ValueError("Failed to encode image as JPEG")
        return buffer.tobytes()

    @staticmethod
    def decode_image(data: bytes) -> Optional[np.ndarray]:
        """Decode compressed image bytes, None if they are not an image"""
        if not data:
            return None
        array = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(array, cv2.IMREAD_COLOR)
        if image is None:
            logger.warning(f"Could not decode {len(data)} bytes as an image")
        return image

    @staticmethod
    def fit_to_size(image: np.ndarray, width: int, height: int) -> np.ndarray:
        """Resize so the frame has exactly the requested dimensions"""
        if image.shape[1] == width and image.shape[0] == height:
            return image
        interpolation = cv2.INTER_AREA if image.shape[1] > width else cv2.INTER_LINEAR
        return cv2.resize(image, (width, height), interpolation=interpolation)

    @staticmethod
    def create_thumbnail(
        image: np.ndarray,
        width: int = ImageConstants.DEFAULT_THUMBNAIL_WIDTH,
    ) -> Tuple[np.ndarray, str]:
        """
        Create thumbnail from image.

        Args:
            image: Input image (NumPy array)
            width: Target width in pixels, aspect ratio is kept

        Returns:
            Tuple of (thumbnail array, base64 JPEG)
        """
        height, original_width = image.shape[:2]
        if original_width > width:
            scale = width / original_width
            thumbnail = cv2.resize(image, (width, max(1, int(height * scale))))
        else:
            thumbnail = image

        encoded = ImageUtils.encode_jpeg(thumbnail, ImageConstants.THUMBNAIL_JPEG_QUALITY)
        return thumbnail, base64.b64encode(encoded).decode("utf-8")

    @staticmethod
    def create_test_pattern(width: int, height: int, lines: Optional[List[str]] = None) -> np.ndarray:
        """Render a gradient test card with a grid, timestamp and caption lines"""
        img = np.zeros((height, width, 3), dtype=np.uint8)

        # Gradient background
        rows = (np.arange(height, dtype=np.uint32) * 255 // max(height, 1)).astype(np.uint8)
        img[:, :, 0] = rows[:, None]
        img[:, :, 1] = 100
        img[:, :, 2] = 255 - rows[:, None]

        # Grid
        step_x = max(width // 10, 1)
        step_y = max(height // 10, 1)
        for x in range(0, width, step_x):
            cv2.line(img, (x, 0), (x, height), (50, 50, 50), 1)
        for y in range(0, height, step_y):
            cv2.line(img, (0, y), (width, y), (50, 50, 50), 1)

        font = cv2.FONT_HERSHEY_SIMPLEX
        scale = max(width / 1920, 0.3)
        thickness = max(int(2 * scale), 1)
        line_height = max(int(40 * scale), 12)

        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        cv2.putText(img, timestamp, (10, line_height), font, scale, (255, 255, 255), thickness)

        for i, text in enumerate(lines or []):
            y = line_height * (i + 2)
            if y >= height:
                break
            cv2.putText(img, text, (10, y), font, scale, (255, 255, 255), thickness)

        return img
