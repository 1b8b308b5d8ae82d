"""
Completion sinks - consumers of finished captures

PreviewSink decodes each capture the way the on-device preview did and keeps
a thumbnail. ActivityLog is the rolling log view shown on the status page.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock, RLock
from typing import Deque, List, Optional, Tuple

from core.constants import SystemConstants
from core.image_utils import ImageUtils
from core.models import CaptureResult

logger = logging.getLogger(__name__)


@dataclass
class PreviewSnapshot:
    """Decoded view of the last capture"""

    request_id: str
    camera_id: Optional[str]
    width: int
    height: int
    thumbnail_base64: str
    timestamp: datetime


class PreviewSink:
    """Decodes finished captures and keeps the latest thumbnail"""

    def __init__(self):
        self.lock = Lock()
        self.latest: Optional[PreviewSnapshot] = None

    def __call__(self, result: CaptureResult):
        if not result.ok:
            return

        image = ImageUtils.decode_image(result.image)
        if image is None:
            logger.warning(f"Capture {result.request_id} is not decodable, skipping preview")
            return

        height, width = image.shape[:2]
        _, thumbnail = ImageUtils.create_thumbnail(image)
        snapshot = PreviewSnapshot(
            request_id=result.request_id,
            camera_id=result.camera_id,
            width=width,
            height=height,
            thumbnail_base64=thumbnail,
            timestamp=result.timestamp,
        )
        with self.lock:
            self.latest = snapshot
        logger.debug(f"Preview updated from {result.request_id}: {width}x{height}")

    def snapshot(self) -> Optional[PreviewSnapshot]:
        with self.lock:
            return self.latest


class ActivityLog:
    """Circular buffer of recent log lines"""

    def __init__(self, max_size: int = SystemConstants.ACTIVITY_LOG_SIZE):
        self.max_size = max_size
        self.lines: Deque[Tuple[datetime, str]] = deque(maxlen=max_size)
        # RLock: a handler may log while holding it
        self.lock = RLock()

    def append(self, message: str):
        with self.lock:
            self.lines.append((datetime.now(), message))

    def recent(self, limit: int = 50) -> List[str]:
        with self.lock:
            items = list(self.lines)[-limit:]
        return [f"{ts.strftime('%H:%M:%S')} {msg}" for ts, msg in items]

    def clear(self):
        with self.lock:
            self.lines.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self.lines)


class ActivityLogHandler(logging.Handler):
    """Mirrors application log records into an ActivityLog"""

    def __init__(
        self,
        activity_log: ActivityLog,
        prefixes: Tuple[str, ...] = SystemConstants.ACTIVITY_LOGGERS,
        level: int = logging.INFO,
    ):
        super().__init__(level)
        self.activity_log = activity_log
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.level and record.name.split(".")[0] in self.prefixes

    def emit(self, record: logging.LogRecord):
        try:
            self.activity_log.append(record.getMessage())
        except Exception:
            self.handleError(record)
