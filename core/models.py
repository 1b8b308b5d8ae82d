"""
Core data model for the capture pipeline.

These are plain dataclasses shared by the camera backends, the pipeline and
the HTTP layer. HTTP-facing validation lives in schemas/.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from core.constants import CaptureConstants, ImageConstants
from core.exceptions import InvalidPersistenceModeError


class LensFacing(str, Enum):
    BACK = "back"
    FRONT = "front"
    EXTERNAL = "external"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class PersistenceMode(str, Enum):
    """Where a capture goes: back to the caller, to local storage, or both"""

    RETURN = "return"
    LOCAL = "local"
    RETURN_AND_LOCAL = "returnAndLocal"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PersistenceMode":
        if value is None:
            return cls.RETURN
        try:
            return cls(value)
        except ValueError:
            raise InvalidPersistenceModeError(value)

    @property
    def persists(self) -> bool:
        return self in (PersistenceMode.LOCAL, PersistenceMode.RETURN_AND_LOCAL)

    @property
    def returns_image(self) -> bool:
        return self in (PersistenceMode.RETURN, PersistenceMode.RETURN_AND_LOCAL)


class RequestTemplate(str, Enum):
    PREVIEW = "preview"
    STILL = "still"


class AfMode(str, Enum):
    CONTINUOUS_PICTURE = "continuous_picture"
    OFF = "off"


class AfTrigger(str, Enum):
    IDLE = "idle"
    START = "start"


class AeMode(str, Enum):
    ON = "on"
    OFF = "off"


class AfState(str, Enum):
    """Autofocus state reported with each preview frame"""

    INACTIVE = "inactive"
    ACTIVE_SCAN = "active_scan"
    PASSIVE_SCAN = "passive_scan"
    PASSIVE_FOCUSED = "passive_focused"
    FOCUSED_LOCKED = "focused_locked"
    NOT_FOCUSED_LOCKED = "not_focused_locked"

    @property
    def converged(self) -> bool:
        return self in (
            AfState.PASSIVE_FOCUSED,
            AfState.FOCUSED_LOCKED,
            AfState.NOT_FOCUSED_LOCKED,
        )


def _new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CaptureRequest:
    """One capture intent, immutable once built"""

    camera_id: Optional[str] = None
    width: int = ImageConstants.DEFAULT_IMAGE_WIDTH
    height: int = ImageConstants.DEFAULT_IMAGE_HEIGHT
    focus: float = CaptureConstants.DEFAULT_FOCUS_DISTANCE
    autofocus: bool = CaptureConstants.DEFAULT_AUTOFOCUS
    exposure_time_ns: Optional[int] = None
    sensitivity: Optional[int] = None
    persistence: PersistenceMode = PersistenceMode.RETURN
    request_id: str = field(default_factory=_new_request_id)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid capture size {self.width}x{self.height}")
        if max(self.width, self.height) > ImageConstants.MAX_IMAGE_DIMENSION:
            raise ValueError(
                f"Capture size {self.width}x{self.height} exceeds "
                f"{ImageConstants.MAX_IMAGE_DIMENSION}px"
            )

    @property
    def manual_exposure(self) -> bool:
        """Exposure time and sensitivity only act as a pair"""
        return self.exposure_time_ns is not None and self.sensitivity is not None

    @property
    def partial_exposure(self) -> bool:
        return (self.exposure_time_ns is None) != (self.sensitivity is None)

    def describe(self) -> str:
        return (
            f"cameraId={self.camera_id}, width={self.width}, height={self.height}, "
            f"focus={self.focus}, af={str(self.autofocus).lower()}, "
            f"exposure={self.exposure_time_ns}, iso={self.sensitivity}, "
            f"savePhoto={self.persistence.value}"
        )


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of one pipeline run"""

    request_id: str
    camera_id: Optional[str]
    image: Optional[bytes]
    width: int
    height: int
    timestamp: datetime = field(default_factory=datetime.now)
    saved_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def failed(
        cls, request: CaptureRequest, error: str, camera_id: Optional[str] = None
    ) -> "CaptureResult":
        return cls(
            request_id=request.request_id,
            camera_id=camera_id or request.camera_id,
            image=None,
            width=request.width,
            height=request.height,
            error=error,
        )

    def summary(self) -> dict:
        return {
            "request_id": self.request_id,
            "camera_id": self.camera_id,
            "ok": self.ok,
            "bytes": len(self.image) if self.image else 0,
            "size": f"{self.width}x{self.height}",
            "timestamp": self.timestamp.isoformat(),
            "saved_path": str(self.saved_path) if self.saved_path else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class CameraDescriptor:
    """One enumerable camera"""

    id: str
    facing: LensFacing = LensFacing.UNKNOWN
    pixel_width: Optional[int] = None
    pixel_height: Optional[int] = None
    focal_lengths: Tuple[float, ...] = ()

    @property
    def resolution_label(self) -> str:
        if self.pixel_width and self.pixel_height:
            return f"{self.pixel_width}x{self.pixel_height}"
        return "Unknown"

    @property
    def focal_label(self) -> str:
        if not self.focal_lengths:
            return "Unknown"
        return ", ".join(f"{f}mm" for f in self.focal_lengths)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "facing": self.facing.value,
            "resolution": self.resolution_label,
            "focal_lengths": list(self.focal_lengths),
        }


@dataclass(frozen=True)
class StillSettings:
    """
    Templated request sent to a camera session.

    Built from a CaptureRequest with the same focus and exposure rules for
    the preview stream and the final still.
    """

    template: RequestTemplate
    af_mode: AfMode
    af_trigger: AfTrigger = AfTrigger.IDLE
    focus_distance: Optional[float] = None
    ae_mode: AeMode = AeMode.ON
    exposure_time_ns: Optional[int] = None
    sensitivity: Optional[int] = None

    @classmethod
    def for_preview(cls, request: CaptureRequest) -> "StillSettings":
        if request.autofocus:
            return cls(template=RequestTemplate.PREVIEW, af_mode=AfMode.CONTINUOUS_PICTURE)
        return cls(
            template=RequestTemplate.PREVIEW,
            af_mode=AfMode.OFF,
            focus_distance=request.focus,
        )

    @classmethod
    def for_still(cls, request: CaptureRequest) -> "StillSettings":
        if request.autofocus:
            focus = dict(af_mode=AfMode.CONTINUOUS_PICTURE, af_trigger=AfTrigger.START)
        else:
            focus = dict(af_mode=AfMode.OFF, focus_distance=request.focus)

        if request.manual_exposure:
            exposure = dict(
                ae_mode=AeMode.OFF,
                exposure_time_ns=request.exposure_time_ns,
                sensitivity=request.sensitivity,
            )
        else:
            exposure = dict(ae_mode=AeMode.ON)

        return cls(template=RequestTemplate.STILL, **focus, **exposure)


@dataclass(frozen=True)
class PreviewFrame:
    """Metadata of one repeating-request frame"""

    frame_number: int
    af_state: AfState
