"""
Capture-related API models.

The /capture query string is parsed leniently: a number that does not parse
falls back to its default instead of rejecting the request, and `af` only
recognizes the exact strings "true" and "false".
"""

import math
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from core.models import CaptureRequest, PersistenceMode


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class CaptureQuery(BaseModel):
    """Query parameters of GET /capture"""

    model_config = {"extra": "forbid"}

    camera_id: Optional[str] = Field(None, description="Camera identifier, see /index.html")
    width: Optional[int] = Field(None, description="Image width in pixels")
    height: Optional[int] = Field(None, description="Image height in pixels")
    focus: Optional[float] = Field(None, description="Manual focus distance (0.0 = infinity)")
    af: bool = Field(False, description="Autofocus")
    exposure: Optional[int] = Field(None, description="Shutter time in nanoseconds")
    iso: Optional[int] = Field(None, description="ISO sensitivity")
    save_photo: PersistenceMode = Field(PersistenceMode.RETURN, description="Persistence mode")

    @field_validator("camera_id", mode="before")
    @classmethod
    def blank_camera_id(cls, value: Any) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return str(value)

    @field_validator("width", "height", mode="before")
    @classmethod
    def lenient_dimension(cls, value: Any) -> Optional[int]:
        number = _to_int(value)
        return number if number is not None and number > 0 else None

    @field_validator("exposure", "iso", mode="before")
    @classmethod
    def lenient_int(cls, value: Any) -> Optional[int]:
        return _to_int(value)

    @field_validator("focus", mode="before")
    @classmethod
    def lenient_float(cls, value: Any) -> Optional[float]:
        return _to_float(value)

    @field_validator("af", mode="before")
    @classmethod
    def strict_bool(cls, value: Any) -> bool:
        return value is True or value == "true"

    @field_validator("save_photo", mode="before")
    @classmethod
    def parse_persistence(cls, value: Any) -> PersistenceMode:
        # Raises InvalidPersistenceModeError, not a validation error
        if isinstance(value, PersistenceMode):
            return value
        return PersistenceMode.parse(value)

    def to_request(self, default_width: int, default_height: int) -> CaptureRequest:
        return CaptureRequest(
            camera_id=self.camera_id,
            width=self.width or default_width,
            height=self.height or default_height,
            focus=self.focus if self.focus is not None else 0.0,
            autofocus=self.af,
            exposure_time_ns=self.exposure,
            sensitivity=self.iso,
            persistence=self.save_photo,
        )
