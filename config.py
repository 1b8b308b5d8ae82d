"""
Application Settings
Configuration management using Pydantic settings.

Every value can be overridden with a PHOTOAPI_ environment variable, using
a double underscore for nested sections (PHOTOAPI_API__PORT=9000).
"""

from functools import lru_cache
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.constants import (
    APIConstants,
    CameraConstants,
    CaptureConstants,
    ImageConstants,
    StorageConstants,
    SystemConstants,
)
from core.models import LensFacing


class ApiSettings(BaseModel):
    host: str = APIConstants.DEFAULT_HOST
    port: int = Field(APIConstants.DEFAULT_PORT, ge=1, le=65535)


class CameraSettings(BaseModel):
    backend: Literal["synthetic", "opencv"] = CameraConstants.BACKEND_SYNTHETIC
    max_devices: int = Field(CameraConstants.MAX_USB_CAMERAS_TO_CHECK, ge=1)
    facing: LensFacing = LensFacing.BACK
    af_max_preview_frames: int = Field(CameraConstants.AF_MAX_PREVIEW_FRAMES, ge=1)
    synthetic_af_frames: int = Field(CameraConstants.SYNTHETIC_AF_CONVERGE_FRAMES, ge=1)
    jpeg_quality: int = Field(ImageConstants.DEFAULT_JPEG_QUALITY, ge=1, le=100)


class CaptureSettings(BaseModel):
    default_width: int = Field(ImageConstants.DEFAULT_IMAGE_WIDTH, gt=0)
    default_height: int = Field(ImageConstants.DEFAULT_IMAGE_HEIGHT, gt=0)
    timeout_seconds: float = Field(
        CaptureConstants.DEFAULT_TIMEOUT_SECONDS,
        ge=CaptureConstants.MIN_TIMEOUT_SECONDS,
        le=CaptureConstants.MAX_TIMEOUT_SECONDS,
    )


class StorageSettings(BaseModel):
    directory: str = StorageConstants.DEFAULT_DIRECTORY
    filename_prefix: str = StorageConstants.DEFAULT_FILENAME_PREFIX


class SystemSettings(BaseModel):
    log_level: str = SystemConstants.LOG_LEVEL_DEFAULT
    debug: bool = False
    activity_log_size: int = Field(SystemConstants.ACTIVITY_LOG_SIZE, ge=1)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="PHOTOAPI_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    api: ApiSettings = ApiSettings()
    camera: CameraSettings = CameraSettings()
    capture: CaptureSettings = CaptureSettings()
    storage: StorageSettings = StorageSettings()
    system: SystemSettings = SystemSettings()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
