from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CANVAS_WIDTH = 1280
CANVAS_HEIGHT = 720
DEFAULT_REFRESH_HZ = 60.0
DEFAULT_INIT_TIMEOUT_S = 30.0


class BackendKind(str, Enum):
    legacy = "legacy"
    modern = "modern"


class StaleResultPolicy(str, Enum):
    keep = "keep"
    drop = "drop"


class TrackerOptions(BaseModel):
    """Options accepted by ``FaceTrackingController.initialize``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    use_modern_backend: bool = Field(default=False, alias="useModernBackend")
    use_full_tracking: bool = Field(default=False, alias="useFullTracking")
    asset_location_override: Optional[str] = Field(
        default=None,
        alias="assetLocationOverride",
        description="FaceLandmarker model file path or URL",
    )
    model_cache_dir: Optional[str] = Field(
        default=None,
        alias="modelCacheDir",
        description="Where downloaded models are kept (defaults to <base>/models)",
    )
    use_gpu_delegate: bool = Field(default=False, alias="useGpuDelegate")
    stale_result_policy: StaleResultPolicy = Field(
        default=StaleResultPolicy.keep,
        alias="staleResultPolicy",
        description="What to do with pushed results that arrive after the scheduler stopped",
    )
    max_log_entries: Optional[int] = Field(default=None, ge=1, alias="maxLogEntries")
    refresh_hz: float = Field(default=DEFAULT_REFRESH_HZ, gt=0, alias="refreshHz")
    init_timeout_s: float = Field(default=DEFAULT_INIT_TIMEOUT_S, gt=0, alias="initTimeoutS")

    @field_validator("asset_location_override")
    @classmethod
    def validate_asset_location(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("asset_location_override must not be blank")
        return value

    @property
    def backend(self) -> BackendKind:
        return BackendKind.modern if self.use_modern_backend else BackendKind.legacy

    def as_summary(self) -> dict[str, Any]:
        return {
            "backend": self.backend.value,
            "full_tracking": self.use_full_tracking,
            "asset_location_override": self.asset_location_override,
            "use_gpu_delegate": self.use_gpu_delegate,
            "stale_result_policy": self.stale_result_policy.value,
            "max_log_entries": self.max_log_entries,
            "refresh_hz": self.refresh_hz,
        }


class RecordingOptions(BaseModel):
    """Options accepted by ``FaceTrackingController.configure_recording``."""

    model_config = ConfigDict(frozen=True)

    record: bool = False


def coerce_tracker_options(
    options: TrackerOptions | Mapping[str, Any] | None,
) -> TrackerOptions:
    if isinstance(options, TrackerOptions):
        return options
    return TrackerOptions.model_validate(dict(options or {}))


def coerce_recording_options(
    options: RecordingOptions | Mapping[str, Any] | None,
) -> RecordingOptions:
    if isinstance(options, RecordingOptions):
        return options
    return RecordingOptions.model_validate(dict(options or {}))
