"""Pydantic data models for genstudio."""

from genstudio.models.job import (
    TERMINAL_STATUSES,
    ErrorDetail,
    GenerationJob,
    JobKind,
    JobStatus,
)
from genstudio.models.params import (
    CameraConfig,
    CameraControl,
    DynamicMask,
    FluxCannyParams,
    FluxFillParams,
    FluxTextToImageParams,
    KlingImageToVideoParams,
    KlingTextToVideoParams,
    KontextParams,
    MusicParams,
)

__all__ = [
    "JobKind",
    "JobStatus",
    "TERMINAL_STATUSES",
    "ErrorDetail",
    "GenerationJob",
    "CameraConfig",
    "CameraControl",
    "DynamicMask",
    "KlingTextToVideoParams",
    "KlingImageToVideoParams",
    "KontextParams",
    "FluxFillParams",
    "FluxCannyParams",
    "FluxTextToImageParams",
    "MusicParams",
]
