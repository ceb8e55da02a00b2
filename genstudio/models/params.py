"""Generation parameter models validated before any provider call."""

import base64
import binascii
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VIDEO_PROMPT_MAX_CHARS = 2500
IMAGE_PROMPT_MAX_CHARS = 1000
AUDIO_PROMPT_MAX_CHARS = 1000
MAX_REFERENCE_IMAGE_BYTES = 10 * 1024 * 1024

AspectRatio = Literal["21:9", "16:9", "4:3", "1:1", "3:4", "9:16", "9:21"]
OutputFormat = Literal["jpeg", "png"]


def strip_data_url(value: str) -> str:
    """Reduce a ``data:image/png;base64,...`` URL to its raw base64 payload."""
    if value.startswith("data:"):
        comma = value.find(",")
        if comma != -1:
            return value[comma + 1 :]
    return value


def decoded_size(payload: str) -> int:
    """Byte size of a base64 payload; raises ValueError when it is not base64."""
    try:
        return len(base64.b64decode(payload, validate=True))
    except (binascii.Error, ValueError):
        raise ValueError("invalid base64 image data")


def _reference_image(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    payload = strip_data_url(value.strip())
    if not payload:
        return None
    if decoded_size(payload) > MAX_REFERENCE_IMAGE_BYTES:
        raise ValueError("image size exceeds 10MB limit")
    return payload


def _not_whitespace(value: str) -> str:
    if not value.strip():
        raise ValueError("field cannot be only whitespace")
    return value


# ==================== Kling (video) ====================


class CameraConfig(BaseModel):
    """Camera movement for the ``simple`` camera control type."""

    horizontal: float = Field(default=0, ge=-10, le=10)
    vertical: float = Field(default=0, ge=-10, le=10)
    pan: float = Field(default=0, ge=-10, le=10)
    tilt: float = Field(default=0, ge=-10, le=10)
    roll: float = Field(default=0, ge=-10, le=10)
    zoom: float = Field(default=0, ge=-10, le=10)

    @model_validator(mode="after")
    def single_movement(self) -> "CameraConfig":
        """Only one movement parameter may be non-zero."""
        values = [self.horizontal, self.vertical, self.pan, self.tilt, self.roll, self.zoom]
        if sum(1 for v in values if v != 0) > 1:
            raise ValueError("only one camera movement parameter may be non-zero")
        return self


class CameraControl(BaseModel):
    """Camera control block for Kling generations."""

    type: Literal["simple", "down_back", "forward_up", "right_turn_forward", "left_turn_forward"]
    config: Optional[CameraConfig] = None

    @model_validator(mode="after")
    def drop_config_unless_simple(self) -> "CameraControl":
        # Presets ignore explicit movement values
        if self.type != "simple":
            self.config = None
        return self


class KlingTextToVideoParams(BaseModel):
    """Parameters for Kling text-to-video."""

    prompt: str = Field(min_length=1, max_length=VIDEO_PROMPT_MAX_CHARS)
    negative_prompt: Optional[str] = Field(default=None, max_length=VIDEO_PROMPT_MAX_CHARS)
    model_name: Literal["kling-v1", "kling-v1-6", "kling-v2-master"] = "kling-v2-master"
    cfg_scale: float = Field(default=0.5, ge=0, le=1)
    mode: Literal["std", "pro"] = "std"
    aspect_ratio: Literal["16:9", "9:16", "1:1"] = "16:9"
    duration: Literal["5", "10"] = "5"
    camera_control: Optional[CameraControl] = None
    callback_url: Optional[str] = None
    external_task_id: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_whitespace(cls, v: str) -> str:
        return _not_whitespace(v)

    @field_validator("negative_prompt", "callback_url", "external_task_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank optional strings as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()


class DynamicMask(BaseModel):
    """Motion brush mask with its trajectory."""

    mask: str = Field(min_length=1)
    trajectories: list[dict[str, int]] = Field(min_length=1)

    @field_validator("mask")
    @classmethod
    def raw_mask(cls, v: str) -> str:
        return strip_data_url(v)


class KlingImageToVideoParams(BaseModel):
    """Parameters for Kling image-to-video."""

    input_image: Optional[str] = None
    image_tail: Optional[str] = None
    prompt: str = Field(default="", max_length=VIDEO_PROMPT_MAX_CHARS)
    negative_prompt: Optional[str] = Field(default=None, max_length=VIDEO_PROMPT_MAX_CHARS)
    model_name: Literal["kling-v1", "kling-v1-5", "kling-v1-6", "kling-v2-master"] = "kling-v1"
    cfg_scale: float = Field(default=0.5, ge=0, le=1)
    mode: Literal["std", "pro"] = "std"
    duration: Literal["5", "10"] = "5"
    static_mask: Optional[str] = None
    dynamic_masks: list[DynamicMask] = Field(default_factory=list)
    camera_control: Optional[CameraControl] = None
    external_task_id: Optional[str] = None

    @field_validator("input_image", "image_tail")
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _reference_image(v)

    @field_validator("static_mask")
    @classmethod
    def raw_static_mask(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_data_url(v) or None

    @model_validator(mode="after")
    def check_frames(self) -> "KlingImageToVideoParams":
        """Require a start or end frame; an end frame excludes masks and camera moves."""
        if not self.input_image and not self.image_tail:
            raise ValueError("at least one of input_image or image_tail must be provided")
        has_masks = bool(self.static_mask) or bool(self.dynamic_masks)
        if self.image_tail and (has_masks or self.camera_control is not None):
            raise ValueError(
                "image_tail cannot be used with dynamic_masks/static_mask or camera_control"
            )
        return self


# ==================== Black Forest Labs (image) ====================


class KontextParams(BaseModel):
    """Parameters for Flux Kontext image editing."""

    prompt: str = Field(min_length=1, max_length=IMAGE_PROMPT_MAX_CHARS)
    input_image: Optional[str] = None
    seed: int = 42
    aspect_ratio: AspectRatio = "16:9"
    output_format: OutputFormat = "png"
    prompt_upsampling: bool = False
    safety_tolerance: int = Field(default=2, ge=0, le=6)
    webhook_url: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_whitespace(cls, v: str) -> str:
        return _not_whitespace(v)

    @field_validator("input_image")
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _reference_image(v)


class FluxFillParams(BaseModel):
    """Parameters for Flux Fill inpainting."""

    image: str = Field(min_length=1)
    mask: Optional[str] = None
    prompt: str = Field(min_length=1, max_length=IMAGE_PROMPT_MAX_CHARS)
    steps: int = Field(default=50, ge=15, le=50)
    guidance: float = Field(default=60, ge=1.5, le=100)
    seed: int = 1
    output_format: OutputFormat = "jpeg"
    safety_tolerance: int = Field(default=2, ge=0, le=6)
    prompt_upsampling: bool = False

    @field_validator("image")
    @classmethod
    def check_image(cls, v: str) -> str:
        image = _reference_image(v)
        if not image:
            raise ValueError("image is required")
        return image

    @field_validator("mask")
    @classmethod
    def raw_mask(cls, v: Optional[str]) -> Optional[str]:
        return _reference_image(v)


class FluxCannyParams(BaseModel):
    """Parameters for Flux Canny edge-guided generation."""

    control_image: str = Field(min_length=1)
    prompt: str = Field(min_length=1, max_length=IMAGE_PROMPT_MAX_CHARS)
    steps: int = Field(default=50, ge=15, le=50)
    guidance: float = Field(default=30, ge=1, le=100)
    canny_low_threshold: int = Field(default=50, ge=0, le=500)
    canny_high_threshold: int = Field(default=200, ge=0, le=500)
    seed: Optional[int] = None
    output_format: OutputFormat = "jpeg"
    safety_tolerance: int = Field(default=2, ge=0, le=6)
    prompt_upsampling: bool = False

    @field_validator("control_image")
    @classmethod
    def check_image(cls, v: str) -> str:
        image = _reference_image(v)
        if not image:
            raise ValueError("control_image is required")
        return image

    @model_validator(mode="after")
    def ordered_thresholds(self) -> "FluxCannyParams":
        if self.canny_low_threshold > self.canny_high_threshold:
            raise ValueError("canny_low_threshold must not exceed canny_high_threshold")
        return self


class FluxTextToImageParams(BaseModel):
    """Parameters for plain Flux text-to-image."""

    model: Literal["flux-dev", "flux-pro", "flux-pro-1.1", "flux-pro-1.1-ultra"] = "flux-pro-1.1"
    prompt: str = Field(min_length=1, max_length=IMAGE_PROMPT_MAX_CHARS)
    width: Optional[int] = Field(default=None, ge=256, le=1440, multiple_of=32)
    height: Optional[int] = Field(default=None, ge=256, le=1440, multiple_of=32)
    aspect_ratio: Optional[AspectRatio] = None
    seed: Optional[int] = None
    steps: Optional[int] = Field(default=None, ge=1, le=50)
    guidance: Optional[float] = Field(default=None, ge=1.5, le=5)
    safety_tolerance: int = Field(default=2, ge=0, le=6)
    output_format: OutputFormat = "jpeg"
    prompt_upsampling: bool = False
    raw: Optional[bool] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_whitespace(cls, v: str) -> str:
        return _not_whitespace(v)


# ==================== AIML (audio) ====================


class MusicParams(BaseModel):
    """Parameters for AIML text-to-audio."""

    model: str = Field(default="stable-audio", min_length=1)
    prompt: str = Field(min_length=1, max_length=AUDIO_PROMPT_MAX_CHARS)
    seconds_start: int = Field(default=1, ge=1, le=30)
    seconds_total: int = Field(default=30, ge=10, le=60)
    steps: Optional[int] = Field(default=None, ge=1, le=1000)

    @field_validator("prompt")
    @classmethod
    def prompt_not_whitespace(cls, v: str) -> str:
        return _not_whitespace(v)


# ==================== Replicate (image upscale) ====================


class UpscaleParams(BaseModel):
    """Parameters for Real-ESRGAN upscaling on Replicate."""

    image_url: str = Field(min_length=1)
    scale: int = Field(default=2, ge=1, le=10)
    face_enhance: bool = True
    model_type: Literal["PHOTO", "ANIME"] = "PHOTO"

    @field_validator("image_url")
    @classmethod
    def check_source(cls, v: str) -> str:
        value = v.strip()
        if not value.startswith(("http://", "https://", "data:image/")):
            raise ValueError("image_url must be an http(s) URL or an image data URL")
        return value
