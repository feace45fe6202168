from enum import Enum

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Frame(BaseModel):
    """One decoded camera frame of packed 5-6-5 pixels, shape (height, width)."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    pixels: np.ndarray

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("pixels")
    @classmethod
    def validate_pixels(cls, v: np.ndarray) -> np.ndarray:
        """Require a 2-D uint16 buffer and hand back a read-only view of it."""
        if v.ndim != 2:
            raise ValueError(f"pixels must be 2-D (height, width), got shape {v.shape}")
        if v.dtype != np.uint16:
            raise ValueError(f"pixels must be uint16 packed 5-6-5, got {v.dtype}")
        view = v.view()
        view.flags.writeable = False
        return view

    @model_validator(mode="after")
    def validate_shape(self) -> "Frame":
        if self.pixels.shape != (self.height, self.width):
            raise ValueError(
                f"pixels shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} frame"
            )
        return self

    @classmethod
    def from_pixels(cls, pixels: np.ndarray) -> "Frame":
        height, width = pixels.shape[:2]
        return cls(width=width, height=height, pixels=pixels)

    @classmethod
    def from_buffer(cls, buffer: bytes | bytearray | memoryview, *, width: int, height: int) -> "Frame":
        """Wrap a raw little-endian 16-bit capture buffer (e.g. straight out of a DMA transfer)."""
        expected = width * height * 2
        if len(buffer) < expected:
            raise ValueError(f"buffer holds {len(buffer)} bytes, need {expected} for {width}x{height}")
        pixels = np.frombuffer(buffer, dtype="<u2", count=width * height).astype(np.uint16, copy=False)
        return cls(width=width, height=height, pixels=pixels.reshape(height, width))


class DetectionFailure(str, Enum):
    """Why a detection call reported found=False."""
    BELOW_THRESHOLD = "below_threshold"  # frame peak under the brightness threshold
    TOO_FEW_PIXELS = "too_few_pixels"  # not enough core pixels in the local window
    WEAK_SIGNAL = "weak_signal"  # accumulated weight under the floor
    INVALID_STREAM = "invalid_stream"  # compressed path only: unusable byte stream


class DetectionResult(BaseModel):
    """Localization output for one tick. Overwritten every tick, never queued."""

    found: bool = False
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)
    confidence: int = Field(default=0, ge=0, description="Number of qualifying bright pixels/samples")
    frame_width: int = Field(default=0, ge=0, description="Geometry the coordinate is expressed in")
    frame_height: int = Field(default=0, ge=0)
    failure: DetectionFailure | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def miss(cls, *, failure: DetectionFailure, frame_width: int, frame_height: int) -> "DetectionResult":
        return cls(found=False, failure=failure, frame_width=frame_width, frame_height=frame_height)


class TrackingMode(str, Enum):
    """Who is steering the gimbal."""
    MANUAL = "manual"
    AUTO_TRACK = "auto_track"


class TrackingPhase(str, Enum):
    """Auto-track sub-behaviour, derived from tracker state on demand."""
    IDLE = "idle"  # no tick processed since init/reset/mode switch
    ACQUIRED = "acquired"
    LOST = "lost"
    RETURNING = "returning"


class KeyCommand(str, Enum):
    """Operator inputs, as produced by the preview window."""
    QUIT = "quit"
    TOGGLE_MODE = "toggle_mode"
    RECENTER = "recenter"
    JOG_LEFT = "jog_left"
    JOG_RIGHT = "jog_right"
    JOG_UP = "jog_up"
    JOG_DOWN = "jog_down"
