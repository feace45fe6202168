from pydantic import ConfigDict, Field, field_validator

from spottrack.core.base_abcs import ComponentParams
from spottrack.core.motor.coordinate_mapper import AxisCalibration, CoordinateMapper


def _clamp(value: float, lower: float, upper: float | None = None) -> float:
    value = max(float(value), lower)
    if upper is not None:
        value = min(value, upper)
    return value


class TrackerConfig(ComponentParams):
    """
    Tracking controller configuration.

    Every numeric field clamps out-of-range input to the nearest valid value,
    both at construction and on assignment, so a bad setting can never take
    down the control loop.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Actuator channels
    pan_channel: int = Field(default=0, ge=0, le=15)
    tilt_channel: int = Field(default=1, ge=0, le=15)

    # Image geometry the controller reasons in
    image_width: int = Field(default=320, gt=0)
    image_height: int = Field(default=240, gt=0)

    smooth_factor: float = Field(
        default=0.3,
        description="Fraction of the remaining angle error applied per tick (0-1, higher = faster, jerkier)",
    )
    dead_zone: float = Field(
        default=10.0,
        description="Radius in pixels around image center inside which the gimbal holds still",
    )
    min_angle_change: float = Field(
        default=1.0,
        description="Smallest per-axis step in degrees worth sending to a servo",
    )

    # Per-axis calibration
    pan_half_span: float = Field(default=90.0, description="Pan degrees from neutral at the image edge (0-90)")
    tilt_half_span: float = Field(default=70.0, description="Tilt degrees from neutral at the image edge (0-90)")
    pan_invert: bool = Field(default=False)
    tilt_invert: bool = Field(default=False)

    # Lost-target recovery
    lost_frame_threshold: int = Field(
        default=30,
        description="Consecutive missed ticks before the gimbal starts returning to center",
    )
    recenter_rate: float = Field(
        default=0.25,
        description="Fraction of the remaining distance to neutral covered per tick while recentering",
    )
    recenter_min_step: float = Field(
        default=0.1,
        description="Smallest per-axis recentering step in degrees; keeps the servo from dithering at neutral",
    )

    @field_validator("smooth_factor", "recenter_rate", mode="before")
    @classmethod
    def clamp_unit_interval(cls, v: float) -> float:
        return _clamp(v, 0.0, 1.0)

    @field_validator("dead_zone", "min_angle_change", "recenter_min_step", mode="before")
    @classmethod
    def clamp_non_negative(cls, v: float) -> float:
        return _clamp(v, 0.0)

    @field_validator("pan_half_span", "tilt_half_span", mode="before")
    @classmethod
    def clamp_half_span(cls, v: float) -> float:
        return _clamp(v, 0.0, 90.0)

    @field_validator("lost_frame_threshold", mode="before")
    @classmethod
    def clamp_lost_frame_threshold(cls, v: int) -> int:
        return int(_clamp(v, 1.0))

    @property
    def mapper(self) -> CoordinateMapper:
        return CoordinateMapper(
            image_width=self.image_width,
            image_height=self.image_height,
            pan=AxisCalibration(half_span=self.pan_half_span, invert=self.pan_invert),
            tilt=AxisCalibration(half_span=self.tilt_half_span, invert=self.tilt_invert),
        )

    def rescale_to_image(self, *, x: int, y: int, frame_width: int, frame_height: int) -> tuple[float, float]:
        """Express a detector coordinate in this config's image geometry.

        Coordinates from a detector running at another resolution are scaled
        linearly per axis. A zero frame size means "already in tracker geometry".
        """
        if frame_width <= 0 or frame_height <= 0:
            return float(x), float(y)
        if frame_width == self.image_width and frame_height == self.image_height:
            return float(x), float(y)
        return x * self.image_width / frame_width, y * self.image_height / frame_height
