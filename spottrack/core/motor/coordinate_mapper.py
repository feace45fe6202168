from pydantic import BaseModel, ConfigDict, Field

NEUTRAL_ANGLE = 90.0


class AxisCalibration(BaseModel):
    """How far one axis swings across the image, and whether it is mounted reversed."""
    half_span: float = Field(default=90.0, ge=0.0, le=90.0, description="Degrees from neutral at the image edge")
    invert: bool = Field(default=False, description="Use 180 - angle for reversed mounts")

    model_config = ConfigDict(frozen=True)


class CoordinateMapper(BaseModel):
    """
    Pure mapping from a pixel coordinate to target pan/tilt angles.

    The image center maps to neutral (90, 90) and each image edge maps to
    neutral +/- the axis half span. Pan defaults to the full 0-180 sweep,
    tilt to 20-160 to stay clear of typical mechanical limits.
    """

    image_width: int = Field(gt=0)
    image_height: int = Field(gt=0)
    pan: AxisCalibration = Field(default_factory=lambda: AxisCalibration(half_span=90.0))
    tilt: AxisCalibration = Field(default_factory=lambda: AxisCalibration(half_span=70.0))

    model_config = ConfigDict(frozen=True)

    @property
    def center_x(self) -> float:
        return self.image_width / 2.0

    @property
    def center_y(self) -> float:
        return self.image_height / 2.0

    def to_angles(self, x: float, y: float) -> tuple[float, float]:
        pan = NEUTRAL_ANGLE + (x - self.center_x) * self.pan.half_span / self.center_x
        tilt = NEUTRAL_ANGLE + (y - self.center_y) * self.tilt.half_span / self.center_y
        if self.pan.invert:
            pan = 180.0 - pan
        if self.tilt.invert:
            tilt = 180.0 - tilt
        return pan, tilt

    def distance_from_center(self, x: float, y: float) -> float:
        """Euclidean pixel distance from the image center."""
        dx = x - self.center_x
        dy = y - self.center_y
        return (dx * dx + dy * dy) ** 0.5
