import logging

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from spottrack.core.base_abcs import ComponentParams

logger = logging.getLogger(__name__)

LOGICAL_MIN_ANGLE = 0.0
LOGICAL_MAX_ANGLE = 180.0
LOGICAL_SPAN = LOGICAL_MAX_ANGLE - LOGICAL_MIN_ANGLE


class ServoCalibration(BaseModel):
    """Maps the logical 0-180° command onto the physical travel of one servo."""
    angle_min: float = Field(default=0.0, ge=0.0, le=180.0, description="Physical angle for logical 0°")
    angle_max: float = Field(default=180.0, ge=0.0, le=180.0, description="Physical angle for logical 180°")
    center_offset: float = Field(default=0.0, ge=-90.0, le=90.0, description="Trim added after mapping")

    model_config = ConfigDict(frozen=True)

    def to_physical(self, logical_angle: float) -> float:
        logical_angle = min(max(logical_angle, LOGICAL_MIN_ANGLE), LOGICAL_MAX_ANGLE)
        angle_min = self.angle_min
        span = self.angle_max - angle_min
        if span <= 0.0:
            # degenerate range, fall back to the full logical sweep from angle_min
            span = LOGICAL_SPAN
        angle_max = angle_min + span
        physical = angle_min + span * (logical_angle / LOGICAL_SPAN) + self.center_offset
        return min(max(physical, angle_min), angle_max, LOGICAL_MAX_ANGLE)


class ServoKitActuatorParams(ComponentParams):
    """Parameters for ServoKitActuator."""
    channels: int = Field(default=16, description="PCA9685 board channel count (8 or 16)")
    i2c_address: int = Field(default=0x40)
    calibrations: dict[int, ServoCalibration] = Field(
        default_factory=dict,
        description="Per-channel calibration; channels not listed use the identity mapping",
    )


class ServoKitActuator(BaseModel):
    """Drives hobby servos on a PCA9685 board through adafruit_servokit."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    params: ServoKitActuatorParams = Field(default_factory=ServoKitActuatorParams)
    kit: SkipValidation[object] = Field(default=None, exclude=True)
    last_angles: dict[int, float] = Field(default_factory=dict)

    @classmethod
    def create(cls, *, params: ServoKitActuatorParams | None = None) -> "ServoKitActuator":
        """Factory method: opens the servo board."""
        from adafruit_servokit import ServoKit

        params = params or ServoKitActuatorParams()
        actuator = cls(params=params)
        actuator.kit = ServoKit(channels=params.channels, address=params.i2c_address)
        logger.info(f"ServoKit ready [channels={params.channels}, address=0x{params.i2c_address:02X}]")
        return actuator

    def calibration_for(self, channel: int) -> ServoCalibration:
        return self.params.calibrations.get(channel, ServoCalibration())

    def set_angle(self, channel: int, angle: float) -> None:
        if not 0 <= channel < self.params.channels:
            raise ValueError(f"Invalid servo channel: {channel} (board has {self.params.channels})")
        physical = self.calibration_for(channel).to_physical(angle)
        self.kit.servo[channel].angle = physical
        self.last_angles[channel] = angle
        logger.trace(f"CH{channel} <- {angle:.2f}° (physical {physical:.2f}°)")

    def release(self) -> None:
        """Stop driving every channel we touched so the servos go limp."""
        for channel in self.last_angles:
            self.kit.servo[channel].angle = None
        logger.info("Servos released")


class DryRunActuator(BaseModel):
    """Stands in for servo hardware: remembers and logs each command."""

    last_angles: dict[int, float] = Field(default_factory=dict)
    command_count: int = 0

    def set_angle(self, channel: int, angle: float) -> None:
        self.last_angles[channel] = angle
        self.command_count += 1
        logger.trace(f"[dry-run] CH{channel} <- {angle:.2f}°")

    def release(self) -> None:
        logger.info(f"Dry-run actuator released after {self.command_count} commands")
