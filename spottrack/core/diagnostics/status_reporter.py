import logging
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from spottrack.core.base_abcs import ComponentParams
from spottrack.core.diagnostics.direction import DirectionReading, HorizontalDirection, VerticalDirection
from spottrack.core.types import TrackingMode, TrackingPhase

logger = logging.getLogger(__name__)


class TrackingStatus(BaseModel):
    """Snapshot of the tracker handed to the status sink."""
    mode: TrackingMode
    phase: TrackingPhase
    pan_angle: float
    tilt_angle: float
    target_x: int
    target_y: int
    tracking: bool
    lost_frames: int
    returning_to_center: bool
    dead_zone: float
    direction: DirectionReading

    model_config = ConfigDict(frozen=True)

    def summary(self) -> str:
        return (
            f"mode={self.mode.value} phase={self.phase.value} "
            f"pan={self.pan_angle:.1f}° tilt={self.tilt_angle:.1f}° "
            f"target=({self.target_x},{self.target_y}) {self.direction.label} "
            f"tracking={self.tracking} lost={self.lost_frames}"
        )


StatusSink = Callable[[TrackingStatus], None]


def log_status(status: TrackingStatus) -> None:
    logger.info(f"Status: {status.summary()}")


class StatusReporterParams(ComponentParams):
    """Parameters for StatusReporter."""
    every_n_ticks: int = Field(default=30, ge=1, description="Emit one status every N ticks")


class StatusReporter(BaseModel):
    """Emits a TrackingStatus to an external sink every N ticks."""

    params: StatusReporterParams = Field(default_factory=StatusReporterParams)
    sink: SkipValidation[StatusSink] = Field(default=log_status, exclude=True)
    tick_count: int = 0
    last_direction: DirectionReading | None = None

    def observe(self, status: TrackingStatus) -> bool:
        """Record one tick; returns True when the status was emitted this tick."""
        self._log_center_crossings(status.direction)
        self.tick_count += 1
        if self.tick_count % self.params.every_n_ticks != 0:
            return False
        self.sink(status)
        return True

    def _log_center_crossings(self, direction: DirectionReading) -> None:
        previous = self.last_direction
        self.last_direction = direction
        if previous is None:
            return
        if direction.horizontal == HorizontalDirection.CENTER and previous.horizontal != HorizontalDirection.CENTER:
            logger.debug(f"X crossed {previous.horizontal.value} -> CENTER")
        if direction.vertical == VerticalDirection.CENTER and previous.vertical != VerticalDirection.CENTER:
            logger.debug(f"Y crossed {previous.vertical.value} -> CENTER")
