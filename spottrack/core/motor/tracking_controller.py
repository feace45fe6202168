import logging

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from spottrack.core.base_abcs import ActuatorPort
from spottrack.core.diagnostics.direction import DirectionReading, classify_direction, command_direction
from spottrack.core.diagnostics.status_reporter import TrackingStatus
from spottrack.core.motor.coordinate_mapper import NEUTRAL_ANGLE
from spottrack.core.motor.tracker_config import TrackerConfig
from spottrack.core.types import DetectionResult, TrackingMode, TrackingPhase

logger = logging.getLogger(__name__)

MIN_ANGLE = 0.0
MAX_ANGLE = 180.0

# How many moves/misses get a detailed log line before falling back to periodic ones
VERBOSE_MOVE_LOGS = 30
VERBOSE_LOST_LOGS = 10
PERIODIC_LOG_INTERVAL = 30


def clamp_angle(angle: float) -> float:
    return min(max(angle, MIN_ANGLE), MAX_ANGLE)


class TrackerState(BaseModel):
    """Controller state. One per controller, mutated once per tick."""
    pan_angle: float = NEUTRAL_ANGLE
    tilt_angle: float = NEUTRAL_ANGLE
    target_x: int = 0
    target_y: int = 0
    tracking: bool = False
    lost_frames: int = 0
    returning_to_center: bool = False


class ControlOutcome(BaseModel):
    """What one process() call decided."""
    phase: TrackingPhase
    pan_moved: bool = False
    tilt_moved: bool = False
    in_dead_zone: bool = False

    model_config = ConfigDict(frozen=True)


class TrackingController(BaseModel):
    """Turns detection results into pan/tilt commands, with lost-target recovery."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: TrackerConfig = Field(default_factory=TrackerConfig)
    state: TrackerState = Field(default_factory=TrackerState)
    mode: TrackingMode = TrackingMode.MANUAL
    actuator: SkipValidation[ActuatorPort]

    # Log throttling counters
    move_count: int = Field(default=0, exclude=True)
    lost_log_count: int = Field(default=0, exclude=True)

    @classmethod
    def create(cls, *, actuator: ActuatorPort, config: TrackerConfig | None = None) -> "TrackingController":
        """Factory method: builds the controller and drives both axes to neutral."""
        config = config or TrackerConfig()
        controller = cls(
            config=config,
            actuator=actuator,
            state=TrackerState(target_x=config.image_width // 2, target_y=config.image_height // 2),
        )
        controller._actuate_both()
        logger.info(
            f"Created TrackingController [pan=CH{config.pan_channel} tilt=CH{config.tilt_channel} "
            f"image={config.image_width}x{config.image_height} smooth={config.smooth_factor} "
            f"dead_zone={config.dead_zone}px]"
        )
        return controller

    # ------------------------------------------------------------------ mode

    def set_mode(self, mode: TrackingMode) -> None:
        """Switch mode. Takes effect on the next process() call."""
        if mode == self.mode:
            return
        self.mode = mode
        if mode == TrackingMode.AUTO_TRACK:
            self.state.tracking = False
            self.state.lost_frames = 0
            self.state.returning_to_center = False
        logger.info(f"Mode changed to: {mode.value.upper()}")

    def toggle_mode(self) -> TrackingMode:
        self.set_mode(TrackingMode.MANUAL if self.mode == TrackingMode.AUTO_TRACK else TrackingMode.AUTO_TRACK)
        return self.mode

    @property
    def phase(self) -> TrackingPhase:
        if self.state.returning_to_center:
            return TrackingPhase.RETURNING
        if self.state.tracking:
            return TrackingPhase.ACQUIRED
        if self.state.lost_frames > 0:
            return TrackingPhase.LOST
        return TrackingPhase.IDLE

    # -------------------------------------------------------------- tracking

    def process(self, result: DetectionResult) -> ControlOutcome | None:
        """Run one control tick. Does nothing outside AUTO_TRACK mode."""
        if self.mode != TrackingMode.AUTO_TRACK:
            return None
        if result.found:
            return self._on_hit(result)
        return self._on_miss()

    def _on_hit(self, result: DetectionResult) -> ControlOutcome:
        config = self.config
        state = self.state
        mapper = config.mapper

        x, y = config.rescale_to_image(
            x=result.x, y=result.y, frame_width=result.frame_width, frame_height=result.frame_height
        )
        state.target_x = int(round(x))
        state.target_y = int(round(y))
        target_pan, target_tilt = mapper.to_angles(x, y)

        if self.move_count < VERBOSE_MOVE_LOGS:
            logger.debug(
                f"Detect: xy=({state.target_x},{state.target_y}) -> target=({target_pan:.1f},{target_tilt:.1f}) "
                f"current=({state.pan_angle:.1f},{state.tilt_angle:.1f})"
            )

        in_dead_zone = mapper.distance_from_center(x, y) <= config.dead_zone
        pan_moved = tilt_moved = False
        if in_dead_zone:
            logger.trace("In dead zone, holding position")
        else:
            k = config.smooth_factor
            new_pan = clamp_angle(state.pan_angle * (1.0 - k) + target_pan * k)
            new_tilt = clamp_angle(state.tilt_angle * (1.0 - k) + target_tilt * k)
            self._log_command(new_pan=new_pan, new_tilt=new_tilt)
            pan_moved, tilt_moved = self._step_axes(
                new_pan=new_pan, new_tilt=new_tilt, min_step=config.min_angle_change
            )
            if pan_moved or tilt_moved:
                self._log_move(target_pan=target_pan, target_tilt=target_tilt)

        state.tracking = True
        state.lost_frames = 0
        self.lost_log_count = 0
        if state.returning_to_center:
            state.returning_to_center = False
            logger.info("Target reacquired - canceling return to center, resuming tracking")

        return ControlOutcome(
            phase=TrackingPhase.ACQUIRED,
            pan_moved=pan_moved,
            tilt_moved=tilt_moved,
            in_dead_zone=in_dead_zone,
        )

    def _on_miss(self) -> ControlOutcome:
        config = self.config
        state = self.state
        state.lost_frames += 1
        state.tracking = False

        if self.lost_log_count < VERBOSE_LOST_LOGS:
            logger.debug(f"Lost #{self.lost_log_count} (total_lost={state.lost_frames})")
            self.lost_log_count += 1

        if state.lost_frames >= config.lost_frame_threshold and not state.returning_to_center:
            state.returning_to_center = True
            logger.info(f"Target lost for {state.lost_frames} frames, returning to center")

        pan_moved = tilt_moved = False
        if state.returning_to_center:
            rate = config.recenter_rate
            new_pan = state.pan_angle * (1.0 - rate) + NEUTRAL_ANGLE * rate
            new_tilt = state.tilt_angle * (1.0 - rate) + NEUTRAL_ANGLE * rate
            pan_moved = tilt_moved = self._step_together(
                new_pan=new_pan, new_tilt=new_tilt, min_step=config.recenter_min_step
            )
            if state.lost_frames % PERIODIC_LOG_INTERVAL == 0:
                if pan_moved or tilt_moved:
                    logger.info(f"Returning to center... pan={state.pan_angle:.1f} tilt={state.tilt_angle:.1f}")
                else:
                    logger.info(
                        f"Centered at ({state.pan_angle:.1f}, {state.tilt_angle:.1f}), waiting for target..."
                    )

        return ControlOutcome(phase=self.phase, pan_moved=pan_moved, tilt_moved=tilt_moved)

    def _step_axes(self, *, new_pan: float, new_tilt: float, min_step: float) -> tuple[bool, bool]:
        """Commit and actuate each axis independently, only if it moves at least `min_step`."""
        state = self.state
        pan_moved = abs(new_pan - state.pan_angle) >= min_step
        tilt_moved = abs(new_tilt - state.tilt_angle) >= min_step
        if pan_moved:
            state.pan_angle = new_pan
            self.actuator.set_angle(self.config.pan_channel, state.pan_angle)
        if tilt_moved:
            state.tilt_angle = new_tilt
            self.actuator.set_angle(self.config.tilt_channel, state.tilt_angle)
        return pan_moved, tilt_moved

    def _step_together(self, *, new_pan: float, new_tilt: float, min_step: float) -> bool:
        """Commit and actuate both axes if either one moves at least `min_step`."""
        state = self.state
        if abs(new_pan - state.pan_angle) < min_step and abs(new_tilt - state.tilt_angle) < min_step:
            return False
        state.pan_angle = new_pan
        state.tilt_angle = new_tilt
        self._actuate_both()
        return True

    def _log_command(self, *, new_pan: float, new_tilt: float) -> None:
        pan_cmd = command_direction(old=self.state.pan_angle, new=new_pan, increasing="RIGHT", decreasing="LEFT")
        tilt_cmd = command_direction(old=self.state.tilt_angle, new=new_tilt, increasing="DOWN", decreasing="UP")
        logger.trace(f"xy=({self.state.target_x},{self.state.target_y}) pos={self.direction.label} "
                     f"cmd PAN={pan_cmd} TILT={tilt_cmd}")

    def _log_move(self, *, target_pan: float, target_tilt: float) -> None:
        state = self.state
        if self.move_count < VERBOSE_MOVE_LOGS:
            logger.debug(
                f"Move #{self.move_count} xy=({state.target_x},{state.target_y}) "
                f"target=({target_pan:.1f},{target_tilt:.1f}) => "
                f"CH{self.config.pan_channel}={state.pan_angle:.1f} CH{self.config.tilt_channel}={state.tilt_angle:.1f}"
            )
        elif self.move_count % PERIODIC_LOG_INTERVAL == 0:
            logger.debug(
                f"Move #{self.move_count} => pan={state.pan_angle:.1f} tilt={state.tilt_angle:.1f}"
            )
        self.move_count += 1

    # ------------------------------------------------------- direct control

    def manual_control(self, pan_delta: float, tilt_delta: float) -> None:
        """Nudge both axes by a relative amount. Works in any mode."""
        self.state.pan_angle = clamp_angle(self.state.pan_angle + pan_delta)
        self.state.tilt_angle = clamp_angle(self.state.tilt_angle + tilt_delta)
        self._actuate_both()
        logger.info(f"Manual: pan={self.state.pan_angle:.1f}° tilt={self.state.tilt_angle:.1f}°")

    def set_angles(self, pan_angle: float, tilt_angle: float) -> None:
        self.state.pan_angle = clamp_angle(pan_angle)
        self.state.tilt_angle = clamp_angle(tilt_angle)
        self._actuate_both()

    def reset(self) -> None:
        """Back to neutral with recovery state cleared."""
        self.state.pan_angle = NEUTRAL_ANGLE
        self.state.tilt_angle = NEUTRAL_ANGLE
        self.state.tracking = False
        self.state.lost_frames = 0
        self.state.returning_to_center = False
        self._actuate_both()
        logger.info(f"Reset to center ({NEUTRAL_ANGLE}°, {NEUTRAL_ANGLE}°)")

    def _actuate_both(self) -> None:
        self.actuator.set_angle(self.config.pan_channel, self.state.pan_angle)
        self.actuator.set_angle(self.config.tilt_channel, self.state.tilt_angle)

    # ----------------------------------------------------------- parameters

    def set_smooth_factor(self, factor: float) -> None:
        self.config.smooth_factor = factor
        logger.info(f"Smooth factor set to {self.config.smooth_factor:.2f}")

    def set_dead_zone(self, radius: float) -> None:
        self.config.dead_zone = radius
        logger.info(f"Dead zone set to {self.config.dead_zone:g} pixels")

    def set_min_angle_change(self, threshold: float) -> None:
        self.config.min_angle_change = threshold
        logger.info(f"Min angle change set to {self.config.min_angle_change:.1f}°")

    def set_axis_invert(self, *, pan_invert: bool, tilt_invert: bool) -> None:
        self.config.pan_invert = bool(pan_invert)
        self.config.tilt_invert = bool(tilt_invert)
        logger.info(f"Axis invert: PAN={int(self.config.pan_invert)} TILT={int(self.config.tilt_invert)}")

    def set_angle_ranges(self, *, pan_half_span: float, tilt_half_span: float) -> None:
        self.config.pan_half_span = pan_half_span
        self.config.tilt_half_span = tilt_half_span
        logger.info(
            f"Angle ranges: pan 90±{self.config.pan_half_span:g}° tilt 90±{self.config.tilt_half_span:g}°"
        )

    # ----------------------------------------------------------- diagnostics

    @property
    def direction(self) -> DirectionReading:
        return classify_direction(
            self.state.target_x,
            self.state.target_y,
            width=self.config.image_width,
            height=self.config.image_height,
        )

    def status(self) -> TrackingStatus:
        state = self.state
        return TrackingStatus(
            mode=self.mode,
            phase=self.phase,
            pan_angle=state.pan_angle,
            tilt_angle=state.tilt_angle,
            target_x=state.target_x,
            target_y=state.target_y,
            tracking=state.tracking,
            lost_frames=state.lost_frames,
            returning_to_center=state.returning_to_center,
            dead_zone=self.config.dead_zone,
            direction=self.direction,
        )
