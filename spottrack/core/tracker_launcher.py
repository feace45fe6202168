import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from spottrack.core.base_abcs import ActuatorPort, FrameSource, PreviewRenderer
from spottrack.core.diagnostics.status_reporter import StatusReporter, StatusReporterParams, StatusSink, log_status
from spottrack.core.motor.actuators import ServoKitActuatorParams
from spottrack.core.motor.tracker_config import TrackerConfig
from spottrack.core.motor.tracking_controller import ControlOutcome, TrackingController
from spottrack.core.types import DetectionResult, Frame, KeyCommand, TrackingMode
from spottrack.core.vision.camera_source import CameraSourceParams, CameraUnavailableError
from spottrack.core.vision.spot_detector import SpotDetector, SpotDetectorParams

logger = logging.getLogger(__name__)

MANUAL_JOG_STEP_DEG = 10.0


class LaunchConfig(BaseModel):
    """Declarative launch configuration."""

    start_mode: TrackingMode = Field(default=TrackingMode.MANUAL, description="Mode the tracker boots into")
    dry_run: bool = Field(default=False, description="Log servo commands instead of driving hardware")
    max_missed_frames: int = Field(
        default=100,
        ge=1,
        description="Consecutive empty camera reads before the run loop gives up",
    )

    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    detector: SpotDetectorParams = Field(default_factory=SpotDetectorParams)
    status: StatusReporterParams = Field(default_factory=StatusReporterParams)
    camera: CameraSourceParams = Field(default_factory=CameraSourceParams)
    servo: ServoKitActuatorParams = Field(default_factory=ServoKitActuatorParams)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "LaunchConfig":
        config = cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.info(f"Loaded launch config from {path}")
        return config


JOG_DELTAS: dict[KeyCommand, tuple[float, float]] = {
    KeyCommand.JOG_LEFT: (-MANUAL_JOG_STEP_DEG, 0.0),
    KeyCommand.JOG_RIGHT: (MANUAL_JOG_STEP_DEG, 0.0),
    KeyCommand.JOG_UP: (0.0, -MANUAL_JOG_STEP_DEG),
    KeyCommand.JOG_DOWN: (0.0, MANUAL_JOG_STEP_DEG),
}


class TrackingSession(BaseModel):
    """
    Everything one tracker owns: detector, controller and status reporter.

    One tick is one frame: detect -> control -> report. Nothing here runs on
    its own thread; the caller's polling loop drives every tick, so the whole
    tick is the unit of exclusive access if this is ever shared across threads.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    detector: SpotDetector
    controller: TrackingController
    reporter: StatusReporter
    last_result: DetectionResult | None = None
    last_outcome: ControlOutcome | None = None
    tick_count: int = 0

    @classmethod
    def create(
        cls,
        *,
        config: LaunchConfig,
        actuator: ActuatorPort,
        status_sink: StatusSink = log_status,
    ) -> "TrackingSession":
        """Factory method to wire a session from a launch config."""
        detector = SpotDetector.create(params=config.detector.model_copy())
        controller = TrackingController.create(actuator=actuator, config=config.tracker.model_copy())
        controller.set_mode(config.start_mode)
        reporter = StatusReporter(params=config.status, sink=status_sink)
        return cls(detector=detector, controller=controller, reporter=reporter)

    def tick(self, frame: Frame) -> DetectionResult:
        result = self.detector.detect(frame)
        self.last_result = result
        self.last_outcome = self.controller.process(result)
        self.reporter.observe(self.controller.status())
        self.tick_count += 1
        return result

    def apply_command(self, command: KeyCommand) -> bool:
        """Apply one operator command. Returns False when the loop should stop."""
        controller = self.controller
        if command == KeyCommand.QUIT:
            return False
        if command == KeyCommand.TOGGLE_MODE:
            if controller.toggle_mode() == TrackingMode.AUTO_TRACK:
                self.detector.reset()
        elif command == KeyCommand.RECENTER:
            controller.reset()
        elif command in JOG_DELTAS:
            if controller.mode != TrackingMode.MANUAL:
                logger.debug(f"Ignoring {command.value} outside manual mode")
            else:
                controller.manual_control(*JOG_DELTAS[command])
        return True


def run_tracking_loop(
    *,
    session: TrackingSession,
    source: FrameSource,
    window: PreviewRenderer | None = None,
    max_ticks: int | None = None,
    max_missed_frames: int = 100,
) -> int:
    """Poll the source and tick the session until quit, interrupt, or `max_ticks`. Returns ticks run."""
    logger.info("=" * 60)
    logger.info("STARTING SPOT TRACKING LOOP")
    logger.info("=" * 60)

    missed_frames = 0
    try:
        while max_ticks is None or session.tick_count < max_ticks:
            frame = source.read()
            if frame is None:
                missed_frames += 1
                if missed_frames >= max_missed_frames:
                    raise CameraUnavailableError(f"No frame for {missed_frames} consecutive reads")
                continue
            missed_frames = 0

            result = session.tick(frame)

            if window is not None:
                command = window.render(frame=frame, result=result, status=session.controller.status())
                if command is not None and not session.apply_command(command):
                    logger.info("Quit requested")
                    break
    except KeyboardInterrupt:
        logger.info("Stopping...")
    finally:
        logger.success(f"Tracking loop finished after {session.tick_count} ticks")

    return session.tick_count

