import argparse
import logging
import sys
from pathlib import Path

from spottrack.core.motor.actuators import DryRunActuator, ServoKitActuator
from spottrack.core.tracker_launcher import LaunchConfig, TrackingSession, run_tracking_loop
from spottrack.core.vision.camera_source import CameraFrameSource
from spottrack.system.default_paths import get_default_launch_config_path, get_log_file_path
from spottrack.system.logging_configuration.configure_logging import configure_logging
from spottrack.system.logging_configuration.log_levels import LogLevels
from spottrack.ui.preview_window import PreviewWindow, PreviewWindowParams

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="spottrack", description="Bright-spot pan/tilt tracker")
    parser.add_argument("--config", type=Path, default=None, help="Launch config JSON file")
    parser.add_argument("--dry-run", action="store_true", help="Log servo commands instead of driving hardware")
    parser.add_argument("--no-preview", action="store_true", help="Run headless without the preview window")
    parser.add_argument("--camera", type=int, default=None, help="Capture device index")
    parser.add_argument("--log-file", action="store_true", help="Also write a TRACE-level log file")
    parser.add_argument(
        "--log-level",
        choices=[level.name for level in LogLevels],
        default=LogLevels.INFO.name,
    )
    return parser.parse_args(argv)


def load_launch_config(args: argparse.Namespace) -> LaunchConfig:
    config_path = args.config
    if config_path is None:
        default_path = Path(get_default_launch_config_path())
        if default_path.exists():
            config_path = default_path
    config = LaunchConfig.from_json_file(config_path) if config_path is not None else LaunchConfig()

    if args.dry_run:
        config.dry_run = True
    if args.camera is not None:
        config.camera.device_index = args.camera
    return config


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(
        LogLevels[args.log_level],
        log_file_path=get_log_file_path() if args.log_file else None,
    )
    config = load_launch_config(args)

    actuator = DryRunActuator() if config.dry_run else ServoKitActuator.create(params=config.servo)
    source: CameraFrameSource | None = None
    window: PreviewWindow | None = None
    session: TrackingSession | None = None

    try:
        source = CameraFrameSource.create(params=config.camera)
        session = TrackingSession.create(config=config, actuator=actuator)
        if not args.no_preview:
            window = PreviewWindow.create(params=PreviewWindowParams(mirror_x=config.detector.mirror_x))
        run_tracking_loop(
            session=session,
            source=source,
            window=window,
            max_missed_frames=config.max_missed_frames,
        )
    finally:
        if session is not None:
            session.controller.reset()
        if window is not None:
            window.close()
        if source is not None:
            source.release()
        actuator.release()
        logger.success("Done! Spot tracker out")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        logger.exception(f"Unhandled exception: {e}")
        sys.exit(1)
    else:
        sys.exit(0)
