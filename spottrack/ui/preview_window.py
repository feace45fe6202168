import logging
import time

import cv2
import numpy as np
from pydantic import BaseModel, Field

from spottrack.core.base_abcs import ComponentParams
from spottrack.core.diagnostics.status_reporter import TrackingStatus
from spottrack.core.types import DetectionResult, Frame, KeyCommand, TrackingMode
from spottrack.core.vision.camera_source import frame_to_bgr

logger = logging.getLogger(__name__)

KEY_BINDINGS: dict[str, KeyCommand] = {
    "q": KeyCommand.QUIT,
    "m": KeyCommand.TOGGLE_MODE,
    "c": KeyCommand.RECENTER,
    "a": KeyCommand.JOG_LEFT,
    "d": KeyCommand.JOG_RIGHT,
    "w": KeyCommand.JOG_UP,
    "s": KeyCommand.JOG_DOWN,
}


def key_to_command(key: int) -> KeyCommand | None:
    """Translate a `cv2.waitKey` code into a command; unbound keys give None."""
    if key < 0:
        return None
    return KEY_BINDINGS.get(chr(key & 0xFF).lower())


class PreviewWindowParams(ComponentParams):
    """Parameters for PreviewWindow."""

    mirror_x: bool = Field(
        default=True,
        description="Flip the displayed image to match the detector's mirrored x coordinate",
    )
    window_name: str = Field(default="Spot Tracker")
    scale: float = Field(default=2.0, gt=0.0, le=8.0, description="Display magnification")


class PreviewWindow(BaseModel):
    """Shows the camera feed with the detected spot, dead zone and controller state."""

    params: PreviewWindowParams = Field(default_factory=PreviewWindowParams)

    # FPS tracking
    frame_count: int = Field(default=0, exclude=True)
    last_fps_time: float = Field(default_factory=time.time, exclude=True)
    fps: float = Field(default=0.0, exclude=True)

    @classmethod
    def create(cls, *, params: PreviewWindowParams | None = None) -> "PreviewWindow":
        params = params or PreviewWindowParams()
        logger.info(f"Starting preview [window='{params.window_name}'] - keys: m mode, wasd jog, c center, q quit")
        return cls(params=params)

    def draw(self, *, frame: Frame, result: DetectionResult, status: TrackingStatus) -> np.ndarray:
        """Draw tracking visualization on a BGR copy of the frame."""
        image = frame_to_bgr(frame)
        if self.params.mirror_x:
            image = cv2.flip(image, 1)
        h, w = image.shape[:2]
        center_x = w // 2
        center_y = h // 2

        # Center crosshair and dead zone
        cv2.line(image, (center_x, 0), (center_x, h), (255, 255, 255), 1)
        cv2.line(image, (0, center_y), (w, center_y), (255, 255, 255), 1)
        cv2.circle(image, (center_x, center_y), int(round(status.dead_zone)), (128, 128, 128), 1)

        if result.found:
            color = (0, 255, 0) if status.direction.is_centered else (0, 0, 255)
            cv2.circle(image, (result.x, result.y), 8, color, 2)
            cv2.line(image, (center_x, result.y), (result.x, result.y), (255, 255, 0), 1)
            cv2.line(image, (result.x, center_y), (result.x, result.y), (255, 255, 0), 1)

        if self.params.scale != 1.0:
            image = cv2.resize(
                image,
                (int(w * self.params.scale), int(h * self.params.scale)),
                interpolation=cv2.INTER_NEAREST,
            )

        mode_color = (0, 255, 0) if status.mode == TrackingMode.AUTO_TRACK else (0, 255, 255)
        lines = [
            (f"{status.mode.value.upper()} / {status.phase.value.upper()}", mode_color),
            (f"Pan: {status.pan_angle:.1f} deg  Tilt: {status.tilt_angle:.1f} deg", (255, 255, 255)),
            (f"Target: {status.direction.label}", (255, 255, 255)),
            (f"FPS: {self.fps:.1f}", (255, 255, 255)),
        ]
        for row, (text, text_color) in enumerate(lines):
            cv2.putText(image, text, (10, 25 + 22 * row), cv2.FONT_HERSHEY_SIMPLEX, 0.55, text_color, 1)

        return image

    def _update_fps(self) -> None:
        self.frame_count += 1
        elapsed = time.time() - self.last_fps_time
        if elapsed >= 1.0:
            self.fps = self.frame_count / elapsed
            self.frame_count = 0
            self.last_fps_time = time.time()

    def render(self, *, frame: Frame, result: DetectionResult, status: TrackingStatus) -> KeyCommand | None:
        image = self.draw(frame=frame, result=result, status=status)
        self._update_fps()
        cv2.imshow(self.params.window_name, image)
        command = key_to_command(cv2.waitKey(1))
        if command is not None:
            logger.debug(f"Key command: {command.value}")
        return command

    def close(self) -> None:
        cv2.destroyAllWindows()
        logger.info("Preview window closed")
