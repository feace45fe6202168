import logging

import cv2
import numpy as np
from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from spottrack.core.base_abcs import ComponentParams
from spottrack.core.types import Frame

logger = logging.getLogger(__name__)


class CameraUnavailableError(RuntimeError):
    """Raised when the capture device cannot be opened or stops delivering frames."""


class CameraSourceParams(ComponentParams):
    """Parameters for CameraFrameSource."""

    device_index: int = Field(default=0, ge=0)
    width: int = Field(default=320, ge=16, le=1920)
    height: int = Field(default=240, ge=16, le=1080)


def bgr_to_frame(bgr: np.ndarray) -> Frame:
    """Pack an OpenCV BGR image into a 5-6-5 Frame."""
    height, width = bgr.shape[:2]
    packed = cv2.cvtColor(bgr, cv2.COLOR_BGR2BGR565)  # (h, w, 2) uint8, little-endian pixels
    pixels = np.ascontiguousarray(packed).view("<u2").reshape(height, width).astype(np.uint16, copy=False)
    return Frame(width=width, height=height, pixels=pixels)


def frame_to_bgr(frame: Frame) -> np.ndarray:
    """Unpack a 5-6-5 Frame into an OpenCV BGR image for display."""
    packed = np.ascontiguousarray(frame.pixels.astype("<u2")).view(np.uint8).reshape(frame.height, frame.width, 2)
    return cv2.cvtColor(packed, cv2.COLOR_BGR5652BGR)


class CameraFrameSource(BaseModel):
    """Grabs frames from an OpenCV capture device and hands them out as packed 5-6-5."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    params: CameraSourceParams = Field(default_factory=CameraSourceParams)
    capture: SkipValidation[cv2.VideoCapture] = Field(default=None, exclude=True)

    @classmethod
    def create(cls, *, params: CameraSourceParams | None = None) -> "CameraFrameSource":
        """Factory method: opens the capture device."""
        params = params or CameraSourceParams()
        capture = cv2.VideoCapture(params.device_index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(f"Could not open camera device {params.device_index}")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, params.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, params.height)
        logger.info(
            f"Camera {params.device_index} open "
            f"[{int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}, "
            f"frames resized to {params.width}x{params.height}]"
        )
        return cls(params=params, capture=capture)

    def read(self) -> Frame | None:
        ok, bgr = self.capture.read()
        if not ok or bgr is None:
            return None
        if bgr.shape[1] != self.params.width or bgr.shape[0] != self.params.height:
            bgr = cv2.resize(bgr, (self.params.width, self.params.height), interpolation=cv2.INTER_AREA)
        return bgr_to_frame(bgr)

    def release(self) -> None:
        if self.capture is not None:
            self.capture.release()
            logger.info("Camera released")
