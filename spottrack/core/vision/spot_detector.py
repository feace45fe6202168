import logging

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from spottrack.core.base_abcs import ComponentParams
from spottrack.core.types import DetectionFailure, DetectionResult, Frame
from spottrack.core.vision.compressed_estimator import (
    MIN_BRIGHT_SAMPLES,
    is_valid_stream,
    sample_compressed_stream,
)
from spottrack.core.vision.rgb565 import rgb565_to_luma

logger = logging.getLogger(__name__)

# Per-frame diagnostics are logged for this many frames after a reset
DIAGNOSTIC_FRAMES = 3


class SpotDetectorParams(ComponentParams):
    """Parameters for SpotDetector."""

    model_config = ConfigDict(validate_assignment=True)

    brightness_threshold: int = Field(
        default=240,
        description="Minimum peak luma (0-255) for a frame to contain a spot. Clamped, never rejected.",
    )
    window_size: int = Field(
        default=30,
        ge=2,
        description="Side of the square window around the brightest pixel used for the centroid",
    )
    core_ratio_percent: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Core threshold as a percentage of the frame's peak luma",
    )
    min_pixel_count: int = Field(default=30, ge=1, description="Minimum qualifying core pixels")
    min_total_weight: int = Field(
        default=1_000_000,
        ge=0,
        description="Minimum sum of luma^2 over qualifying pixels",
    )
    fast_lock_frames: int = Field(
        default=10,
        ge=0,
        description="Detections after a reset that bypass the temporal filter",
    )
    filter_alpha: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Weight of the new centroid in the position filter (higher = snappier)",
    )
    compressed_filter_alpha: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Position filter weight used by the compressed-stream fallback",
    )
    mirror_x: bool = Field(
        default=True,
        description="Flip x (width-1-x) to undo the sensor's mirrored optical path",
    )

    @field_validator("brightness_threshold", mode="before")
    @classmethod
    def clamp_brightness_threshold(cls, v: int) -> int:
        return int(min(max(v, 0), 255))


class DetectorState(BaseModel):
    """Filter and bookkeeping state. Mutated only by detect/detect_compressed/reset."""
    last_x: float | None = None
    last_y: float | None = None
    init_frames: int = 0
    lost_count: int = 0
    frame_count: int = 0


class DetectorStats(BaseModel):
    """Running counters per outcome, kept separate for diagnostics."""
    detections: int = 0
    below_threshold: int = 0
    too_few_pixels: int = 0
    weak_signal: int = 0
    invalid_stream: int = 0

    def count_failure(self, failure: DetectionFailure) -> None:
        name = failure.value
        setattr(self, name, getattr(self, name) + 1)


class SpotDetector(BaseModel):
    """Finds the saturated core of the brightest light source in a frame."""

    params: SpotDetectorParams = Field(default_factory=SpotDetectorParams)
    state: DetectorState = Field(default_factory=DetectorState)
    stats: DetectorStats = Field(default_factory=DetectorStats)
    compressed_warning_logged: bool = Field(default=False, exclude=True)

    @classmethod
    def create(cls, *, params: SpotDetectorParams | None = None) -> "SpotDetector":
        """Factory method to create a SpotDetector with fresh state."""
        detector = cls(params=params or SpotDetectorParams())
        logger.info(
            f"Created SpotDetector [threshold={detector.params.brightness_threshold}, "
            f"window={detector.params.window_size}px, alpha={detector.params.filter_alpha}]"
        )
        return detector

    def reset(self) -> None:
        """Forget the filtered position and restart the fast-lock warm-up."""
        self.state = DetectorState()
        logger.debug("SpotDetector state reset")

    def set_brightness_threshold(self, threshold: int) -> None:
        self.params.brightness_threshold = threshold
        logger.info(f"Brightness threshold set to {self.params.brightness_threshold}")

    def detect(self, frame: Frame) -> DetectionResult:
        """Locate the spot in a decoded 5-6-5 frame."""
        luma = rgb565_to_luma(frame.pixels)
        verbose = self.state.frame_count < DIAGNOSTIC_FRAMES
        self.state.frame_count += 1

        # Global scan: first occurrence of the peak in row-major order
        peak_index = int(np.argmax(luma))
        max_y, max_x = divmod(peak_index, frame.width)
        peak = int(luma[max_y, max_x])
        threshold = self.params.brightness_threshold

        if verbose:
            logger.debug(
                f"Frame #{self.state.frame_count - 1} {frame.width}x{frame.height}: "
                f"peak luma {peak} at ({max_x},{max_y}), threshold {threshold}"
            )

        if peak < threshold:
            return self._miss(DetectionFailure.BELOW_THRESHOLD, frame=frame, verbose=verbose)

        # Local window around the peak, clipped to the frame
        half = self.params.window_size // 2
        x0 = max(max_x - half, 0)
        x1 = min(max_x + half, frame.width)
        y0 = max(max_y - half, 0)
        y1 = min(max_y + half, frame.height)
        window = luma[y0:y1, x0:x1].astype(np.int64)

        core_threshold = max(peak * self.params.core_ratio_percent // 100, threshold)
        core_mask = window >= core_threshold
        pixel_count = int(np.count_nonzero(core_mask))

        weights = np.where(core_mask, window * window, 0)
        total_weight = int(weights.sum())

        if pixel_count < self.params.min_pixel_count or total_weight == 0:
            return self._miss(DetectionFailure.TOO_FEW_PIXELS, frame=frame, verbose=verbose)
        if total_weight < self.params.min_total_weight:
            return self._miss(DetectionFailure.WEAK_SIGNAL, frame=frame, verbose=verbose)

        ys, xs = np.mgrid[y0:y1, x0:x1]
        centroid_x = int((xs * weights).sum()) // total_weight
        centroid_y = int((ys * weights).sum()) // total_weight
        if self.params.mirror_x:
            centroid_x = frame.width - 1 - centroid_x

        filtered_x, filtered_y = self._filter(
            centroid_x=centroid_x, centroid_y=centroid_y, alpha=self.params.filter_alpha
        )

        if verbose:
            logger.debug(
                f"Spot found: centroid=({centroid_x},{centroid_y}) filtered=({filtered_x},{filtered_y}) "
                f"pixels={pixel_count} core_threshold={core_threshold}"
            )

        return self._hit(x=filtered_x, y=filtered_y, confidence=pixel_count, width=frame.width, height=frame.height)

    def detect_compressed(self, data: bytes, *, width: int, height: int) -> DetectionResult:
        """
        Coarse fallback for undecoded JPEG streams.

        Lower fidelity than detect(): byte values are used as brightness and
        offsets as position. Only use this when no decoded buffer exists.
        """
        if not self.compressed_warning_logged:
            logger.warning(
                "Using compressed-stream spot estimate - positions are approximate, "
                "prefer decoded frames when available"
            )
            self.compressed_warning_logged = True

        verbose = self.state.frame_count < DIAGNOSTIC_FRAMES
        self.state.frame_count += 1

        if not is_valid_stream(data):
            # an unusable stream says nothing about the target, so lost_count is left alone
            return self._miss(
                DetectionFailure.INVALID_STREAM, width=width, height=height, verbose=verbose, count_lost=False
            )

        sampled = sample_compressed_stream(data, width=width, height=height)
        if verbose:
            logger.debug(
                f"Compressed stream {len(data)} bytes: samples={sampled.sample_count} "
                f"bright={sampled.bright_sample_count} max={sampled.max_brightness} "
                f"at ~({sampled.max_x},{sampled.max_y})"
            )

        if (
            sampled.max_brightness < self.params.brightness_threshold
            or sampled.bright_sample_count < MIN_BRIGHT_SAMPLES
        ):
            return self._miss(DetectionFailure.BELOW_THRESHOLD, width=width, height=height, verbose=verbose)

        filtered_x, filtered_y = self._filter(
            centroid_x=sampled.estimated_x,
            centroid_y=sampled.estimated_y,
            alpha=self.params.compressed_filter_alpha,
        )
        return self._hit(
            x=filtered_x,
            y=filtered_y,
            confidence=sampled.bright_sample_count,
            width=width,
            height=height,
        )

    def _filter(self, *, centroid_x: int, centroid_y: int, alpha: float) -> tuple[int, int]:
        """Fast lock for the first detections after reset, then a one-pole filter."""
        state = self.state
        if state.init_frames < self.params.fast_lock_frames or state.last_x is None or state.last_y is None:
            state.last_x = float(centroid_x)
            state.last_y = float(centroid_y)
            state.init_frames = min(state.init_frames + 1, self.params.fast_lock_frames)
        else:
            state.last_x = state.last_x * (1.0 - alpha) + centroid_x * alpha
            state.last_y = state.last_y * (1.0 - alpha) + centroid_y * alpha
        return int(state.last_x), int(state.last_y)

    def _hit(self, *, x: int, y: int, confidence: int, width: int, height: int) -> DetectionResult:
        self.state.lost_count = 0
        self.stats.detections += 1
        return DetectionResult(
            found=True,
            x=x,
            y=y,
            confidence=confidence,
            frame_width=width,
            frame_height=height,
        )

    def _miss(
        self,
        failure: DetectionFailure,
        *,
        frame: Frame | None = None,
        width: int = 0,
        height: int = 0,
        verbose: bool = False,
        count_lost: bool = True,
    ) -> DetectionResult:
        if frame is not None:
            width, height = frame.width, frame.height
        if count_lost:
            self.state.lost_count += 1
        self.stats.count_failure(failure)
        if verbose:
            logger.debug(f"No spot: {failure.value} (lost {self.state.lost_count})")
        else:
            logger.trace(f"No spot: {failure.value} (lost {self.state.lost_count})")
        return DetectionResult.miss(failure=failure, frame_width=width, frame_height=height)
