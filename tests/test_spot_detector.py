"""Tests for the bright-spot detector."""

import numpy as np
import pytest

from conftest import HEIGHT, WIDTH, blank_gray, block_frame, gray_frame
from spottrack.core.types import DetectionFailure
from spottrack.core.vision.compressed_estimator import (
    HEADER_SKIP_BYTES,
    is_valid_stream,
    sample_compressed_stream,
)
from spottrack.core.vision.spot_detector import SpotDetector, SpotDetectorParams


def edge_strip_frame(column: int):
    """A 1-px-wide bright strip in `column` with a single saturated pixel at row 120."""
    gray = blank_gray()
    gray[60:180, column] = 247
    gray[120, column] = 255
    return gray_frame(gray)


@pytest.fixture
def detector():
    return SpotDetector.create()


# =============================================================================
# Decoded frames
# =============================================================================

class TestDetect:

    def test_finds_synthetic_block(self, detector, centered_spot):
        result = None
        for _ in range(10):
            result = detector.detect(centered_spot)
        assert result.found
        assert abs(result.x - 160) <= 1
        assert abs(result.y - 119) <= 1
        assert result.confidence == 100
        assert result.frame_width == WIDTH
        assert result.frame_height == HEIGHT
        assert result.failure is None

    def test_dark_frame_is_below_threshold(self, detector):
        result = detector.detect(gray_frame(blank_gray()))
        assert not result.found
        assert result.failure == DetectionFailure.BELOW_THRESHOLD
        assert detector.stats.below_threshold == 1

    def test_small_spot_is_too_few_pixels(self, detector):
        result = detector.detect(block_frame(top=100, left=100, size=3))
        assert not result.found
        assert result.failure == DetectionFailure.TOO_FEW_PIXELS
        assert detector.stats.too_few_pixels == 1

    def test_dim_spot_is_weak_signal(self, detector):
        # 36 pixels of luma 124 clear the pixel count but not the weight floor
        detector.set_brightness_threshold(100)
        result = detector.detect(block_frame(top=100, left=100, size=6, level=127))
        assert not result.found
        assert result.failure == DetectionFailure.WEAK_SIGNAL
        assert detector.stats.weak_signal == 1

    def test_spot_at_left_edge_is_reported_at_right_edge(self, detector):
        result = detector.detect(edge_strip_frame(0))
        assert result.found
        assert result.x == WIDTH - 1

    def test_spot_at_right_edge_is_reported_at_left_edge(self, detector):
        result = detector.detect(edge_strip_frame(WIDTH - 1))
        assert result.found
        assert result.x == 0

    def test_mirroring_can_be_disabled(self):
        detector = SpotDetector.create(params=SpotDetectorParams(mirror_x=False))
        result = detector.detect(edge_strip_frame(0))
        assert result.found
        assert result.x == 0

    def test_brightest_block_wins(self, detector):
        gray = blank_gray()
        gray[20:30, 20:30] = 247
        gray[200:210, 280:290] = 255
        result = detector.detect(gray_frame(gray))
        assert result.found
        # centroid x = 284, mirrored
        assert result.x == WIDTH - 1 - 284
        assert result.y == 204

    def test_detected_coordinates_stay_inside_frame(self, detector):
        for top, left in [(0, 0), (0, WIDTH - 10), (HEIGHT - 10, 0), (HEIGHT - 10, WIDTH - 10)]:
            detector.reset()
            result = detector.detect(block_frame(top=top, left=left))
            assert result.found
            assert 0 <= result.x < WIDTH
            assert 0 <= result.y < HEIGHT


class TestTemporalFilter:

    def test_fast_lock_then_smoothing(self, detector, centered_spot):
        for _ in range(10):
            result = detector.detect(centered_spot)
            assert (result.x, result.y) == (160, 119)

        # block moved 40 px to the right -> raw mirrored x = 120
        moved = block_frame(top=115, left=195)
        result = detector.detect(moved)
        assert result.x == 130  # 0.25 * 160 + 0.75 * 120
        assert result.y == 119

    def test_fast_lock_frames_follow_target_immediately(self, detector, centered_spot):
        detector.detect(centered_spot)
        result = detector.detect(block_frame(top=115, left=195))
        assert result.x == 120

    def test_miss_keeps_filter_state(self, detector, centered_spot):
        detector.detect(centered_spot)
        detector.detect(gray_frame(blank_gray()))
        assert detector.state.last_x == 160
        assert detector.state.lost_count == 1

    def test_hit_resets_lost_count(self, detector, centered_spot):
        detector.detect(gray_frame(blank_gray()))
        detector.detect(gray_frame(blank_gray()))
        detector.detect(centered_spot)
        assert detector.state.lost_count == 0

    def test_reset_restarts_fast_lock(self, detector, centered_spot):
        for _ in range(12):
            detector.detect(centered_spot)
        detector.reset()
        assert detector.state.last_x is None
        assert detector.state.init_frames == 0
        result = detector.detect(block_frame(top=115, left=195))
        assert result.x == 120


class TestParams:

    @pytest.mark.parametrize("requested,expected", [(-5, 0), (0, 0), (128, 128), (255, 255), (999, 255)])
    def test_threshold_is_clamped(self, detector, requested, expected):
        detector.set_brightness_threshold(requested)
        assert detector.params.brightness_threshold == expected

    def test_threshold_clamped_at_construction(self):
        assert SpotDetectorParams(brightness_threshold=300).brightness_threshold == 255

    def test_lower_threshold_finds_dimmer_spot(self, detector):
        dim = block_frame(top=100, left=100, size=12, level=200)
        assert not detector.detect(dim).found
        detector.set_brightness_threshold(150)
        assert detector.detect(dim).found


# =============================================================================
# Compressed stream fallback
# =============================================================================

def jpeg_like(length: int = 2000, bright_range: tuple[int, int] | None = None) -> bytes:
    data = bytearray([0x10] * length)
    data[0:2] = b"\xff\xd8"
    if bright_range is not None:
        start, stop = bright_range
        data[start:stop] = bytes([0xF0] * (stop - start))
    return bytes(data)


class TestCompressedStream:

    def test_stream_validity(self):
        assert is_valid_stream(jpeg_like())
        assert not is_valid_stream(b"\xff\xd8" + bytes(100))
        assert not is_valid_stream(b"\x00\x00" + bytes(500))

    def test_invalid_stream_is_reported(self, detector):
        result = detector.detect_compressed(b"not a jpeg" * 50, width=WIDTH, height=HEIGHT)
        assert not result.found
        assert result.failure == DetectionFailure.INVALID_STREAM
        assert detector.stats.invalid_stream == 1
        assert detector.state.lost_count == 0

    def test_invalid_stream_keeps_lost_count(self, detector):
        detector.detect_compressed(jpeg_like(), width=WIDTH, height=HEIGHT)
        assert detector.state.lost_count == 1
        detector.detect_compressed(b"\xff\xd8" + bytes(50), width=WIDTH, height=HEIGHT)
        assert detector.state.lost_count == 1
        assert detector.stats.invalid_stream == 1

    def test_dark_stream_is_below_threshold(self, detector):
        result = detector.detect_compressed(jpeg_like(), width=WIDTH, height=HEIGHT)
        assert not result.found
        assert result.failure == DetectionFailure.BELOW_THRESHOLD

    def test_bright_region_is_located_proportionally(self, detector):
        data = jpeg_like(2000, bright_range=(1000, 1400))
        result = detector.detect_compressed(data, width=WIDTH, height=HEIGHT)
        assert result.found
        assert result.confidence >= 10
        # bright bytes sit between 50% and 70% of the stream
        assert WIDTH * 0.5 <= result.x <= WIDTH * 0.7
        assert HEIGHT * 0.5 <= result.y <= HEIGHT * 0.7

    def test_sampling_skips_header_and_uses_stride(self):
        stats = sample_compressed_stream(jpeg_like(2000), width=WIDTH, height=HEIGHT)
        assert stats.sample_count == len(range(HEADER_SKIP_BYTES, 1999, 16))
        assert stats.bright_sample_count == 0

    def test_estimate_is_clamped_to_frame(self):
        data = jpeg_like(2000, bright_range=(1800, 2000))
        stats = sample_compressed_stream(data, width=WIDTH, height=HEIGHT)
        assert stats.estimated_x <= WIDTH - 1
        assert stats.estimated_y <= HEIGHT - 1
