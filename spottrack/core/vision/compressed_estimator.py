"""
Degraded spot estimate straight from a compressed (JPEG) byte stream.

This never decodes the image. Byte values stand in for brightness and byte
offsets are mapped proportionally onto the frame, so the estimate is coarse
and can be badly wrong on busy scenes. It only exists for links that cannot
deliver decoded frames; whenever a decoded 5-6-5 buffer is available use
SpotDetector.detect instead.
"""
from dataclasses import dataclass

JPEG_START_OF_IMAGE = b"\xff\xd8"
HEADER_SKIP_BYTES = 100
MIN_STREAM_BYTES = HEADER_SKIP_BYTES + 100
SAMPLE_STRIDE = 16
MAX_SAMPLES = 1000
BRIGHT_SAMPLE_LEVEL = 200
MIN_BRIGHT_SAMPLES = 10


@dataclass(frozen=True)
class CompressedSampleStats:
    """Result of one pass over a compressed stream."""
    sample_count: int
    bright_sample_count: int
    max_brightness: int
    max_x: int
    max_y: int
    estimated_x: int
    estimated_y: int


def is_valid_stream(data: bytes) -> bool:
    return len(data) >= MIN_STREAM_BYTES and data[:2] == JPEG_START_OF_IMAGE


def _is_marker(data: bytes, i: int) -> bool:
    # 0xFF00 is a stuffed data byte and 0xFFFF is fill, anything else is a marker
    return data[i] == 0xFF and data[i + 1] not in (0x00, 0xFF)


def sample_compressed_stream(data: bytes, *, width: int, height: int) -> CompressedSampleStats:
    """Walk the stream at a fixed stride and accumulate a brightness-weighted position."""
    length = len(data)
    sample_count = 0
    bright_sample_count = 0
    total_brightness = 0
    weighted_x = 0
    weighted_y = 0
    max_brightness = 0
    max_x = 0
    max_y = 0

    i = HEADER_SKIP_BYTES
    while i < length - 1 and sample_count < MAX_SAMPLES:
        if _is_marker(data, i):
            i += 1 + SAMPLE_STRIDE
            continue

        brightness = data[i]
        pos_x = (i * width) // length
        pos_y = (i * height) // length

        if brightness > max_brightness:
            max_brightness = brightness
            max_x = pos_x
            max_y = pos_y

        if brightness >= BRIGHT_SAMPLE_LEVEL:
            bright_sample_count += 1
            total_brightness += brightness
            weighted_x += pos_x * brightness
            weighted_y += pos_y * brightness

        sample_count += 1
        i += SAMPLE_STRIDE

    if total_brightness > 0:
        estimated_x = weighted_x // total_brightness
        estimated_y = weighted_y // total_brightness
    else:
        estimated_x = max_x
        estimated_y = max_y

    return CompressedSampleStats(
        sample_count=sample_count,
        bright_sample_count=bright_sample_count,
        max_brightness=max_brightness,
        max_x=max_x,
        max_y=max_y,
        estimated_x=min(estimated_x, width - 1),
        estimated_y=min(estimated_y, height - 1),
    )
