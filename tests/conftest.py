"""Shared fixtures and frame builders for the spottrack tests."""

import numpy as np
import pytest

from spottrack.core.types import Frame
from spottrack.core.vision.rgb565 import gray_to_rgb565

WIDTH = 320
HEIGHT = 240


class RecordingActuator:
    """ActuatorPort that remembers every command."""

    def __init__(self):
        self.commands: list[tuple[int, float]] = []

    def set_angle(self, channel: int, angle: float) -> None:
        self.commands.append((channel, angle))

    def angles_for(self, channel: int) -> list[float]:
        return [angle for ch, angle in self.commands if ch == channel]


def gray_frame(gray: np.ndarray) -> Frame:
    return Frame.from_pixels(gray_to_rgb565(gray))


def blank_gray(width: int = WIDTH, height: int = HEIGHT) -> np.ndarray:
    return np.zeros((height, width), dtype=np.uint8)


def block_frame(
    *,
    top: int,
    left: int,
    size: int = 10,
    level: int = 255,
    width: int = WIDTH,
    height: int = HEIGHT,
) -> Frame:
    """A dark frame with one square block of uniform gray."""
    gray = blank_gray(width, height)
    gray[top:top + size, left:left + size] = level
    return gray_frame(gray)


@pytest.fixture
def actuator():
    return RecordingActuator()


@pytest.fixture
def centered_spot():
    """10x10 saturated block whose mirrored centroid lands on (160, 119)."""
    return block_frame(top=115, left=155)
