from enum import Enum

from pydantic import BaseModel, ConfigDict

DEFAULT_CENTER_MARGIN_PX = 20
COMMAND_EPSILON_DEG = 1e-3


class HorizontalDirection(str, Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"


class VerticalDirection(str, Enum):
    TOP = "TOP"
    CENTER = "CENTER"
    BOTTOM = "BOTTOM"


class DirectionReading(BaseModel):
    """Where a target sits relative to the image center. Diagnostic only, never fed back into control."""
    horizontal: HorizontalDirection
    vertical: VerticalDirection

    model_config = ConfigDict(frozen=True)

    @property
    def is_centered(self) -> bool:
        return self.horizontal == HorizontalDirection.CENTER and self.vertical == VerticalDirection.CENTER

    @property
    def label(self) -> str:
        return f"{self.horizontal.value}|{self.vertical.value}"


def classify_direction(
    x: float,
    y: float,
    *,
    width: int,
    height: int,
    margin: int = DEFAULT_CENTER_MARGIN_PX,
) -> DirectionReading:
    """Bucket a pixel coordinate into LEFT/CENTER/RIGHT and TOP/CENTER/BOTTOM."""
    center_x = width / 2.0
    center_y = height / 2.0

    if x + margin < center_x:
        horizontal = HorizontalDirection.LEFT
    elif x > center_x + margin:
        horizontal = HorizontalDirection.RIGHT
    else:
        horizontal = HorizontalDirection.CENTER

    if y + margin < center_y:
        vertical = VerticalDirection.TOP
    elif y > center_y + margin:
        vertical = VerticalDirection.BOTTOM
    else:
        vertical = VerticalDirection.CENTER

    return DirectionReading(horizontal=horizontal, vertical=vertical)


def command_direction(*, old: float, new: float, increasing: str, decreasing: str) -> str:
    """Name the direction of a commanded angle change, or HOLD."""
    if new > old + COMMAND_EPSILON_DEG:
        return increasing
    if new + COMMAND_EPSILON_DEG < old:
        return decreasing
    return "HOLD"
