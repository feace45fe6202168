from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

from spottrack.core.types import DetectionResult, Frame, KeyCommand

if TYPE_CHECKING:
    from spottrack.core.diagnostics.status_reporter import TrackingStatus


class ComponentParams(BaseModel):
    """Base class for all component parameters."""
    pass


@runtime_checkable
class ActuatorPort(Protocol):
    """Anything that can put one gimbal axis at an absolute angle.

    Calls are synchronous and idempotent: repeating the same angle on the same
    channel has no further physical effect.
    """

    def set_angle(self, channel: int, angle: float) -> None:
        """Command `channel` to `angle` degrees (0-180)."""
        ...


@runtime_checkable
class FrameSource(Protocol):
    """Anything that hands out decoded 5-6-5 frames, one per tick."""

    def read(self) -> Frame | None:
        """Return the next frame, or None if none is available this tick."""
        ...

    def release(self) -> None:
        ...


@runtime_checkable
class PreviewRenderer(Protocol):
    """Anything the run loop can show frames on and read operator keys from."""

    def render(self, *, frame: Frame, result: DetectionResult, status: "TrackingStatus") -> KeyCommand | None:
        """Draw one tick and return the operator's command, if any."""
        ...
