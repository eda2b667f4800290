"""Frame composition models."""

import math
from dataclasses import dataclass
from enum import StrEnum

from pet_wall.domain.errors import InvalidFrameOptions

MIN_ZOOM = 1.0
MAX_ZOOM = 2.5


class FitMode(StrEnum):
    """How the source is scaled into the frame."""

    CONTAIN = "contain"
    COVER = "cover"


@dataclass(frozen=True)
class FrameOptions:
    """Per-submission composition parameters."""

    output_width: int
    output_height: int
    fit_mode: FitMode = FitMode.CONTAIN
    zoom: float = 1.0
    offset_x: float = 50.0
    offset_y: float = 50.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "fit_mode", FitMode(self.fit_mode))
        except ValueError as exc:
            raise InvalidFrameOptions(f"unknown fit mode: {self.fit_mode}") from exc
        if self.output_width <= 0 or self.output_height <= 0:
            raise InvalidFrameOptions("output size must be positive")
        for name in ("zoom", "offset_x", "offset_y"):
            if not math.isfinite(getattr(self, name)):
                raise InvalidFrameOptions(f"{name} must be a finite number")


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in output pixel space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class FrameLayout:
    """Geometry of a composed frame."""

    width: int
    height: int
    foreground: Rect
    background: Rect | None

    def covers_frame(self) -> bool:
        """Return true when the foreground leaves no uncovered area."""
        fg = self.foreground
        return (
            fg.x <= 0
            and fg.y <= 0
            and fg.right >= self.width
            and fg.bottom >= self.height
        )


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value into the closed range [low, high]."""
    return min(high, max(low, value))
