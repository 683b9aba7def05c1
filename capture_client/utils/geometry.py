"""
Selection geometry for the capture pipeline.

Display space is the on-screen size of the preview widget; source space
is the native resolution of the captured stream. Scale factors are
computed per axis because the two need not share an aspect ratio.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Bounds:
    """Bounding box of the preview container in viewport coordinates."""
    left: float
    top: float
    width: float
    height: float

    def to_local(self, point: Point) -> Point:
        """Convert a viewport point to container-local coordinates, clamped to the box."""
        return Point(
            x=clamp(point.x - self.left, 0, self.width),
            y=clamp(point.y - self.top, 0, self.height),
        )


@dataclass(frozen=True)
class SelectionRect:
    """Axis-aligned rectangle in display-space pixels."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> "SelectionRect":
        """Normalise two opposite corners into an origin and a non-negative extent."""
        return cls(
            x=min(a.x, b.x),
            y=min(a.y, b.y),
            width=abs(b.x - a.x),
            height=abs(b.y - a.y),
        )

    def is_degenerate(self, min_size: float) -> bool:
        """True when either side is at or below min_size."""
        return self.width <= min_size or self.height <= min_size


@dataclass(frozen=True)
class SourceRegion:
    """Integer pixel region in source space."""
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as used by PIL's Image.crop."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def scale_factors(
    native_size: Tuple[int, int],
    display_size: Tuple[float, float],
) -> Tuple[float, float]:
    """Return (sx, sy) = native / display for each axis.

    The display size must be non-zero; callers only capture once the
    preview has rendered a frame.
    """
    native_w, native_h = native_size
    display_w, display_h = display_size
    return native_w / display_w, native_h / display_h


def to_source_region(
    selection: Optional[SelectionRect],
    native_size: Tuple[int, int],
    display_size: Tuple[float, float],
) -> SourceRegion:
    """Map a display-space selection to the source region to read.

    Origin and extent are each scaled and truncated the same way, so the
    output keeps the selection's aspect ratio. Without a selection the
    whole native frame is returned.
    """
    native_w, native_h = native_size
    if selection is None:
        return SourceRegion(0, 0, native_w, native_h)

    sx, sy = scale_factors(native_size, display_size)
    return SourceRegion(
        x=int(selection.x * sx),
        y=int(selection.y * sy),
        width=int(selection.width * sx),
        height=int(selection.height * sy),
    )
