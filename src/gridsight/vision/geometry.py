"""Integer vectors, bounding boxes and slot arithmetic."""
from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from ..config.vision import SLOT_PIXEL_MARGIN


class IntVector(NamedTuple):
    """Immutable integer (x, y) pair; also used as a (width, height) size."""

    x: int
    y: int

    def __add__(self, other) -> "IntVector":  # type: ignore[override]
        return IntVector(self.x + other[0], self.y + other[1])

    def __sub__(self, other) -> "IntVector":
        return IntVector(self.x - other[0], self.y - other[1])

    def scaled(self, factor: float) -> "IntVector":
        return IntVector(int(self.x * factor), int(self.y * factor))

    def swapped(self) -> "IntVector":
        return IntVector(self.y, self.x)

    @property
    def area(self) -> int:
        return self.x * self.y


def pixels_to_slots(pixels: int, slot_size: float) -> int:
    """Number of slots spanned by an extent that includes one border line."""
    return int(round((pixels - SLOT_PIXEL_MARGIN) / slot_size))


def slot_size_of(size: Tuple[int, int], slot_size: float) -> IntVector:
    return IntVector(pixels_to_slots(size[0], slot_size), pixels_to_slots(size[1], slot_size))


def is_whole_slot_extent(pixels: int, slot_size: float, epsilon: float) -> bool:
    """True when pixels covers at least one slot and is integral within epsilon slots."""
    slots = (pixels - SLOT_PIXEL_MARGIN) / slot_size
    return round(slots) >= 1 and abs(slots - round(slots)) <= epsilon


@dataclass(frozen=True)
class BoundingBox:
    """Top-left position and inclusive pixel size of a grid cell."""

    position: IntVector
    size: IntVector

    @classmethod
    def from_corners(cls, top_left: IntVector, bottom_right: IntVector) -> "BoundingBox":
        return cls(top_left, IntVector(bottom_right.x - top_left.x + 1, bottom_right.y - top_left.y + 1))

    @classmethod
    def from_rect(cls, rect: Tuple[int, int, int, int]) -> "BoundingBox":
        x, y, w, h = rect
        return cls(IntVector(int(x), int(y)), IntVector(int(w), int(h)))

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.position.x + self.size.x

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.position.y + self.size.y

    @property
    def area(self) -> int:
        return self.size.area

    def as_rect(self) -> Tuple[int, int, int, int]:
        return self.position.x, self.position.y, self.size.x, self.size.y

    def overlap(self, other: "BoundingBox") -> IntVector:
        """Overlap extent along each axis (zero when disjoint on that axis)."""
        ox = min(self.right, other.right) - max(self.position.x, other.position.x)
        oy = min(self.bottom, other.bottom) - max(self.position.y, other.position.y)
        return IntVector(max(0, ox), max(0, oy))

    def intersects(self, other: "BoundingBox") -> bool:
        ov = self.overlap(other)
        return ov.x > 0 and ov.y > 0

    def union(self, other: "BoundingBox") -> "BoundingBox":
        x0 = min(self.position.x, other.position.x)
        y0 = min(self.position.y, other.position.y)
        x1 = max(self.right, other.right)
        y1 = max(self.bottom, other.bottom)
        return BoundingBox(IntVector(x0, y0), IntVector(x1 - x0, y1 - y0))

    def contains(self, point: Tuple[int, int], inclusive: bool = False) -> bool:
        """Point test; the far border line belongs to the neighbour unless inclusive."""
        far = 0 if inclusive else 1
        return (
            self.position.x <= point[0] < self.right - far
            and self.position.y <= point[1] < self.bottom - far
        )

    def padded(self, pad: int, bounds: Optional[Tuple[int, int]] = None) -> "BoundingBox":
        """Grow by pad pixels per side, clipped to (width, height) bounds."""
        x0, y0 = self.position.x - pad, self.position.y - pad
        x1, y1 = self.right + pad, self.bottom + pad
        if bounds is not None:
            x0, y0 = max(0, x0), max(0, y0)
            x1, y1 = min(bounds[0], x1), min(bounds[1], y1)
        return BoundingBox(IntVector(x0, y0), IntVector(max(0, x1 - x0), max(0, y1 - y0)))
