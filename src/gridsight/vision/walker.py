"""
Boundary tracing over a grid mask.

Starting from a seed pixel on a vertical line, the walker follows the cell
outline south, east, north and west, then south again back to the seed. Each
walk takes a step and then probes the pixel one step in the next direction;
a set probe pixel is the corner where the walk turns. Leaving the mask or
the image ends the trace without a result.

Accepted cells are deduplicated by their top-left corner, and where two
cells overlap by more than half a slot in both axes the larger one (which
spans a missing line) is dropped.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging
import cv2
import numpy as np

from ..config.vision import GRID_SLOT_EPSILON, HIGHLIGHT_MIN_SLOT_FRACTION
from ..core.errors import InconsistentTraceError
from .geometry import BoundingBox, IntVector, is_whole_slot_extent
from .grid import GridMask

logger = logging.getLogger(__name__)


class Direction(Enum):
    NORTH = (0, -1)
    EAST = (1, 0)
    SOUTH = (0, 1)
    WEST = (-1, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]


# (walking direction, probe direction) for each side of the outline
_OUTLINE: Tuple[Tuple[Direction, Direction], ...] = (
    (Direction.SOUTH, Direction.EAST),
    (Direction.EAST, Direction.NORTH),
    (Direction.NORTH, Direction.WEST),
    (Direction.WEST, Direction.SOUTH),
)


class GridWalker:
    def __init__(self, slot_size: float, epsilon: float = GRID_SLOT_EPSILON):
        self.slot_size = float(slot_size)
        self.epsilon = epsilon

    def walk(self, mask: GridMask) -> List[BoundingBox]:
        """All cells found on the mask, in discovery order."""
        if mask.highlighted:
            return self.merge_blobs(mask.grid)
        return self.resolve_overlaps(self.scan(mask))

    # ----- outline mode -----

    def scan(self, mask: GridMask) -> List[BoundingBox]:
        grid = mask.grid
        h = grid.shape[0]
        step = max(1, int(round(self.slot_size)))
        seen: Dict[IntVector, BoundingBox] = {}
        traces = 0
        for y in range(0, h, step):
            for x in np.flatnonzero(mask.seeds[y]):
                traces += 1
                try:
                    box = self.trace(grid, int(x), y)
                except InconsistentTraceError as e:
                    logger.debug("%s", e)
                    continue
                if box is None or box.position in seen:
                    continue
                seen[box.position] = box
        logger.debug("Grid scan: %d trace(s), %d cell(s)", traces, len(seen))
        return list(seen.values())

    def trace(self, grid: np.ndarray, x: int, y: int) -> Optional[BoundingBox]:
        """Trace the cell whose left edge holds (x, y); None when there is none."""
        seed = IntVector(x, y)
        h, w = grid.shape[:2]
        if not (0 <= x < w and 0 <= y < h) or not grid[y, x]:
            return None

        corners: List[IntVector] = []
        pos = seed
        for walking, probe in _OUTLINE:
            pos = self._walk(grid, pos, walking, probe)
            if pos is None:
                return None
            corners.append(pos)
        bottom_left, bottom_right, top_right, top_left = corners

        if not self._walk_back(grid, top_left, seed):
            return None

        widths = (bottom_right.x - bottom_left.x, top_right.x - top_left.x)
        heights = (bottom_left.y - top_left.y, bottom_right.y - top_right.y)
        if widths[0] != widths[1] or heights[0] != heights[1]:
            raise InconsistentTraceError(seed, widths, heights)
        if widths[0] <= 1 or heights[0] <= 1:
            return None

        box = BoundingBox.from_corners(top_left, bottom_right)
        if not (
            is_whole_slot_extent(box.size.x, self.slot_size, self.epsilon)
            and is_whole_slot_extent(box.size.y, self.slot_size, self.epsilon)
        ):
            return None
        return box

    @staticmethod
    def _walk(grid: np.ndarray, start: IntVector, walking: Direction, probe: Direction) -> Optional[IntVector]:
        h, w = grid.shape[:2]
        x, y = start
        while True:
            x += walking.dx
            y += walking.dy
            if not (0 <= x < w and 0 <= y < h) or not grid[y, x]:
                return None
            px, py = x + probe.dx, y + probe.dy
            if 0 <= px < w and 0 <= py < h and grid[py, px]:
                return IntVector(x, y)

    @staticmethod
    def _walk_back(grid: np.ndarray, top_left: IntVector, seed: IntVector) -> bool:
        if top_left.x != seed.x or top_left.y > seed.y:
            return False
        x = top_left.x
        for y in range(top_left.y + 1, seed.y + 1):
            if not grid[y, x]:
                return False
        return True

    def resolve_overlaps(self, boxes: List[BoundingBox]) -> List[BoundingBox]:
        """Drop the larger box of every pair overlapping by more than half a slot in both axes."""
        half = self.slot_size / 2.0
        dropped = set()
        for i, a in enumerate(boxes):
            if i in dropped:
                continue
            for j in range(i + 1, len(boxes)):
                if j in dropped:
                    continue
                b = boxes[j]
                ov = a.overlap(b)
                if ov.x > half and ov.y > half:
                    loser = i if a.area > b.area else j
                    dropped.add(loser)
                    logger.debug("Overlapping cells %s and %s; dropping %s", a.as_rect(), b.as_rect(), boxes[loser].as_rect())
                    if loser == i:
                        break
        return [box for k, box in enumerate(boxes) if k not in dropped]

    # ----- highlighted mode -----

    def merge_blobs(self, mask: np.ndarray) -> List[BoundingBox]:
        """Bounding boxes of highlight blobs, merged until none intersect."""
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        boxes = [BoundingBox.from_rect(cv2.boundingRect(c)) for c in contours]
        merged = True
        while merged:
            merged = False
            for i in range(len(boxes)):
                for j in range(i + 1, len(boxes)):
                    if boxes[i].intersects(boxes[j]):
                        boxes[i] = boxes[i].union(boxes[j])
                        del boxes[j]
                        merged = True
                        break
                if merged:
                    break
        min_px = self.slot_size * HIGHLIGHT_MIN_SLOT_FRACTION
        kept = [b for b in boxes if b.size.x >= min_px and b.size.y >= min_px]
        kept.sort(key=lambda b: (b.position.y, b.position.x))
        logger.debug("Highlight blobs: %d contour(s), %d cell(s)", len(contours), len(kept))
        return kept
