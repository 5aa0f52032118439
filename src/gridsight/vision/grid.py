"""
Inventory grid mask extraction.

Normal mode isolates the thin grid lines drawn between inventory slots:

1. HSV colour-band threshold of the grid line colour.
2. Morphological opening with slot-long vertical and horizontal line
   kernels, which keeps straight runs and drops icon art of similar colour.
3. Each line mask is dilated along its own axis with a two-slot kernel and
   intersected with the slightly thickened raw mask; this bridges jagged or
   interrupted segments without inventing lines where the raw mask is empty.
4. Corners (pixels on both a vertical and a horizontal line) are XOR'd out,
   the remaining segments are opened again, and verticals, horizontals and
   corners are OR'd back together. Stubs that poke past a corner into an
   item do not survive the second opening.
5. A 2x2 closing fills single-pixel gaps.

The seed mask returned with it holds the vertical lines including their
corners; every seed is a candidate left edge for the boundary trace.

Highlighted mode thresholds the highlight colour instead and returns its
blobs; no lines are extracted.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import cv2
import numpy as np

from ..config.vision import (
    BRIDGE_KERNEL_FACTOR,
    HIGHLIGHT_DILATE_PX,
    LINE_KERNEL_FACTOR,
)
from ..core.logging_setup import save_debug_image
from ..core.settings import Config
from .preprocess import hsv_band, line_kernel, open_lines

logger = logging.getLogger(__name__)

_CROSS3 = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))
_SQUARE2 = np.ones((2, 2), np.uint8)


@dataclass(frozen=True)
class GridMask:
    grid: np.ndarray
    seeds: np.ndarray
    highlighted: bool = False

    @property
    def shape(self):
        return self.grid.shape[:2]


class GridDetector:
    def __init__(self, config: Config):
        self.config = config
        slot = config.scaled_slot_size
        self._v_line = line_kernel(slot * LINE_KERNEL_FACTOR, vertical=True)
        self._h_line = line_kernel(slot * LINE_KERNEL_FACTOR, vertical=False)
        self._v_bridge = line_kernel(slot * BRIDGE_KERNEL_FACTOR, vertical=True)
        self._h_bridge = line_kernel(slot * BRIDGE_KERNEL_FACTOR, vertical=False)

    def detect(self, image: np.ndarray) -> GridMask:
        if self.config.inventory.optimize_highlighted:
            mask = self.highlight_mask(image)
        else:
            mask = self.outline_mask(image)
        if self.config.log_debug:
            save_debug_image(self.config, "grid_mask", mask.grid)
        return mask

    def outline_mask(self, image: np.ndarray) -> GridMask:
        inv = self.config.inventory
        raw = hsv_band(image, inv.grid_color_min, inv.grid_color_max)

        vertical = open_lines(raw, self._v_line)
        horizontal = open_lines(raw, self._h_line)

        thick = cv2.dilate(raw, _CROSS3)
        vertical = cv2.bitwise_and(cv2.dilate(vertical, self._v_bridge), thick)
        horizontal = cv2.bitwise_and(cv2.dilate(horizontal, self._h_bridge), thick)

        corners = cv2.bitwise_and(vertical, horizontal)
        vertical = open_lines(cv2.bitwise_xor(vertical, corners), self._v_line)
        horizontal = open_lines(cv2.bitwise_xor(horizontal, corners), self._h_line)

        grid = cv2.bitwise_or(cv2.bitwise_or(vertical, horizontal), corners)
        # Closing with a 2x2 square; the erode anchor mirrors the dilate anchor so
        # lines stay in place (MORPH_CLOSE would move them by a pixel)
        grid = cv2.erode(cv2.dilate(grid, _SQUARE2), _SQUARE2, anchor=(0, 0))
        seeds = cv2.bitwise_and(cv2.bitwise_or(vertical, corners), grid)
        logger.debug(
            "Grid mask: %d line pixels, %d seed pixels", int(np.count_nonzero(grid)), int(np.count_nonzero(seeds))
        )
        return GridMask(grid, seeds, highlighted=False)

    def highlight_mask(self, image: np.ndarray) -> GridMask:
        inv = self.config.inventory
        raw = hsv_band(image, inv.highlight_color_min, inv.highlight_color_max)
        kernel = np.ones((HIGHLIGHT_DILATE_PX, HIGHLIGHT_DILATE_PX), np.uint8)
        grid = cv2.dilate(raw, kernel)
        return GridMask(grid, np.zeros_like(grid), highlighted=True)
