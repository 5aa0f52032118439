"""
Vision configuration knobs centralization.

All tolerances, kernel factors and reference sizes live here. Detectors,
the walker and the matcher import from this module instead of hardcoding
values.
"""
from __future__ import annotations

from typing import Tuple
import os

# Reference frame: icons and slots are measured at 1920x1080
REFERENCE_RESOLUTION: Tuple[int, int] = (1920, 1080)
BASE_SLOT_SIZE: int = 63

# Every slot-sized extent carries one extra pixel for the shared border line
SLOT_PIXEL_MARGIN: int = 1

# Allowed deviation from a whole number of slots, in slots
TEMPLATE_SLOT_EPSILON: float = 0.01
GRID_SLOT_EPSILON: float = float(os.environ.get("GS_GRID_SLOT_EPSILON", "0.1"))

# Crops are padded outward by this fraction of a slot on every side
ICON_PADDING_FRACTION: float = 1.0 / 8.0

# Grid morphology, in scaled slots
LINE_KERNEL_FACTOR: float = 0.9
BRIDGE_KERNEL_FACTOR: float = 2.0
HIGHLIGHT_DILATE_PX: int = 3

# Highlighted blobs smaller than this fraction of a slot are noise
HIGHLIGHT_MIN_SLOT_FRACTION: float = 0.5

# OCR short-name strip, as a fraction of the slot height
OCR_NAME_STRIP_FRACTION: float = 0.3
OCR_UPSCALE: float = 2.0

__all__ = [
    "REFERENCE_RESOLUTION",
    "BASE_SLOT_SIZE",
    "SLOT_PIXEL_MARGIN",
    "TEMPLATE_SLOT_EPSILON",
    "GRID_SLOT_EPSILON",
    "ICON_PADDING_FRACTION",
    "LINE_KERNEL_FACTOR",
    "BRIDGE_KERNEL_FACTOR",
    "HIGHLIGHT_DILATE_PX",
    "HIGHLIGHT_MIN_SLOT_FRACTION",
    "OCR_NAME_STRIP_FRACTION",
    "OCR_UPSCALE",
]
