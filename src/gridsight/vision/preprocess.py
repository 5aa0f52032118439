"""
Pure image preprocessing utilities.

This module contains only stateless, side-effect-free functions used by the
grid detector, the catalog and the matcher: rescaling, rotation, cropping,
colour-band thresholding, structuring elements and alpha compositing.

Logging: Functions here avoid heavy logging for performance; callers can
wrap them and log as needed at DEBUG level.
"""
from __future__ import annotations

from typing import Optional, Sequence, Tuple
import logging
import cv2
import numpy as np

from .geometry import BoundingBox

logger = logging.getLogger(__name__)


def rescale(img: np.ndarray, scale: float) -> np.ndarray:
    """Resize by a uniform factor; area interpolation to shrink, cubic to enlarge."""
    if abs(scale - 1.0) < 1e-6:
        return img
    h, w = img.shape[:2]
    nh, nw = max(1, int(round(h * scale))), max(1, int(round(w * scale)))
    return cv2.resize(img, (nw, nh), interpolation=cv2.INTER_AREA if scale < 1.0 else cv2.INTER_CUBIC)


def rotate_ccw(img: np.ndarray) -> np.ndarray:
    """Rotate 90 degrees counter-clockwise (undoes the in-game item rotation)."""
    return cv2.rotate(img, cv2.ROTATE_90_COUNTERCLOCKWISE)


def crop(img: np.ndarray, box: BoundingBox) -> np.ndarray:
    """Copy a rectangle out of img so the result owns its buffer."""
    x, y, w, h = box.as_rect()
    return img[y:y + h, x:x + w].copy()


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Normalize gray/BGRA images to 3-channel BGR."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


def hsv_band(img_bgr: np.ndarray, lower: Sequence[int], upper: Sequence[int]) -> np.ndarray:
    """Binary mask (0/255) of pixels whose HSV value lies within [lower, upper]."""
    hsv = cv2.cvtColor(to_bgr(img_bgr), cv2.COLOR_BGR2HSV)
    return cv2.inRange(hsv, np.array(lower, dtype=np.uint8), np.array(upper, dtype=np.uint8))


def line_kernel(length: float, vertical: bool) -> np.ndarray:
    """Line structuring element with an odd length so its anchor is centred."""
    n = max(3, int(length))
    if n % 2 == 0:
        n += 1
    shape = (1, n) if vertical else (n, 1)
    # getStructuringElement takes (width, height)
    return cv2.getStructuringElement(cv2.MORPH_RECT, shape)


def open_lines(mask: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Erode then dilate; keeps only runs at least as long as the kernel."""
    return cv2.dilate(cv2.erode(mask, kernel), kernel)


def alpha_blend(bottom: np.ndarray, top: np.ndarray, alpha: Optional[np.ndarray] = None) -> np.ndarray:
    """Composite top over bottom (both BGR uint8).

    alpha is a float mask in [0, 1] of shape (h, w); when omitted and top is
    BGRA, its own alpha channel is used.
    """
    if alpha is None:
        if top.ndim == 3 and top.shape[2] == 4:
            alpha = top[:, :, 3].astype(np.float32) / 255.0
        else:
            alpha = np.ones(top.shape[:2], dtype=np.float32)
    top_bgr = to_bgr(top).astype(np.float32)
    a = alpha[:, :, None]
    out = top_bgr * a + bottom.astype(np.float32) * (1.0 - a)
    return np.clip(out + 0.5, 0, 255).astype(np.uint8)


def tile(pattern: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Repeat pattern to cover (width, height)."""
    w, h = size
    ph, pw = pattern.shape[:2]
    reps = (-(-h // ph), -(-w // pw)) + ((1,) if pattern.ndim == 3 else ())
    return np.tile(pattern, reps)[:h, :w].copy()


def compose_icon_background(
    icon: np.ndarray,
    background_bgr: Tuple[int, int, int],
    background_alpha: int,
    border_bgr: Tuple[int, int, int],
    cell_texture: Optional[np.ndarray] = None,
    overlay: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Flatten a transparent icon onto the background it is drawn on in game.

    Layers, bottom to top: opaque black, optional tiled grid-cell texture,
    the item background colour at background_alpha (0-255), a 1px border in
    the grid line colour, the icon itself, then an optional overlay. Opaque
    icons are returned as BGR unchanged.
    """
    if icon.ndim != 3 or icon.shape[2] != 4:
        return to_bgr(icon)
    h, w = icon.shape[:2]
    out = np.zeros((h, w, 3), dtype=np.uint8)
    if cell_texture is not None:
        out = alpha_blend(out, tile(cell_texture, (w, h)))
    bg = np.empty((h, w, 3), dtype=np.uint8)
    bg[:] = background_bgr
    out = alpha_blend(out, bg, np.full((h, w), background_alpha / 255.0, dtype=np.float32))
    cv2.rectangle(out, (0, 0), (w - 1, h - 1), tuple(int(c) for c in border_bgr), 1)
    out = alpha_blend(out, icon)
    if overlay is not None:
        oh, ow = overlay.shape[:2]
        if oh <= h and ow <= w:
            # Overlays are anchored to the top-left corner of the icon
            region = out[:oh, :ow]
            out[:oh, :ow] = alpha_blend(region, overlay)
        else:
            logger.debug("Overlay %sx%s larger than icon %sx%s; skipped", ow, oh, w, h)
    return out
