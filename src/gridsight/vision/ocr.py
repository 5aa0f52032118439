"""
Short-name OCR used as a fallback identification signal.

Every icon carries the item's short name in its top strip. The strip is
read with Tesseract and compared with the short names of items that fit the
cell, upright or rotated.
"""
from __future__ import annotations

from difflib import SequenceMatcher
from typing import Callable, Iterable, Optional, Tuple
import logging
import re
import cv2
import numpy as np
import pytesseract

from ..config.vision import OCR_NAME_STRIP_FRACTION, OCR_UPSCALE
from ..data.items import Item
from .geometry import IntVector
from .preprocess import rotate_ccw

logger = logging.getLogger(__name__)

TESSERACT_CONFIG = "--psm 7"

_NON_ALNUM = re.compile(r"[^0-9A-Z]+")


def normalize_name(text: str) -> str:
    return _NON_ALNUM.sub("", str(text).upper())


def name_similarity(a: str, b: str) -> float:
    """Similarity ratio in [0, 1] of two normalized names."""
    a, b = normalize_name(a), normalize_name(b)
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def prepare_strip(image: np.ndarray) -> np.ndarray:
    """Grayscale, upscale and binarize to dark text on a light background."""
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
    gray_up = cv2.resize(
        gray,
        (int(gray.shape[1] * OCR_UPSCALE), int(gray.shape[0] * OCR_UPSCALE)),
        interpolation=cv2.INTER_CUBIC,
    )
    _, th = cv2.threshold(gray_up, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
    return th


def _tesseract(image: np.ndarray) -> str:
    return pytesseract.image_to_string(image, config=TESSERACT_CONFIG) or ""


class ShortNameReader:
    """Read an icon's short name and find the best fitting item.

    reader turns a prepared strip into text; it defaults to Tesseract.
    """

    def __init__(self, reader: Optional[Callable[[np.ndarray], str]] = None):
        self.reader = reader or _tesseract

    def read(self, icon: np.ndarray, slot_pixels: float) -> str:
        strip_h = max(1, int(slot_pixels * OCR_NAME_STRIP_FRACTION))
        strip = icon[:strip_h, :]
        if strip.size == 0:
            return ""
        text = self.reader(prepare_strip(strip))
        return text.strip()

    @staticmethod
    def best_item(text: str, items: Iterable[Item], slot_size: IntVector) -> Tuple[Optional[Item], float]:
        """Best short-name match among items occupying exactly slot_size."""
        best: Tuple[Optional[Item], float] = (None, 0.0)
        if not normalize_name(text):
            return best
        for item in items:
            if (item.width, item.height) != tuple(slot_size):
                continue
            score = name_similarity(text, item.short_name)
            if score > best[1]:
                best = (item, score)
        return best

    def identify(
        self,
        icon: np.ndarray,
        items: Iterable[Item],
        slot_size: IntVector,
        slot_pixels: float,
        scan_rotated: bool = True,
    ) -> Tuple[Optional[Item], float, bool]:
        """(item, similarity, rotated) for an unpadded icon image.

        Rotated cells are turned back upright before reading so the name
        strip is horizontal again.
        """
        items = list(items)
        item, score = self.best_item(self.read(icon, slot_pixels), items, slot_size)
        best = (item, score, False)
        if scan_rotated and slot_size.x != slot_size.y:
            upright = rotate_ccw(icon)
            r_item, r_score = self.best_item(self.read(upright, slot_pixels), items, slot_size.swapped())
            if r_score > score:
                best = (r_item, r_score, True)
        logger.debug("OCR best item %s (%.3f, rotated=%s)", best[0].id if best[0] else None, best[1], best[2])
        return best
