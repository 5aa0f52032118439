"""Grid tracing and icon lookup on one inventory screenshot."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from typing import List, Optional, Tuple

import numpy as np

from ..config.vision import ICON_PADDING_FRACTION
from ..core.settings import Config
from ..data.catalog import Catalog
from ..vision.geometry import IntVector
from ..vision.grid import GridDetector, GridMask
from ..vision.ocr import ShortNameReader
from ..vision.preprocess import crop, to_bgr
from ..vision.walker import GridWalker
from .icon import IconInstance

logger = logging.getLogger(__name__)


class InventoryView:
    """Lazily traced view of a screenshot containing an inventory grid.

    The grid mask and the icon list are computed once, on first access, and
    shared by every caller afterwards.
    """

    def __init__(
        self,
        image: np.ndarray,
        config: Config,
        catalog: Catalog,
        executor: Optional[Executor] = None,
        short_names: Optional[ShortNameReader] = None,
    ):
        self.image = to_bgr(image)
        self.config = config
        self.catalog = catalog
        self.executor = executor
        if short_names is None and config.icon.use_ocr_short_names:
            short_names = ShortNameReader()
        self.short_names = short_names
        self._lock = threading.Lock()
        self._grid: Optional[GridMask] = None
        self._icons: Optional[List[IconInstance]] = None

    @property
    def grid_mask(self) -> GridMask:
        with self._lock:
            if self._grid is None:
                self._grid = GridDetector(self.config).detect(self.image)
            return self._grid

    @property
    def icons(self) -> List[IconInstance]:
        mask = self.grid_mask
        with self._lock:
            if self._icons is None:
                self._icons = self._build_icons(mask)
            return list(self._icons)

    def _build_icons(self, mask: GridMask) -> List[IconInstance]:
        slot = self.config.scaled_slot_size
        pad = int(round(slot * ICON_PADDING_FRACTION))
        h, w = self.image.shape[:2]
        icons = []
        for box in GridWalker(slot).walk(mask):
            crop_box = box.padded(pad, bounds=(w, h))
            icons.append(
                IconInstance(
                    crop(self.image, crop_box),
                    box,
                    crop_box,
                    self.config,
                    self.catalog,
                    executor=self.executor,
                    short_names=self.short_names,
                )
            )
        logger.info("Inventory traced: %d icon(s) in %dx%d image", len(icons), w, h)
        return icons

    def locate_icon(self, position: Optional[Tuple[int, int]] = None) -> Optional[IconInstance]:
        """Icon whose cell contains position (default: the image centre), or None."""
        if position is None:
            h, w = self.image.shape[:2]
            position = IntVector(w // 2, h // 2)
        icons = self.icons
        for inclusive in (False, True):
            for icon in icons:
                if icon.contains(position, inclusive=inclusive):
                    return icon
        logger.debug("No icon at %s", tuple(position))
        return None
