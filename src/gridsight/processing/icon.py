"""A single inventory cell and its identification pipeline.

The pipeline advances Default -> Rescaled -> Scanned on demand. Each step
runs at most once per instance; concurrent callers wait for the first one
and then share its result.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.errors import NoUsableTemplatesError
from ..core.logging_setup import save_debug_image
from ..core.settings import Config
from ..data.catalog import Catalog, IconKind
from ..data.items import Item, ItemExtraInfo
from ..vision.geometry import BoundingBox, IntVector, slot_size_of
from ..vision.matcher import NO_MATCH, IconMatcher, MatchResult
from ..vision.ocr import ShortNameReader
from ..vision.preprocess import rescale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RescaledIcon:
    """Padded crop in the 1920x1080 reference frame."""

    image: np.ndarray
    # Top-left of the traced cell inside image
    offset: IntVector
    size: IntVector


class IconInstance:
    def __init__(
        self,
        crop: np.ndarray,
        box: BoundingBox,
        crop_box: BoundingBox,
        config: Config,
        catalog: Catalog,
        executor: Optional[Executor] = None,
        short_names: Optional[ShortNameReader] = None,
    ):
        self.image = crop
        self.box = box
        self.crop_box = crop_box
        self.config = config
        self.catalog = catalog
        self.executor = executor
        self.short_names = short_names
        self.slot_size = slot_size_of(box.size, config.scaled_slot_size)
        self._lock = threading.RLock()
        self._rescaled: Optional[RescaledIcon] = None
        self._scan: Optional[MatchResult] = None
        self._scan_error: Optional[NoUsableTemplatesError] = None

    def __repr__(self) -> str:
        return f"IconInstance(position={tuple(self.position)}, slots={tuple(self.slot_size)})"

    @property
    def position(self) -> IntVector:
        return self.box.position

    @property
    def size(self) -> IntVector:
        return self.box.size

    def contains(self, point, inclusive: bool = False) -> bool:
        return self.box.contains(point, inclusive)

    # ----- pipeline -----

    def rescaled(self) -> RescaledIcon:
        with self._lock:
            if self._rescaled is None:
                inv = self.config.inverse_scale
                offset = self.box.position - self.crop_box.position
                self._rescaled = RescaledIcon(
                    image=rescale(self.image, inv),
                    offset=offset.scaled(inv),
                    size=self.box.size.scaled(inv),
                )
            return self._rescaled

    def scan(self) -> MatchResult:
        """Identify the icon; raises NoUsableTemplatesError when nothing could be compared.

        A failed scan is remembered and raised again on later reads.
        """
        with self._lock:
            if self._scan_error is not None:
                raise self._scan_error
            if self._scan is None:
                try:
                    self._scan = self._identify()
                except NoUsableTemplatesError as e:
                    self._scan_error = e
                    raise
            return self._scan

    def _identify(self) -> MatchResult:
        icon_cfg = self.config.icon
        candidate = self.rescaled().image
        matcher = IconMatcher(self.executor, scan_rotated=icon_cfg.scan_rotated_icons)

        sources = []
        if icon_cfg.use_static_icons:
            sources.append(IconKind.STATIC)
        if icon_cfg.use_dynamic_icons:
            sources.append(IconKind.DYNAMIC)

        empty = 0
        for kind in sources:
            try:
                matcher.match(candidate, self.slot_size, self.catalog.templates(kind), source=kind.value)
            except NoUsableTemplatesError as e:
                logger.debug("%s: %s", self, e)
                empty += 1

        use_ocr = icon_cfg.use_ocr_short_names and self.short_names is not None
        if use_ocr and (not matcher.best.found or matcher.best.confidence < icon_cfg.ocr_fallback_threshold):
            matcher.offer(self._identify_short_name())
        elif not use_ocr and empty == len(sources):
            raise NoUsableTemplatesError(self.slot_size, "no enabled icon source has templates of this size")

        best = matcher.best
        if not best.found:
            save_debug_image(self.config, f"unmatched_{self.position.x}_{self.position.y}", candidate)
        logger.debug("%s identified as %s (%.3f, source=%s)", self, best.icon_key, best.confidence, best.source)
        return best

    def _identify_short_name(self) -> MatchResult:
        rescaled = self.rescaled()
        ox, oy = rescaled.offset
        w, h = rescaled.size
        region = rescaled.image[oy:oy + h, ox:ox + w]
        item, score, rotated = self.short_names.identify(
            region,
            self.catalog.items,
            self.slot_size,
            self.config.base_slot_size,
            scan_rotated=self.config.icon.scan_rotated_icons,
        )
        if item is None:
            return NO_MATCH
        return MatchResult(
            icon_key=self.catalog.get_icon_path(item),
            item=item,
            confidence=score,
            position=rescaled.offset,
            rotated=rotated,
            source="ocr",
        )

    # ----- results -----

    @property
    def rescaled_image(self) -> np.ndarray:
        return self.rescaled().image

    @property
    def item(self) -> Optional[Item]:
        return self.scan().item

    @property
    def item_extra_info(self) -> Optional[ItemExtraInfo]:
        return self.scan().extra_info

    @property
    def detection_confidence(self) -> float:
        return self.scan().confidence

    @property
    def item_position(self) -> IntVector:
        """Top-left of the matched template inside the rescaled crop."""
        return self.scan().position

    @property
    def rotated(self) -> bool:
        return self.scan().rotated

    @property
    def icon_key(self) -> Optional[str]:
        return self.scan().icon_key

    @property
    def icon_path(self) -> Optional[str]:
        result = self.scan()
        if result.icon_key is not None:
            return result.icon_key
        if result.item is not None:
            return self.catalog.get_icon_path(result.item, result.extra_info)
        return None
