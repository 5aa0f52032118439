"""Engine: one catalog and one matching pool shared by many screenshots."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from .core.settings import Config
from .data.catalog import Catalog
from .data.items import ItemDatabase
from .processing.inventory import InventoryView
from .vision.ocr import ShortNameReader

logger = logging.getLogger(__name__)


class Engine:
    def __init__(self, config: Config, items: Optional[ItemDatabase] = None, start_watcher: bool = True):
        self.config = config
        if items is None:
            if config.paths.item_database is None:
                raise ValueError("An item database is required (pass one or set item_database)")
            items = ItemDatabase.from_file(config.paths.item_database)
        self.items = items
        self.catalog = Catalog(config, items, start_watcher=start_watcher)
        workers = config.icon.match_workers or None
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gridsight-match")
        self.short_names = ShortNameReader() if config.icon.use_ocr_short_names else None
        logger.info(
            "Engine ready: scale=%.3f, %d template(s), workers=%s",
            config.scale,
            self.catalog.template_count(),
            workers or "default",
        )

    def new_inventory(self, image: np.ndarray, scale: Optional[float] = None) -> InventoryView:
        """View of a screenshot; scale overrides the configured capture scale."""
        config = self.config if scale is None else self.config.with_scale(scale)
        return InventoryView(image, config, self.catalog, executor=self.executor, short_names=self.short_names)

    def close(self) -> None:
        self.catalog.close()
        self.executor.shutdown(wait=True)

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
