"""Icon template catalog: static and dynamic template sets keyed by slot size.

Each icon kind is held as one immutable snapshot (templates bucketed by slot
size plus the icon key -> item correlation). Readers grab the current
snapshot reference and never observe a half-merged reload; writers build a
new snapshot under the reload lock and swap it in with a single assignment.
Reload requests that arrive while another reload runs wait for it and then
run in turn.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Union

import cv2
import numpy as np

from ..config.vision import TEMPLATE_SLOT_EPSILON
from ..core.errors import CatalogDirectoryMissingError, CatalogError, InvalidTemplateError
from ..core.index_watcher import IndexWatcher
from ..core.settings import Config
from ..vision.geometry import IntVector, is_whole_slot_extent, slot_size_of
from ..vision.preprocess import compose_icon_background
from .correlation import (
    Correlation,
    CorrelationEntry,
    build_hash_lookup,
    icon_key,
    parse_hashed_index,
    parse_legacy_index,
    parse_static_correlation,
    read_json,
)
from .items import ICON_OVERLAY_ASSETS, Item, ItemCategory, ItemDatabase, ItemExtraInfo

logger = logging.getLogger(__name__)

Buckets = Mapping[IntVector, Mapping[str, "IconTemplate"]]


class IconKind(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


@dataclass(frozen=True, eq=False)
class IconTemplate:
    key: str
    kind: IconKind
    image: np.ndarray
    slot_size: IntVector
    item: Item
    extra_info: Optional[ItemExtraInfo] = None


@dataclass(frozen=True)
class _Snapshot:
    buckets: Buckets = field(default_factory=lambda: MappingProxyType({}))
    correlation: Mapping[str, CorrelationEntry] = field(default_factory=lambda: MappingProxyType({}))

    def keys(self) -> Set[str]:
        return {key for bucket in self.buckets.values() for key in bucket}


def _freeze(buckets: Dict[IntVector, Dict[str, IconTemplate]]) -> Buckets:
    return MappingProxyType({size: MappingProxyType(dict(b)) for size, b in buckets.items() if b})


class Catalog:
    """Hot-reloadable icon template sets with reverse lookup."""

    def __init__(self, config: Config, items: ItemDatabase, start_watcher: bool = True):
        self.config = config
        self.items = items
        self._snapshots: Dict[IconKind, _Snapshot] = {kind: _Snapshot() for kind in IconKind}
        self._directories: Dict[IconKind, Path] = {}
        self._rejected: Dict[IconKind, Set[str]] = {kind: set() for kind in IconKind}
        self._reload_lock = threading.Lock()
        self._hash_lookup = None
        self._overlays = self._load_overlays()
        self._watcher: Optional[IndexWatcher] = None

        icon_cfg, paths = config.icon, config.paths
        if icon_cfg.use_static_icons:
            self.load(paths.static_icons, IconKind.STATIC)
        if icon_cfg.use_dynamic_icons:
            self.load(paths.dynamic_icons, IconKind.DYNAMIC)
            if start_watcher and icon_cfg.watch_dynamic_icons:
                self.start_watcher()

    # ----- lifecycle -----

    def start_watcher(self) -> None:
        path = self.config.paths.dynamic_correlation
        if path is None:
            logger.warning("Dynamic icon watching requested but no dynamic correlation file is configured")
            return
        if self._watcher is not None and self._watcher.is_alive():
            return
        watcher = IndexWatcher(path, self._on_index_changed, self.config.icon.watch_interval)
        try:
            watcher.start()
        except OSError as e:
            logger.warning("Dynamic icon watching disabled: %s", e)
            return
        self._watcher = watcher

    def close(self) -> None:
        if self._watcher is not None:
            self._watcher.stop(timeout=5.0)
            self._watcher = None

    def __enter__(self) -> "Catalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_index_changed(self) -> None:
        added = self.reload(IconKind.DYNAMIC)
        if added:
            logger.info("Dynamic icon index changed: %d new template(s)", added)

    # ----- loading -----

    def load(self, directory: Optional[Union[str, Path]], kind: IconKind) -> int:
        """Load every template of a kind from directory, replacing that kind's set.

        Returns the number of templates indexed.
        """
        if directory is None:
            raise CatalogError(f"No {kind.value} icon directory configured")
        directory = Path(directory)
        with self._reload_lock:
            files = self._list_icons(directory)
            try:
                correlation = self._read_correlation(kind, directory)
            except (OSError, ValueError) as e:
                raise CatalogError(f"Cannot read {kind.value} correlation data: {e}") from e
            self._rejected[kind] = set()
            buckets: Dict[IntVector, Dict[str, IconTemplate]] = {}
            count = self._add_templates(buckets, files, kind, correlation, skip=set())
            self._directories[kind] = directory
            self._snapshots[kind] = _Snapshot(_freeze(buckets), MappingProxyType(dict(correlation)))
        logger.info(
            "Loaded %d %s icon(s) from %s (%d size bucket(s))", count, kind.value, directory, len(buckets)
        )
        return count

    def reload(self, kind: IconKind = IconKind.DYNAMIC) -> int:
        """Merge templates that appeared since the last load; returns how many were added.

        Already cached templates are kept; their item reference is refreshed
        when the correlation data now points them elsewhere.
        """
        with self._reload_lock:
            directory = self._directories.get(kind)
            if directory is None:
                logger.debug("Reload of %s icons skipped: never loaded", kind.value)
                return 0
            try:
                correlation = self._read_correlation(kind, directory, required=True)
            except (OSError, ValueError) as e:
                logger.warning("Reload of %s icons skipped: correlation unreadable: %s", kind.value, e)
                return 0
            files = self._list_icons(directory)

            old = self._snapshots[kind]
            correlation = dict(correlation)
            buckets: Dict[IntVector, Dict[str, IconTemplate]] = {}
            for size, bucket in old.buckets.items():
                merged: Dict[str, IconTemplate] = {}
                for key, tpl in bucket.items():
                    entry = correlation.get(key)
                    if entry is None:
                        # Cached templates keep resolving even if the index dropped them
                        correlation[key] = old.correlation[key]
                    elif (entry.item, entry.extra_info) != (tpl.item, tpl.extra_info):
                        tpl = replace(tpl, item=entry.item, extra_info=entry.extra_info)
                    merged[key] = tpl
                buckets[size] = merged
            added = self._add_templates(buckets, files, kind, correlation, skip=old.keys())
            self._snapshots[kind] = _Snapshot(_freeze(buckets), MappingProxyType(dict(correlation)))
        logger.debug("Reloaded %s icons: %d added", kind.value, added)
        return added

    def _add_templates(
        self,
        buckets: Dict[IntVector, Dict[str, IconTemplate]],
        files: Iterable[Path],
        kind: IconKind,
        correlation: Correlation,
        skip: Set[str],
    ) -> int:
        added = 0
        rejected = self._rejected[kind]
        for path in files:
            key = icon_key(path.parent, path.name)
            if key in skip or key in rejected:
                continue
            entry = correlation.get(key)
            if entry is None:
                # The index may not list this icon yet; retried on the next reload
                logger.debug("No item correlates with icon %s", key)
                continue
            try:
                tpl = self._decode(path, key, kind, entry)
            except InvalidTemplateError as e:
                logger.warning("%s", e)
                rejected.add(key)
                continue
            buckets.setdefault(tpl.slot_size, {})[key] = tpl
            added += 1
        return added

    def _decode(self, path: Path, key: str, kind: IconKind, entry: CorrelationEntry) -> IconTemplate:
        img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if img is None:
            raise InvalidTemplateError(key, "image cannot be decoded")
        h, w = img.shape[:2]
        slot = self.config.base_slot_size
        if not (
            is_whole_slot_extent(w, slot, TEMPLATE_SLOT_EPSILON)
            and is_whole_slot_extent(h, slot, TEMPLATE_SLOT_EPSILON)
        ):
            raise InvalidTemplateError(key, f"{w}x{h} is not a whole number of {slot}px slots")
        inv = self.config.inventory
        image = compose_icon_background(
            img,
            entry.item.background_bgr,
            inv.background_alpha,
            inv.grid_line_color,
            overlay=self._overlays.get(entry.item.category),
        )
        return IconTemplate(key, kind, image, slot_size_of((w, h), slot), entry.item, entry.extra_info)

    def _list_icons(self, directory: Path) -> List[Path]:
        attempts = max(1, self.config.icon.load_retries + 1)
        for attempt in range(1, attempts + 1):
            try:
                return sorted(p for p in directory.iterdir() if p.suffix.lower() == ".png" and p.is_file())
            except OSError as e:
                logger.debug("Listing %s failed (attempt %d/%d): %s", directory, attempt, attempts, e)
                if attempt < attempts:
                    time.sleep(self.config.icon.load_retry_delay)
        raise CatalogDirectoryMissingError(directory, attempts)

    def _read_correlation(self, kind: IconKind, directory: Path, required: bool = False) -> Correlation:
        """Parse the correlation data of a kind.

        A missing file yields an empty correlation on first load; when required
        (a reload, where the file may be mid-rewrite) it raises FileNotFoundError.
        """
        paths = self.config.paths
        path = paths.static_correlation if kind is IconKind.STATIC else paths.dynamic_correlation
        if required and path is not None and not Path(path).exists():
            raise FileNotFoundError(f"{kind.value} correlation file {path} is missing")
        if path is None or not Path(path).exists():
            logger.warning("No %s correlation file at %s; no icons can be identified", kind.value, path)
            return {}
        data = read_json(path)
        if kind is IconKind.STATIC:
            return parse_static_correlation(data, directory, self.items)
        if self.config.icon.use_legacy_cache_index:
            return parse_legacy_index(data, directory, self.items)
        if self._hash_lookup is None:
            self._hash_lookup = build_hash_lookup(self.items)
        return parse_hashed_index(data, directory, self.items, self._hash_lookup)

    def _load_overlays(self) -> Dict[ItemCategory, np.ndarray]:
        overlays: Dict[ItemCategory, np.ndarray] = {}
        base = self.config.paths.overlay_icons
        if base is None:
            return overlays
        for category, asset in ICON_OVERLAY_ASSETS.items():
            path = Path(base) / asset
            img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED) if path.exists() else None
            if img is None:
                logger.debug("Overlay asset for %s not available at %s", category.value, path)
                continue
            overlays[category] = img
        return overlays

    # ----- lookups -----

    def templates(self, kind: IconKind) -> Buckets:
        """Current read-only template buckets of a kind."""
        return self._snapshots[kind].buckets

    def template_count(self, kind: Optional[IconKind] = None) -> int:
        kinds = [kind] if kind is not None else list(IconKind)
        return sum(len(b) for k in kinds for b in self._snapshots[k].buckets.values())

    def get_item(self, key: str) -> Optional[Item]:
        for kind in (IconKind.STATIC, IconKind.DYNAMIC):
            entry = self._snapshots[kind].correlation.get(key)
            if entry is not None:
                return entry.item
        return None

    def get_extra_info(self, key: str) -> Optional[ItemExtraInfo]:
        entry = self._snapshots[IconKind.DYNAMIC].correlation.get(key)
        return entry.extra_info if entry is not None else None

    def get_icon_path(self, item: Item, extra_info: Optional[ItemExtraInfo] = None) -> Optional[str]:
        """Icon key for an item; dynamic icons (matching extra info) win over static ones."""
        for key, entry in self._snapshots[IconKind.DYNAMIC].correlation.items():
            if entry.item.id == item.id and entry.extra_info == extra_info:
                return key
        for key, entry in self._snapshots[IconKind.STATIC].correlation.items():
            if entry.item.id == item.id:
                return key
        return None
