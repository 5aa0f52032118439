"""Typed, immutable configuration built from ConfigManager values.

A Config is passed explicitly into the Catalog, every InventoryView and the
Engine. Changing the scale produces a new Config via with_scale().
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

from ..config.vision import BASE_SLOT_SIZE, REFERENCE_RESOLUTION
from .config import DEFAULTS, ConfigManager

Triple = Tuple[int, int, int]


def _as_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_path(value) -> Optional[Path]:
    if value is None or str(value).strip() == "":
        return None
    return Path(str(value).strip()).expanduser()


def _as_triple(value) -> Triple:
    parts = [int(p.strip()) for p in str(value).split(",")]
    if len(parts) != 3:
        raise ValueError(f"Expected three comma separated integers, got '{value}'")
    return parts[0], parts[1], parts[2]


@dataclass(frozen=True)
class PathConfig:
    static_icons: Optional[Path] = None
    static_correlation: Optional[Path] = None
    dynamic_icons: Optional[Path] = None
    dynamic_correlation: Optional[Path] = None
    item_database: Optional[Path] = None
    overlay_icons: Optional[Path] = None
    debug_dir: Optional[Path] = None


@dataclass(frozen=True)
class IconConfig:
    use_static_icons: bool = True
    use_dynamic_icons: bool = False
    watch_dynamic_icons: bool = False
    watch_interval: float = 1.0
    use_legacy_cache_index: bool = False
    scan_rotated_icons: bool = True
    use_ocr_short_names: bool = False
    ocr_fallback_threshold: float = 0.9
    # 0 lets the executor pick its default worker count
    match_workers: int = 0
    load_retries: int = 3
    load_retry_delay: float = 0.1


@dataclass(frozen=True)
class InventoryConfig:
    optimize_highlighted: bool = False
    grid_color_min: Triple = (0, 0, 70)
    grid_color_max: Triple = (179, 80, 125)
    highlight_color_min: Triple = (0, 0, 140)
    highlight_color_max: Triple = (179, 50, 230)
    grid_line_color: Triple = (100, 100, 100)
    background_alpha: int = 100


@dataclass(frozen=True)
class Config:
    scale: float = 1.0
    base_slot_size: int = BASE_SLOT_SIZE
    log_debug: bool = False
    paths: PathConfig = field(default_factory=PathConfig)
    icon: IconConfig = field(default_factory=IconConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)

    @property
    def scaled_slot_size(self) -> float:
        return self.scale * self.base_slot_size

    @property
    def inverse_scale(self) -> float:
        return 1.0 / self.scale

    def with_scale(self, scale: float) -> "Config":
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        return replace(self, scale=float(scale))

    @staticmethod
    def resolution_to_scale(width: int, height: int) -> float:
        """Scale factor of a capture relative to the 1920x1080 reference."""
        ref_w, ref_h = REFERENCE_RESOLUTION
        return min(width / ref_w, height / ref_h)

    @classmethod
    def from_manager(cls, manager: ConfigManager) -> "Config":
        def get(key: str) -> str:
            return manager.get(key, DEFAULTS[key])

        paths = PathConfig(
            static_icons=_as_path(get("static_icons")),
            static_correlation=_as_path(get("static_correlation")),
            dynamic_icons=_as_path(get("dynamic_icons")),
            dynamic_correlation=_as_path(get("dynamic_correlation")),
            item_database=_as_path(get("item_database")),
            overlay_icons=_as_path(get("overlay_icons")),
            debug_dir=_as_path(get("debug_dir")),
        )
        icon = IconConfig(
            use_static_icons=_as_bool(get("use_static_icons"), True),
            use_dynamic_icons=_as_bool(get("use_dynamic_icons")),
            watch_dynamic_icons=_as_bool(get("watch_dynamic_icons")),
            watch_interval=float(get("watch_interval")),
            use_legacy_cache_index=_as_bool(get("use_legacy_cache_index")),
            scan_rotated_icons=_as_bool(get("scan_rotated_icons"), True),
            use_ocr_short_names=_as_bool(get("use_ocr_short_names")),
            ocr_fallback_threshold=float(get("ocr_fallback_threshold")),
            match_workers=int(get("match_workers")),
            load_retries=int(get("load_retries")),
            load_retry_delay=int(get("load_retry_delay_ms")) / 1000.0,
        )
        inventory = InventoryConfig(
            optimize_highlighted=_as_bool(get("optimize_highlighted")),
            grid_color_min=_as_triple(get("grid_color_min")),
            grid_color_max=_as_triple(get("grid_color_max")),
            highlight_color_min=_as_triple(get("highlight_color_min")),
            highlight_color_max=_as_triple(get("highlight_color_max")),
            grid_line_color=_as_triple(get("grid_line_color")),
            background_alpha=int(get("background_alpha")),
        )
        return cls(
            scale=float(get("scale")),
            base_slot_size=int(get("base_slot_size")),
            log_debug=_as_bool(get("log_debug")),
            paths=paths,
            icon=icon,
            inventory=inventory,
        )
