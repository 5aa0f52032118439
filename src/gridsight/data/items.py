"""Item metadata consumed by the catalog and the OCR fallback.

The item database is an external JSON export: a list of objects with
``id``, ``name``, ``shortName``, ``width``, ``height``, ``backgroundColor``
and an optional ``category``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


# In-game item background colours as BGR
BACKGROUND_COLORS: Dict[str, Tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "blue": (86, 65, 28),
    "default": (127, 127, 127),
    "green": (13, 26, 21),
    "grey": (29, 29, 29),
    "orange": (0, 25, 60),
    "red": (24, 36, 109),
    "violet": (85, 42, 76),
    "yellow": (40, 102, 104),
    "tracerYellow": (0, 127, 127),
    "tracerGreen": (0, 127, 0),
    "tracerRed": (0, 0, 127),
}


class ItemCategory(str, Enum):
    DEFAULT = "default"
    WEAPON = "weapon"
    MOD = "mod"
    AMMO = "ammo"
    CONTAINER = "container"
    KEY = "key"


# Overlay assets drawn over an icon per category; looked up in the
# configured overlay directory.
ICON_OVERLAY_ASSETS: Dict[ItemCategory, str] = {
    ItemCategory.MOD: "mod_overlay.png",
    ItemCategory.KEY: "key_overlay.png",
}


@dataclass(frozen=True)
class ItemExtraInfo:
    """Instance-specific data distinguishing dynamic icons of the same item."""

    mods: Tuple[str, ...] = ()
    meta: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.mods and not self.meta


@dataclass(frozen=True)
class Item:
    id: str
    name: str = ""
    short_name: str = ""
    width: int = 1
    height: int = 1
    background_color: str = "default"
    category: ItemCategory = ItemCategory.DEFAULT

    @property
    def background_bgr(self) -> Tuple[int, int, int]:
        return BACKGROUND_COLORS.get(self.background_color, BACKGROUND_COLORS["default"])

    @property
    def overlay_asset(self) -> Optional[str]:
        return ICON_OVERLAY_ASSETS.get(self.category)

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        raw_category = str(data.get("category", ItemCategory.DEFAULT.value)).lower()
        try:
            category = ItemCategory(raw_category)
        except ValueError:
            category = ItemCategory.DEFAULT
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            short_name=str(data.get("shortName", data.get("short_name", ""))),
            width=int(data.get("width", 1)),
            height=int(data.get("height", 1)),
            background_color=str(data.get("backgroundColor", data.get("background_color", "default"))),
            category=category,
        )


@dataclass
class ItemDatabase:
    """Lookup of items by id."""

    items: Dict[str, Item] = field(default_factory=dict)

    @classmethod
    def from_items(cls, items: Iterable[Item]) -> "ItemDatabase":
        return cls({item.id: item for item in items})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ItemDatabase":
        path = Path(path)
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if isinstance(data, dict):
            data = list(data.values())
        items: List[Item] = []
        for entry in data:
            try:
                items.append(Item.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed item entry %r: %s", entry, e)
        logger.info("Loaded %d items from %s", len(items), path)
        return cls.from_items(items)

    def get(self, item_id: str) -> Optional[Item]:
        return self.items.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.items

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items.values())

    def __len__(self) -> int:
        return len(self.items)
