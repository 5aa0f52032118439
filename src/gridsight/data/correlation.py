"""Parsers for the files that tie icon images to items.

Three schemas are supported:

- static correlation: ``[{"icon": "<file>", "uid": "<item id>"}, ...]``
- legacy cache index: ``{"<icon id>": "<item spec>"}`` where an item spec is
  ``uid[,mod uid...][;meta]``
- hashed cache index: ``{"<hash>": <icon id or file name>}`` where the hash is
  item_spec_hash() of an item spec; hashes are resolved against the item
  database, bare and with every known meta variant.

All parsers return a mapping of icon key -> CorrelationEntry. Entries that
cannot be resolved are skipped and logged at DEBUG.
"""
from __future__ import annotations

import json
import logging
import zlib
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

from .items import Item, ItemDatabase, ItemExtraInfo

logger = logging.getLogger(__name__)

# Meta variants that get their own dynamic icon (e.g. weapons with folded stocks)
KNOWN_ITEM_METAS: Tuple[str, ...] = ("folded",)


class CorrelationEntry(NamedTuple):
    item: Item
    extra_info: Optional[ItemExtraInfo] = None


Correlation = Dict[str, CorrelationEntry]


def icon_key(directory: Union[str, Path], file_name: str) -> str:
    """Catalog key of an icon: the directory joined with its file name."""
    return str(Path(directory) / file_name)


def icon_file_name(icon_id: Any) -> str:
    name = str(icon_id).strip()
    return name if name.lower().endswith(".png") else f"{name}.png"


def read_json(path: Union[str, Path]) -> Any:
    """Read a JSON file in one go without holding it open.

    The game keeps its cache index open for writing; reading the whole file
    at once keeps the window for conflicts small.
    """
    raw = Path(path).read_bytes()
    return json.loads(raw.decode("utf-8-sig"))


def parse_item_spec(spec: str) -> Tuple[str, Optional[ItemExtraInfo]]:
    """Split ``uid[,mod...][;meta]`` into the item id and its extra info."""
    body, _, meta = str(spec).strip().partition(";")
    parts = [p.strip() for p in body.split(",") if p.strip()]
    if not parts:
        raise ValueError(f"Empty item spec '{spec}'")
    uid, mods = parts[0], tuple(parts[1:])
    extra = ItemExtraInfo(mods=mods, meta=meta.strip() or None)
    return uid, (None if extra.is_empty else extra)


def format_item_spec(uid: str, extra_info: Optional[ItemExtraInfo] = None) -> str:
    spec = uid
    if extra_info is not None:
        if extra_info.mods:
            spec += "," + ",".join(extra_info.mods)
        if extra_info.meta:
            spec += ";" + extra_info.meta
    return spec


def item_spec_hash(uid: str, extra_info: Optional[ItemExtraInfo] = None) -> int:
    """Stable 32-bit hash of an item spec, as used by the hashed cache index."""
    return zlib.crc32(format_item_spec(uid, extra_info).encode("utf-8")) & 0xFFFFFFFF


def parse_static_correlation(data: Any, icons_dir: Union[str, Path], items: ItemDatabase) -> Correlation:
    out: Correlation = {}
    for entry in data or []:
        try:
            file_name, uid = entry["icon"], str(entry["uid"])
        except (KeyError, TypeError):
            logger.debug("Malformed static correlation entry: %r", entry)
            continue
        item = items.get(uid)
        if item is None:
            logger.debug("Static icon %s refers to unknown item %s", file_name, uid)
            continue
        out[icon_key(icons_dir, icon_file_name(file_name))] = CorrelationEntry(item)
    return out


def parse_legacy_index(data: Any, icons_dir: Union[str, Path], items: ItemDatabase) -> Correlation:
    out: Correlation = {}
    for icon_id, spec in (data or {}).items():
        try:
            uid, extra = parse_item_spec(spec)
        except ValueError as e:
            logger.debug("Index entry %s: %s", icon_id, e)
            continue
        item = items.get(uid)
        if item is None:
            logger.debug("Index entry %s refers to unknown item %s", icon_id, uid)
            continue
        out[icon_key(icons_dir, icon_file_name(icon_id))] = CorrelationEntry(item, extra)
    return out


def build_hash_lookup(items: ItemDatabase) -> Dict[int, CorrelationEntry]:
    lookup: Dict[int, CorrelationEntry] = {}
    for item in items:
        lookup[item_spec_hash(item.id)] = CorrelationEntry(item)
        for meta in KNOWN_ITEM_METAS:
            extra = ItemExtraInfo(meta=meta)
            lookup[item_spec_hash(item.id, extra)] = CorrelationEntry(item, extra)
    return lookup


def parse_hashed_index(
    data: Any,
    icons_dir: Union[str, Path],
    items: ItemDatabase,
    lookup: Optional[Dict[int, CorrelationEntry]] = None,
) -> Correlation:
    if lookup is None:
        lookup = build_hash_lookup(items)
    out: Correlation = {}
    for raw_hash, icon_id in (data or {}).items():
        try:
            entry = lookup.get(int(raw_hash))
        except (TypeError, ValueError):
            logger.debug("Non-numeric index hash %r", raw_hash)
            continue
        if entry is None:
            logger.debug("Unresolved index hash %s (icon %s)", raw_hash, icon_id)
            continue
        out[icon_key(icons_dir, icon_file_name(icon_id))] = entry
    return out
