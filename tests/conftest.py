"""Pytest configuration.

Ensures src/ and tests/ are on sys.path so tests can import `gridsight.*`
and the shared `synthetic` helpers, and provides catalog fixtures built in
temporary directories.
"""

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
TESTS_DIR = PROJECT_ROOT / "tests"
for p in (str(PROJECT_ROOT), str(SRC_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from gridsight.core.settings import Config, IconConfig, PathConfig  # noqa: E402
from gridsight.data.items import Item, ItemDatabase  # noqa: E402

from synthetic import write_template  # noqa: E402


@pytest.fixture
def items():
    return ItemDatabase.from_items(
        [
            Item("item_a", "Alpha rifle case", "ALPHA", 2, 2, "blue"),
            Item("item_b", "Bravo box", "BRAVO", 2, 2, "green"),
            Item("item_c", "Charlie stock", "CHARLIE", 2, 1, "violet"),
            Item("item_d", "Delta canister", "DELTA", 1, 2, "red"),
            Item("item_e", "Echo bolt", "ECHO", 1, 1, "grey"),
        ]
    )


# (file, item id, slot size, art seed)
STATIC_ICONS = [
    ("a.png", "item_a", (2, 2), 1),
    ("b.png", "item_b", (2, 2), 2),
    ("c.png", "item_c", (2, 1), 3),
    ("d.png", "item_d", (1, 2), 4),
]


@pytest.fixture
def static_icons(tmp_path):
    """Static icon directory with its correlation file; returns (dir, correlation path, templates)."""
    icon_dir = tmp_path / "static"
    icon_dir.mkdir()
    templates = {}
    for name, _, slots, seed in STATIC_ICONS:
        templates[name] = write_template(icon_dir / name, slots, seed)
    correlation = tmp_path / "correlation.json"
    correlation.write_text(
        json.dumps([{"icon": name, "uid": uid} for name, uid, _, _ in STATIC_ICONS]), encoding="utf-8"
    )
    return icon_dir, correlation, templates


@pytest.fixture
def static_config(static_icons):
    icon_dir, correlation, _ = static_icons
    return Config(
        paths=PathConfig(static_icons=icon_dir, static_correlation=correlation),
        icon=IconConfig(use_static_icons=True, use_dynamic_icons=False, load_retry_delay=0.0),
    )
