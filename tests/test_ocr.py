"""Short-name OCR helpers with an injected text reader."""

import numpy as np
import pytest

from gridsight.data.items import Item
from gridsight.vision.geometry import IntVector
from gridsight.vision.ocr import ShortNameReader, name_similarity, normalize_name, prepare_strip

ITEMS = [
    Item("m4", short_name="M4A1", width=5, height=2),
    Item("ak", short_name="AK-74N", width=5, height=2),
    Item("tall", short_name="VOG-25", width=1, height=2),
    Item("wide", short_name="TOZ", width=2, height=1),
]


def test_normalize_and_similarity():
    assert normalize_name(" ak-74n\n") == "AK74N"
    assert name_similarity("AK-74N", "ak74n") == 1.0
    assert name_similarity("", "AK") == 0.0
    assert 0.0 < name_similarity("M4A1", "M4") < 1.0


def test_prepare_strip_is_binary_and_upscaled():
    strip = np.zeros((10, 30, 3), np.uint8)
    strip[3:7, 5:25] = 230
    out = prepare_strip(strip)
    assert out.shape == (20, 60)
    assert set(np.unique(out)) <= {0, 255}
    # Light text becomes dark on a light background
    assert out[10, 30] == 0 and out[0, 0] == 255


def test_best_item_only_considers_matching_size():
    item, score = ShortNameReader.best_item("AK74N", ITEMS, IntVector(5, 2))
    assert item.id == "ak" and score == 1.0
    assert ShortNameReader.best_item("AK74N", ITEMS, IntVector(1, 1)) == (None, 0.0)
    assert ShortNameReader.best_item("...", ITEMS, IntVector(5, 2)) == (None, 0.0)


def test_read_uses_top_strip_of_icon():
    seen = []

    def reader(img):
        seen.append(img.shape)
        return "  M4A1 \n"

    icon = np.zeros((127, 316, 3), np.uint8)
    text = ShortNameReader(reader).read(icon, 63)
    assert text == "M4A1"
    assert seen == [(36, 632)]


def test_identify_reads_rotated_cells_upright():
    texts = iter(["", "TOZ"])
    reader = ShortNameReader(lambda img: next(texts))
    icon = np.zeros((127, 64, 3), np.uint8)
    item, score, rotated = reader.identify(icon, ITEMS, IntVector(1, 2), 63)
    assert item.id == "wide"
    assert rotated is True
    assert score == pytest.approx(1.0)


def test_identify_prefers_upright_reading():
    reader = ShortNameReader(lambda img: "VOG-25")
    item, score, rotated = reader.identify(np.zeros((127, 64, 3), np.uint8), ITEMS, IntVector(1, 2), 63)
    assert item.id == "tall"
    assert rotated is False
