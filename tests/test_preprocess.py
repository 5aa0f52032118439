"""Tests for geometry helpers and the stateless preprocessing functions."""

import numpy as np
import pytest

from gridsight.vision.geometry import (
    BoundingBox,
    IntVector,
    is_whole_slot_extent,
    pixels_to_slots,
    slot_size_of,
)
from gridsight.vision.preprocess import (
    alpha_blend,
    compose_icon_background,
    crop,
    hsv_band,
    line_kernel,
    rescale,
    rotate_ccw,
    tile,
    to_bgr,
)


def test_int_vector_arithmetic():
    v = IntVector(3, 5)
    assert v + (1, 2) == IntVector(4, 7)
    assert v - IntVector(1, 1) == IntVector(2, 4)
    assert v.swapped() == IntVector(5, 3)
    assert v.scaled(1.5) == IntVector(4, 7)
    assert v.area == 15


@pytest.mark.parametrize(
    "pixels, slots",
    [(64, 1), (127, 2), (190, 3), (253, 4)],
)
def test_pixels_to_slots_uses_one_pixel_margin(pixels, slots):
    assert pixels_to_slots(pixels, 63) == slots
    assert is_whole_slot_extent(pixels, 63, 0.01)


def test_whole_slot_extent_rejects_fractional_and_empty():
    assert not is_whole_slot_extent(70, 63, 0.01)
    assert not is_whole_slot_extent(2, 63, 0.1)
    # Forgiving tolerance accepts a one pixel deviation at QHD scale
    assert is_whole_slot_extent(86, 84, 0.1)
    assert slot_size_of((127, 64), 63) == IntVector(2, 1)


def test_bounding_box_containment_excludes_far_border():
    box = BoundingBox(IntVector(10, 10), IntVector(64, 64))
    assert box.contains((10, 10))
    assert box.contains((72, 72))
    assert not box.contains((73, 40))
    assert box.contains((73, 40), inclusive=True)
    assert not box.contains((74, 40), inclusive=True)


def test_bounding_box_overlap_union_and_padding():
    a = BoundingBox(IntVector(0, 0), IntVector(64, 64))
    b = BoundingBox(IntVector(32, 40), IntVector(64, 64))
    assert a.overlap(b) == IntVector(32, 24)
    assert a.intersects(b)
    assert a.union(b).as_rect() == (0, 0, 96, 104)
    far = BoundingBox(IntVector(100, 0), IntVector(10, 10))
    assert a.overlap(far) == IntVector(0, 10)
    assert not a.intersects(far)
    padded = a.padded(8, bounds=(60, 200))
    assert padded.as_rect() == (0, 0, 60, 72)


def test_rescale_interpolation_and_identity():
    img = np.arange(100 * 80 * 3, dtype=np.uint8).reshape(100, 80, 3)
    assert rescale(img, 1.0) is img
    assert rescale(img, 0.5).shape == (50, 40, 3)
    assert rescale(img, 1.5).shape == (150, 120, 3)


def test_rotate_ccw_swaps_dimensions_and_moves_corner():
    img = np.zeros((4, 6), dtype=np.uint8)
    img[0, 5] = 255  # top-right
    out = rotate_ccw(img)
    assert out.shape == (6, 4)
    assert out[0, 0] == 255  # top-right becomes top-left


def test_crop_copies_buffer():
    img = np.zeros((20, 20, 3), dtype=np.uint8)
    part = crop(img, BoundingBox(IntVector(5, 5), IntVector(4, 3)))
    assert part.shape == (3, 4, 3)
    part[:] = 255
    assert img.max() == 0


def test_hsv_band_selects_neutral_grey_only():
    img = np.zeros((1, 3, 3), dtype=np.uint8)
    img[0, 0] = (100, 100, 100)
    img[0, 1] = (0, 0, 255)
    img[0, 2] = (30, 30, 30)
    mask = hsv_band(img, (0, 0, 70), (179, 80, 125))
    assert mask.tolist() == [[255, 0, 0]]


def test_line_kernel_is_odd_and_oriented():
    v = line_kernel(56.7, vertical=True)
    h = line_kernel(56.7, vertical=False)
    assert v.shape == (57, 1)
    assert h.shape == (1, 57)
    assert line_kernel(10, vertical=True).shape == (11, 1)


def test_alpha_blend_respects_alpha_channel():
    bottom = np.zeros((1, 2, 3), dtype=np.uint8)
    top = np.zeros((1, 2, 4), dtype=np.uint8)
    top[0, :, :3] = 200
    top[0, 0, 3] = 255
    top[0, 1, 3] = 0
    out = alpha_blend(bottom, top)
    assert out[0, 0].tolist() == [200, 200, 200]
    assert out[0, 1].tolist() == [0, 0, 0]


def test_tile_covers_requested_size():
    pattern = np.array([[1, 2], [3, 4]], dtype=np.uint8)
    out = tile(pattern, (5, 3))
    assert out.shape == (3, 5)
    assert out[2, 4] == 1


def test_compose_icon_background_layers():
    icon = np.zeros((64, 64, 4), dtype=np.uint8)
    icon[20:40, 20:40] = (0, 0, 255, 255)
    out = compose_icon_background(icon, (200, 0, 0), 255, (100, 100, 100))
    assert out.shape == (64, 64, 3)
    assert out[0, 0].tolist() == [100, 100, 100]  # border
    assert out[10, 10].tolist() == [200, 0, 0]  # background colour
    assert out[30, 30].tolist() == [0, 0, 255]  # icon on top
    # Opaque icons pass through unchanged
    opaque = np.full((64, 64, 3), 7, dtype=np.uint8)
    assert np.array_equal(compose_icon_background(opaque, (0, 0, 0), 100, (1, 1, 1)), opaque)


def test_compose_icon_background_overlay_top_left():
    icon = np.zeros((64, 64, 4), dtype=np.uint8)
    overlay = np.zeros((8, 8, 4), dtype=np.uint8)
    overlay[:, :] = (0, 255, 0, 255)
    out = compose_icon_background(icon, (0, 0, 0), 0, (100, 100, 100), overlay=overlay)
    assert out[4, 4].tolist() == [0, 255, 0]
    assert out[20, 20].tolist() == [0, 0, 0]


def test_to_bgr_normalizes_channels():
    assert to_bgr(np.zeros((2, 2), np.uint8)).shape == (2, 2, 3)
    assert to_bgr(np.zeros((2, 2, 4), np.uint8)).shape == (2, 2, 3)
