"""Grid mask extraction and boundary tracing."""

from dataclasses import replace

import numpy as np
import pytest

from gridsight.core.settings import Config
from gridsight.vision.geometry import BoundingBox, IntVector
from gridsight.vision.grid import GridDetector, GridMask
from gridsight.vision.walker import GridWalker

from synthetic import (
    GRID_BGR,
    HIGHLIGHT_BGR,
    SLOT,
    binary_grid,
    blank_screen,
    cell_origin,
    draw_grid,
    inventory_screen,
    make_template,
)


def _mask(grid):
    return GridMask(grid, grid.copy())


def test_trace_single_cell_on_binary_grid():
    grid = binary_grid((200, 200), (10, 20), (2, 2))
    box = GridWalker(SLOT).trace(grid, 10, 40)
    assert box == BoundingBox(IntVector(10, 20), IntVector(64, 64))


def test_trace_from_corner_seed_traces_cell_below():
    grid = binary_grid((200, 200), (10, 20), (2, 2))
    box = GridWalker(SLOT).trace(grid, 10, 83)
    assert box.position == IntVector(10, 83)


def test_trace_is_deterministic():
    grid = binary_grid((300, 300), (5, 5), (4, 4))
    walker = GridWalker(SLOT)
    first = [walker.trace(grid, 68, y) for y in range(6, 250, 7)]
    second = [walker.trace(grid, 68, y) for y in range(6, 250, 7)]
    assert first == second
    mask = _mask(grid)
    assert walker.scan(mask) == walker.scan(mask)


def test_trace_rejects_seed_off_mask_and_open_outline():
    grid = binary_grid((200, 200), (10, 20), (2, 2))
    walker = GridWalker(SLOT)
    assert walker.trace(grid, 40, 40) is None
    # Right-most line has nothing to turn into
    assert walker.trace(grid, 136, 40) is None
    # Break the bottom line of the first cell: the east walk leaves the mask
    broken = grid.copy()
    broken[83, 30] = 0
    assert walker.trace(broken, 10, 40) is None


def test_trace_rejects_non_integral_cells():
    grid = np.zeros((200, 200), dtype=np.uint8)
    grid[10, 10:60] = 255
    grid[60, 10:60] = 255
    grid[10:61, 10] = 255
    grid[10:61, 59] = 255
    assert GridWalker(SLOT).trace(grid, 10, 30) is None


def test_scan_finds_every_cell_once():
    grid = binary_grid((400, 300), (7, 11), (5, 3))
    boxes = GridWalker(SLOT).walk(_mask(grid))
    assert len(boxes) == 15
    positions = {b.position for b in boxes}
    assert len(positions) == 15
    assert IntVector(7 + 4 * SLOT, 11 + 2 * SLOT) in positions
    assert all(b.size == IntVector(64, 64) for b in boxes)


def test_multi_slot_cell_when_inner_lines_are_missing():
    grid = binary_grid((300, 300), (0, 0), (3, 3))
    # Remove the inner lines of a 2x2 block at the top-left
    grid[1:126, 63] = 0
    grid[63, 1:126] = 0
    boxes = GridWalker(SLOT).walk(_mask(grid))
    sizes = {b.position: b.size for b in boxes}
    assert sizes[IntVector(0, 0)] == IntVector(127, 127)
    assert len(boxes) == 6  # one 2x2 plus five singles


def test_overlap_resolution_drops_larger_box():
    walker = GridWalker(SLOT)
    small = BoundingBox(IntVector(0, 0), IntVector(64, 64))
    large = BoundingBox(IntVector(0, 0), IntVector(127, 127))
    neighbour = BoundingBox(IntVector(63, 0), IntVector(64, 64))
    kept = walker.resolve_overlaps([large, small, neighbour])
    assert small in kept
    assert large not in kept
    # neighbour only shares a border line with small
    assert neighbour in kept


def test_detector_produces_clean_grid_and_seeds():
    img = draw_grid(blank_screen((400, 300)), (20, 30), (4, 3))
    mask = GridDetector(Config()).detect(img)
    assert not mask.highlighted
    assert mask.grid.shape == (300, 400)
    # Line pixels survive, cell interiors and the outside stay empty
    assert mask.grid[30, 50] and mask.grid[60, 20]
    assert not mask.grid[60, 50]
    assert not mask.grid[5, 5]
    assert mask.seeds[60, 20] and not mask.seeds[30, 50]


def test_detector_ignores_icon_art():
    icon = make_template((2, 2), seed=11)
    img = inventory_screen([(icon, cell_origin(2, 2))])
    mask = GridDetector(Config()).detect(img)
    x, y = cell_origin(2, 2)
    # Inner grid lines hidden by the icon are not reconstructed
    assert not mask.grid[y + 30, x + SLOT]
    assert not mask.grid[y + SLOT, x + 30]
    # The icon frame is part of the grid
    assert mask.grid[y, x + 30] and mask.grid[y + 30, x]


def test_detector_keeps_close_parallel_lines_apart():
    img = blank_screen((100, 200))
    img[20:180, 10] = GRID_BGR
    img[20:180, 13] = GRID_BGR
    grid = GridDetector(Config()).detect(img).grid
    assert grid[100, 10] and grid[100, 13]
    # The final closing bridges one-pixel gaps only
    assert not grid[100, 11] and not grid[100, 12]


def test_detector_bridges_one_pixel_gap():
    img = blank_screen((100, 200))
    img[20:180, 10] = GRID_BGR
    img[20:180, 12] = GRID_BGR
    grid = GridDetector(Config()).detect(img).grid
    assert grid[100, 11]


def test_detector_and_walker_find_multi_slot_icon():
    icon = make_template((2, 2), seed=5)
    x, y = cell_origin(2, 2)
    img = inventory_screen([(icon, (x, y))])
    config = Config()
    boxes = GridWalker(config.scaled_slot_size).walk(GridDetector(config).detect(img))
    by_pos = {b.position: b for b in boxes}
    assert by_pos[IntVector(x, y)].size == IntVector(127, 127)
    # 8x7 cells, one 2x2 icon covering four of them
    assert len(boxes) == 8 * 7 - 3


def test_highlighted_mode_returns_blob_boxes():
    img = draw_grid(blank_screen((400, 300)), (20, 30), (4, 3))
    x, y = 20 + SLOT, 30 + SLOT
    img[y + 1:y + SLOT, x + 1:x + SLOT] = HIGHLIGHT_BGR
    config = replace(Config(), inventory=replace(Config().inventory, optimize_highlighted=True))
    mask = GridDetector(config).detect(img)
    assert mask.highlighted
    boxes = GridWalker(config.scaled_slot_size).walk(mask)
    assert boxes == [BoundingBox(IntVector(x, y), IntVector(64, 64))]


def test_highlight_blobs_merge_when_intersecting_and_drop_specks():
    mask = np.zeros((300, 300), dtype=np.uint8)
    # L-shaped blob whose bounding box encloses a separate square blob
    mask[10:110, 10:20] = 255
    mask[100:110, 10:110] = 255
    mask[30:60, 40:70] = 255
    mask[200:205, 200:205] = 255  # noise
    boxes = GridWalker(SLOT).merge_blobs(mask)
    assert boxes == [BoundingBox(IntVector(10, 10), IntVector(100, 100))]


@pytest.mark.parametrize("scale", [4 / 3, 2.0])
def test_scaled_grid_is_traced(scale):
    slot = int(round(SLOT * scale))
    grid = binary_grid((600, 500), (3, 4), (3, 2), slot=slot)
    boxes = GridWalker(SLOT * scale).walk(_mask(grid))
    assert len(boxes) == 6
    assert all(b.size == IntVector(slot + 1, slot + 1) for b in boxes)
