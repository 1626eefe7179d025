"""Tests for additive compositing primitives.

Test suites:
1. Saturating addition (clamping, order independence, dtype/shape checks)
2. Overlap rectangle computation
3. Clipped compositing at every edge of the destination

Run:
    pytest tests/test_compositing.py -v
"""

import numpy as np
import pytest

from starfield.renderer.compositing import composite_clipped, overlap_rect, saturating_add


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def canvas():
    """Black 10×10 RGB canvas."""
    return np.zeros((10, 10, 3), dtype=np.uint8)


@pytest.fixture
def white_square():
    """Fully lit 4×4 RGB sprite."""
    return np.full((4, 4, 3), 255, dtype=np.uint8)


# ============================================================================
# SATURATING ADD
# ============================================================================

def test_saturating_add_clamps_at_255():
    dest = np.array([[200, 10, 255]], dtype=np.uint8)
    saturating_add(dest, np.array([[100, 20, 1]], dtype=np.uint8))
    np.testing.assert_array_equal(dest, [[255, 30, 255]])


def test_saturating_add_matches_widened_sum():
    rng = np.random.default_rng(0)
    a = rng.integers(0, 256, size=(16, 16, 3), dtype=np.uint8)
    b = rng.integers(0, 256, size=(16, 16, 3), dtype=np.uint8)

    expected = np.minimum(a.astype(np.int32) + b, 255).astype(np.uint8)
    saturating_add(a, b)

    np.testing.assert_array_equal(a, expected)


def test_saturating_add_order_independent():
    rng = np.random.default_rng(1)
    layers = [rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8) for _ in range(3)]

    forward = np.zeros((8, 8, 3), dtype=np.uint8)
    for layer in layers:
        saturating_add(forward, layer)
    backward = np.zeros((8, 8, 3), dtype=np.uint8)
    for layer in reversed(layers):
        saturating_add(backward, layer)

    np.testing.assert_array_equal(forward, backward)


def test_saturating_add_rejects_shape_mismatch():
    with pytest.raises(AssertionError):
        saturating_add(np.zeros((4, 4, 3), np.uint8), np.zeros((4, 5, 3), np.uint8))


def test_saturating_add_rejects_non_uint8():
    with pytest.raises(AssertionError):
        saturating_add(np.zeros((2, 2), np.uint8), np.zeros((2, 2), np.float32))


def test_saturating_add_writes_through_view():
    parent = np.zeros((6, 6), dtype=np.uint8)
    saturating_add(parent[2:4, 2:4], np.full((2, 2), 9, dtype=np.uint8))

    assert parent[2:4, 2:4].sum() == 36
    assert parent.sum() == 36


# ============================================================================
# OVERLAP RECTANGLE
# ============================================================================

@pytest.mark.parametrize("offset", [(-4, 0), (0, -4), (10, 0), (0, 10), (-20, -20), (30, 30)])
def test_overlap_rect_none_when_disjoint(offset):
    assert overlap_rect((10, 10, 3), (4, 4, 3), *offset) is None


def test_overlap_rect_fully_inside():
    assert overlap_rect((10, 10, 3), (4, 4, 3), 3, 5) == (0, 0, 4, 4)


def test_overlap_rect_top_left_overhang():
    assert overlap_rect((10, 10, 3), (4, 4, 3), -1, -3) == (1, 3, 3, 1)


def test_overlap_rect_bottom_right_overhang():
    assert overlap_rect((10, 10, 3), (4, 4, 3), 7, 9) == (0, 0, 3, 1)


def test_overlap_rect_source_larger_than_dest():
    # Sprite covers the whole destination with margin on every side
    assert overlap_rect((10, 10, 3), (16, 16, 3), -3, -3) == (3, 3, 10, 10)


# ============================================================================
# CLIPPED COMPOSITING
# ============================================================================

def test_composite_top_left_corner(canvas, white_square):
    composite_clipped(canvas, white_square, -2, -2)

    assert np.all(canvas[0:2, 0:2] == 255)
    assert canvas.sum() == 2 * 2 * 3 * 255


def test_composite_bottom_right_corner(canvas, white_square):
    composite_clipped(canvas, white_square, 8, 8)

    assert np.all(canvas[8:10, 8:10] == 255)
    assert canvas.sum() == 2 * 2 * 3 * 255


def test_composite_outside_is_noop(canvas, white_square):
    composite_clipped(canvas, white_square, -4, 3)
    composite_clipped(canvas, white_square, 10, 3)
    composite_clipped(canvas, white_square, 3, 50)

    assert canvas.sum() == 0


def test_composite_interior_accumulates(canvas):
    dim = np.full((4, 4, 3), 100, dtype=np.uint8)
    composite_clipped(canvas, dim, 1, 1)
    composite_clipped(canvas, dim, 3, 3)

    assert canvas[1, 1, 0] == 100
    assert canvas[3, 3, 0] == 200
    assert canvas[5, 5, 0] == 100
    assert canvas[0, 0, 0] == 0


def test_composite_saturates(canvas, white_square):
    for _ in range(3):
        composite_clipped(canvas, white_square, 2, 2)

    assert canvas.max() == 255
    assert canvas.dtype == np.uint8
