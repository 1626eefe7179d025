"""Additive compositing primitives for 8-bit images.

Light from overlapping stars accumulates by saturating addition: channel
values add and clamp at 255 instead of wrapping around. The clipped variant
overlays a source that may hang off any edge of the destination.

Invariants:
    - Both images are uint8; shapes must match exactly for saturating_add
    - Destination is modified in place; crops are numpy views, so writing a
      cropped view updates the parent canvas
    - Shape mismatches are programming errors (AssertionError), never
      recoverable conditions
"""

from typing import Optional, Tuple

import numpy as np


def saturating_add(dest: np.ndarray, src: np.ndarray) -> None:
    """Add ``src`` into ``dest`` in place, clamping every channel at 255.

    Parameters
    ----------
    dest : np.ndarray
        Destination image (or view), uint8, shape (H, W) or (H, W, C)
    src : np.ndarray
        Source image, uint8, same shape as ``dest``

    Examples
    --------
    >>> a = np.array([[200]], dtype=np.uint8)
    >>> saturating_add(a, np.array([[100]], dtype=np.uint8))
    >>> int(a[0, 0])
    255
    """
    assert dest.shape == src.shape, f"shape mismatch: dest {dest.shape} vs src {src.shape}"
    assert dest.dtype == np.uint8 and src.dtype == np.uint8, (
        f"expected uint8 images, got {dest.dtype} and {src.dtype}"
    )

    # min(src, headroom) keeps the sum inside uint8 without widening
    np.add(dest, np.minimum(src, 255 - dest), out=dest)


def overlap_rect(
    dest_shape: Tuple[int, ...],
    src_shape: Tuple[int, ...],
    offset_x: int,
    offset_y: int
) -> Optional[Tuple[int, int, int, int]]:
    """Rectangle of ``src`` that lands on ``dest`` when placed at the offset.

    Parameters
    ----------
    dest_shape, src_shape : tuple
        Array shapes, (H, W[, C])
    offset_x, offset_y : int
        Position of the source's top-left pixel in destination coordinates
        (may be negative)

    Returns
    -------
    tuple or None
        (src_x, src_y, width, height) of the visible part of the source, or
        None when nothing overlaps. The matching destination origin is
        (offset_x + src_x, offset_y + src_y).
    """
    dest_h, dest_w = dest_shape[:2]
    src_h, src_w = src_shape[:2]

    if (offset_x + src_w <= 0 or offset_y + src_h <= 0
            or offset_x >= dest_w or offset_y >= dest_h):
        return None

    src_x = max(0, -offset_x)
    src_y = max(0, -offset_y)

    if offset_x + src_w < dest_w:
        width = src_w - src_x
    else:
        width = dest_w - offset_x - src_x
    if offset_y + src_h < dest_h:
        height = src_h - src_y
    else:
        height = dest_h - offset_y - src_y

    return src_x, src_y, width, height


def composite_clipped(dest: np.ndarray, src: np.ndarray, offset_x: int, offset_y: int) -> None:
    """Saturating-add ``src`` onto ``dest`` at an offset, clipped to ``dest``.

    Parameters
    ----------
    dest : np.ndarray
        Destination canvas, uint8, modified in place
    src : np.ndarray
        Source image, uint8, same channel layout as ``dest``
    offset_x, offset_y : int
        Top-left position of ``src`` on ``dest``; negative values and sources
        hanging past the right/bottom edge are clipped

    Notes
    -----
    A source entirely outside the destination is a silent no-op.
    """
    rect = overlap_rect(dest.shape, src.shape, int(offset_x), int(offset_y))
    if rect is None:
        return

    src_x, src_y, width, height = rect
    dest_x = int(offset_x) + src_x
    dest_y = int(offset_y) + src_y

    saturating_add(
        dest[dest_y:dest_y + height, dest_x:dest_x + width],
        src[src_y:src_y + height, src_x:src_x + width]
    )
