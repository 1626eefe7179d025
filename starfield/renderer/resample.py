"""Downscaling filters shared by sprite generation and frame output.

    - "area": OpenCV INTER_AREA, pixel-area averaging
    - "triangle": Pillow BILINEAR, a triangle filter whose support widens
      with the reduction factor

Both accept uint8 (H, W) or (H, W, 3) arrays and return the same layout.
"""

import cv2
import numpy as np
from PIL import Image


def resize(img: np.ndarray, width: int, height: int, filter: str = "area") -> np.ndarray:
    """Resample ``img`` to ``width`` x ``height``.

    Parameters
    ----------
    img : np.ndarray
        uint8 image, (H, W) or (H, W, 3); views are accepted
    width, height : int
        Target size in pixels
    filter : str
        "area" or "triangle"

    Returns
    -------
    np.ndarray
        New contiguous uint8 array of shape (height, width[, 3])
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    img = np.ascontiguousarray(img)
    if img.shape[1] == width and img.shape[0] == height:
        return img.copy()

    if filter == "area":
        return cv2.resize(img, (width, height), interpolation=cv2.INTER_AREA)
    if filter == "triangle":
        resized = Image.fromarray(img).resize((width, height), Image.Resampling.BILINEAR)
        return np.asarray(resized, dtype=np.uint8).copy()
    raise ValueError(f"Unknown resample filter: {filter}. Use 'area' or 'triangle'.")
