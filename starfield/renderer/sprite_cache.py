"""Antialiased star sprites cut from one supersampled reference disc.

Discs are never drawn with analytic coverage. Instead one large binary disc
is drawn once, and each sprite is obtained by cropping a centered square of
the reference canvas and area-resampling it down. The crop is chosen so that
the disc in the resampled sprite has exactly the requested diameter while
the sprite itself stays a whole number of pixels wide.

Architecture:
    - build_reference_disc(): binary mask, disc_size wide, centered in a
      canvas_size square (canvas_size several times disc_size)
    - SpriteCache.scale_sprite(size):
        size ≤ 1 → 1×1 pixel, gray = round(size × 255) (keeps total light)
        size > 1 → crop + resample to floor(canvas_size × size / disc_size)

Invariants:
    - Reference disc is immutable after construction (read-only array), so
      one cache can serve concurrent frame renders
    - The cropped sub-region is never narrower than the drawn disc; a
      violation raises SpriteInvariantError (fatal)
    - Sprites are uint8 (h, w, 3) with the gray value replicated per channel
"""

import logging
import math

import numpy as np

from starfield.renderer.resample import resize

logger = logging.getLogger(__name__)

CHANNELS = 3


class SpriteInvariantError(AssertionError):
    """Sprite geometry broke an internal invariant (configuration defect)."""


def build_reference_disc(canvas_size: int, disc_size: int) -> np.ndarray:
    """Draw the binary reference disc.

    Parameters
    ----------
    canvas_size : int
        Side of the square reference canvas (px)
    disc_size : int
        Diameter of the disc drawn in its center (px), ≤ canvas_size

    Returns
    -------
    np.ndarray
        (canvas_size, canvas_size) uint8, 255 inside the unit circle, 0 elsewhere

    Notes
    -----
    Subpixel centers map to normalized coordinates ((i + 0.5) / disc_size) * 2 - 1,
    which lie strictly inside (-1, 1).
    """
    if disc_size > canvas_size:
        raise ValueError(f"Disc size {disc_size} exceeds canvas size {canvas_size}")

    coords = (np.arange(disc_size, dtype=np.float64) + 0.5) / disc_size * 2.0 - 1.0
    cy, cx = np.meshgrid(coords, coords, indexing='ij')
    inside = cx * cx + cy * cy <= 1.0

    disc = np.zeros((canvas_size, canvas_size), dtype=np.uint8)
    start = canvas_size // 2 - disc_size // 2
    disc[start:start + disc_size, start:start + disc_size] = np.where(inside, 255, 0)
    return disc


def subpixel_gray(size: float) -> int:
    """Gray level of a star smaller than one pixel (round half up, clamped)."""
    return int(min(255, math.floor(max(size, 0.0) * 255.0 + 0.5)))


class SpriteCache:
    """Produces star sprites of arbitrary apparent diameter.

    Attributes
    ----------
    canvas_size : int
        Reference canvas side (px)
    disc_size : int
        Drawn disc diameter (px)
    filter : str
        Resampling filter for sprite reduction ("area" or "triangle")
    disc : np.ndarray
        Read-only reference disc, (canvas_size, canvas_size) uint8
    """

    def __init__(self, canvas_size: int = 128, disc_size: int = 32, filter: str = "area"):
        self.canvas_size = int(canvas_size)
        self.disc_size = int(disc_size)
        self.filter = filter

        self.disc = build_reference_disc(self.canvas_size, self.disc_size)
        self.disc.setflags(write=False)

        logger.debug(
            f"Reference disc built: canvas={self.canvas_size}px, disc={self.disc_size}px, "
            f"filter={self.filter}"
        )

    @classmethod
    def from_config(cls, sprite_cfg) -> 'SpriteCache':
        """Build from a validated ``SpriteConfig``."""
        return cls(sprite_cfg.canvas_size, sprite_cfg.disc_size, sprite_cfg.filter)

    def _ideal_size(self, apparent_size: float) -> float:
        return self.canvas_size * (apparent_size / self.disc_size)

    def sprite_extent(self, apparent_size: float) -> int:
        """Side length (px) of the sprite ``scale_sprite`` returns for this size."""
        if apparent_size <= 1.0:
            return 1
        return int(math.floor(self._ideal_size(apparent_size)))

    def sprite_extents(self, sizes: np.ndarray) -> np.ndarray:
        """Vectorized ``sprite_extent`` (float array of side lengths)."""
        sizes = np.asarray(sizes, dtype=np.float64)
        ideal = self.canvas_size * (sizes / self.disc_size)
        return np.where(sizes <= 1.0, 1.0, np.floor(ideal))

    def sub_region_size(self, apparent_size: float) -> int:
        """Side of the reference-canvas crop used for ``apparent_size`` > 1.

        The crop is the whole canvas shrunk by floor(ideal) / ideal, so the
        disc keeps its exact relative size after resampling to floor(ideal).
        """
        ideal = self._ideal_size(apparent_size)
        real = math.floor(ideal)
        return int(self.canvas_size * (real / ideal))

    def scale_sprite(self, apparent_size: float) -> np.ndarray:
        """Sprite whose disc has the given diameter in working-canvas pixels.

        Parameters
        ----------
        apparent_size : float
            Target disc diameter (px); may be fractional or below one pixel

        Returns
        -------
        np.ndarray
            uint8 (n, n, 3) sprite; n = 1 for apparent_size ≤ 1

        Raises
        ------
        SpriteInvariantError
            If the extracted sub-region is narrower than the drawn disc
        """
        if apparent_size <= 1.0:
            gray = subpixel_gray(apparent_size)
            return np.full((1, 1, CHANNELS), gray, dtype=np.uint8)

        real = self.sprite_extent(apparent_size)
        sub = self.sub_region_size(apparent_size)
        if sub < self.disc_size:
            raise SpriteInvariantError(
                f"sub-region {sub}px narrower than disc {self.disc_size}px "
                f"for apparent size {apparent_size:.4f}"
            )

        border = (self.canvas_size - sub) // 2
        crop = self.disc[border:border + sub, border:border + sub]
        gray = resize(crop, real, real, self.filter)
        return np.repeat(gray[:, :, np.newaxis], CHANNELS, axis=2)
