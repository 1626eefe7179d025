"""Star field model: a fixed cloud of stars inside a hollow cylinder.

Stars are sampled once and never move. The viewer travels along the
cylinder axis (z); the cylinder repeats along z, so a finite set of stars
makes an endless tunnel.

Sampling (independent, uniform per attribute):
    - radial distance ∈ [corridor_radius, field_radius]
    - angle ∈ [0, 2π)
    - z ∈ [0, tunnel_length)
    - size ∈ [0, max_size]

Distance is sampled uniformly, not area-weighted, so stars are denser near
the corridor than near the cylinder wall.

Storage is column-wise (one float64 array per attribute); all arrays are
read-only after construction.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


def make_rng(seed: Optional[int]) -> np.random.Generator:
    """Random source for star sampling.

    Parameters
    ----------
    seed : int or None
        Explicit seed for a reproducible field; None draws fresh OS entropy

    Returns
    -------
    np.random.Generator
    """
    if seed is None:
        logger.warning("No seed configured: star field will differ between runs")
    return np.random.default_rng(seed)


@dataclass(frozen=True)
class StarField:
    """Immutable star positions and base sizes.

    Attributes
    ----------
    x, y : np.ndarray
        Cartesian offsets from the tunnel axis, shape (N,)
    z : np.ndarray
        Longitudinal positions in [0, tunnel_length), shape (N,)
    size : np.ndarray
        Base apparent sizes in [0, max_size], shape (N,)
    tunnel_length : float
        Period of the field along z
    """
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    size: np.ndarray
    tunnel_length: float

    def __post_init__(self):
        n = len(self.x)
        for name in ('y', 'z', 'size'):
            if len(getattr(self, name)) != n:
                raise ValueError(f"StarField column '{name}' has {len(getattr(self, name))} rows, expected {n}")
        for name in ('x', 'y', 'z', 'size'):
            getattr(self, name).setflags(write=False)

    def __len__(self) -> int:
        return len(self.x)

    def radial_distance(self) -> np.ndarray:
        """Distance of each star from the tunnel axis."""
        return np.hypot(self.x, self.y)

    @classmethod
    def from_config(cls, cfg, rng: np.random.Generator) -> 'StarField':
        """Sample a field from a validated ``StarfieldConfigV1``."""
        return init_star_field(
            star_count=cfg.stars.count,
            corridor_radius=cfg.tunnel.corridor_diameter / 2.0,
            field_radius=cfg.tunnel.diameter / 2.0,
            tunnel_length=cfg.tunnel.length,
            max_size=cfg.stars.max_size,
            rng=rng,
        )


def init_star_field(
    star_count: int,
    corridor_radius: float,
    field_radius: float,
    tunnel_length: float,
    max_size: float,
    rng: np.random.Generator
) -> StarField:
    """Sample ``star_count`` stars.

    Parameters
    ----------
    star_count : int
        Number of stars (0 gives an empty field)
    corridor_radius : float
        Inner radius kept free of stars
    field_radius : float
        Outer radius of the star cylinder
    tunnel_length : float
        Cylinder length along z
    max_size : float
        Upper bound of the base size
    rng : np.random.Generator
        Injected random source; seed it for reproducible fields

    Returns
    -------
    StarField
    """
    if star_count < 0:
        raise ValueError(f"star_count must be non-negative, got {star_count}")
    if not 0.0 <= corridor_radius <= field_radius:
        raise ValueError(
            f"Need 0 ≤ corridor_radius ≤ field_radius, got {corridor_radius} and {field_radius}"
        )

    distance = rng.uniform(corridor_radius, field_radius, size=star_count)
    angle = rng.uniform(0.0, 2.0 * np.pi, size=star_count)
    z = rng.uniform(0.0, tunnel_length, size=star_count)
    size = rng.uniform(0.0, max_size, size=star_count)

    field = StarField(
        x=distance * np.cos(angle),
        y=distance * np.sin(angle),
        z=z,
        size=size,
        tunnel_length=float(tunnel_length),
    )
    logger.debug(
        f"Star field sampled: n={star_count}, r∈[{corridor_radius}, {field_radius}], "
        f"length={tunnel_length}"
    )
    return field
