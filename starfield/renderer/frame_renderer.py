"""Frame renderer: star field → perspective projection → antialiased raster.

Each frame is a pure function of the (immutable) Simulation and the frame
index. The viewer sits on the tunnel axis at longitudinal position
``viewer_offset(frame)`` and looks down +z; stars already passed wrap around
to the far end of the cylinder.

Pipeline per frame:
    1. viewer_offset = (frame × speed) mod tunnel_length
    2. Zeroed oversized working canvas (full_height, full_width, 3) uint8
    3. Per star: toroidal wrap → depth → pinhole projection → true distance
       → apparent size = a / d → bounding-box cull → sprite → saturating
       composite centered on the projected point
    4. Area-averaged downsample to the output size

Projection is vectorized over all stars; compositing loops over the visible
ones because every sprite has its own size.

Size constant ``a``: a star on the corridor boundary that projects exactly
onto the top/bottom edge of the viewport sits at depth
ndz = viewport_distance × corridor_diameter / viewport_height; with
nd = sqrt(ndz² + corridor_radius²), ``a = max_star_size × nd`` makes that
star exactly ``max_star_size`` pixels wide.

Concurrency:
    - Simulation state is read-only, so frames may render on worker threads
    - render_frames() keeps at most ``workers`` frames in flight
"""

import contextvars
import logging
import math
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

import numpy as np

from starfield.renderer.compositing import composite_clipped
from starfield.renderer.resample import resize
from starfield.renderer.sprite_cache import SpriteCache
from starfield.simulation.star_field import StarField, make_rng
from starfield.utils.logging_config import pop_context, push_context
from starfield.utils.validators import StarfieldConfigV1

logger = logging.getLogger(__name__)


def viewer_offset(frame_index: int, speed: float, tunnel_length: float) -> float:
    """Longitudinal viewer position for a frame, wrapped into [0, tunnel_length)."""
    return math.fmod(frame_index * speed, tunnel_length) % tunnel_length


@dataclass(frozen=True)
class Geometry:
    """Constants derived once from the config.

    Attributes
    ----------
    full_width, full_height : int
        Working canvas size (px)
    output_width, output_height : int
        Final frame size (px)
    viewport_distance, viewport_width, viewport_height : float
        Pinhole optics; viewport_height follows the canvas aspect ratio
    tunnel_length, speed : float
        Motion period and per-frame advance
    size_constant : float
        ``a`` in apparent_size = a / distance
    filter : str
        Final downsampling filter
    """
    full_width: int
    full_height: int
    output_width: int
    output_height: int
    viewport_distance: float
    viewport_width: float
    viewport_height: float
    tunnel_length: float
    speed: float
    size_constant: float
    filter: str

    @classmethod
    def from_config(cls, cfg: StarfieldConfigV1) -> 'Geometry':
        full_w = cfg.render.full_width
        full_h = cfg.render.full_height
        vd = cfg.optics.viewport_distance
        vw = cfg.optics.viewport_width
        # Canvas is wider than high (validated), so height derives from width
        vh = vw * full_h / full_w

        corridor = cfg.tunnel.corridor_diameter
        ndz = vd * corridor / vh
        nd = math.sqrt(ndz * ndz + corridor * corridor / 4.0)

        return cls(
            full_width=full_w,
            full_height=full_h,
            output_width=cfg.output.width,
            output_height=cfg.output.height,
            viewport_distance=vd,
            viewport_width=vw,
            viewport_height=vh,
            tunnel_length=cfg.tunnel.length,
            speed=cfg.motion.speed,
            size_constant=cfg.stars.max_size * nd,
            filter=cfg.render.filter,
        )


@dataclass(frozen=True)
class Simulation:
    """Everything a frame render reads; built once per run, never mutated.

    Attributes
    ----------
    config : StarfieldConfigV1
        Validated configuration
    geometry : Geometry
        Derived projection constants
    star_field : StarField
        Sampled stars
    sprites : SpriteCache
        Reference disc and sprite factory
    """
    config: StarfieldConfigV1
    geometry: Geometry
    star_field: StarField
    sprites: SpriteCache

    @classmethod
    def build(cls, config: StarfieldConfigV1, rng: Optional[np.random.Generator] = None) -> 'Simulation':
        """Sample the star field and build the reference disc.

        Parameters
        ----------
        config : StarfieldConfigV1
            Validated configuration
        rng : np.random.Generator, optional
            Injected random source; defaults to one seeded from ``config.seed``
        """
        if rng is None:
            rng = make_rng(config.seed)
        return cls(
            config=config,
            geometry=Geometry.from_config(config),
            star_field=StarField.from_config(config, rng),
            sprites=SpriteCache.from_config(config.sprite),
        )


@dataclass(frozen=True)
class Projection:
    """Per-star screen placement for one frame (all arrays shape (N,)).

    Attributes
    ----------
    viewer_offset : float
        Viewer position used for this projection
    vx, vy : np.ndarray
        Sprite centers in working-canvas pixels
    size : np.ndarray
        Apparent disc diameters (px)
    extent : np.ndarray
        Sprite side lengths (px) the cache will return
    visible : np.ndarray
        Bool mask of stars whose sprite box touches the canvas
    """
    viewer_offset: float
    vx: np.ndarray
    vy: np.ndarray
    size: np.ndarray
    extent: np.ndarray
    visible: np.ndarray


def project_stars(simulation: Simulation, frame_index: int) -> Projection:
    """Project every star for ``frame_index`` and mark the visible ones."""
    geo = simulation.geometry
    stars = simulation.star_field
    pos = viewer_offset(frame_index, geo.speed, geo.tunnel_length)

    # Stars at or past the viewer belong to the next repetition of the cylinder
    z = np.where(stars.z >= pos, stars.z - geo.tunnel_length, stars.z)
    depth = pos - z + geo.viewport_distance

    rx = stars.x * geo.viewport_distance / depth
    ry = stars.y * geo.viewport_distance / depth
    d = np.sqrt(stars.x * stars.x + stars.y * stars.y + depth * depth)

    half_w = geo.full_width / 2.0
    half_h = geo.full_height / 2.0
    vx = rx / geo.viewport_width * half_w + half_w
    vy = ry / geo.viewport_height * half_h + half_h

    size = geo.size_constant / d
    extent = simulation.sprites.sprite_extents(size)

    half = extent / 2.0
    visible = (
        (vx + half > 0.0) & (vy + half > 0.0)
        & (vx - half < geo.full_width) & (vy - half < geo.full_height)
    )

    return Projection(pos, vx, vy, size, extent, visible)


def render_frame(simulation: Simulation, frame_index: int) -> np.ndarray:
    """Render one output frame.

    Parameters
    ----------
    simulation : Simulation
        Shared, read-only run state
    frame_index : int
        Frame number (≥ 0)

    Returns
    -------
    np.ndarray
        uint8 RGB frame, shape (output_height, output_width, 3)
    """
    return rasterize(simulation, project_stars(simulation, frame_index))


def rasterize(simulation: Simulation, proj: Projection) -> np.ndarray:
    """Composite the visible stars of a projection and downsample."""
    geo = simulation.geometry
    canvas = np.zeros((geo.full_height, geo.full_width, 3), dtype=np.uint8)

    for i in np.flatnonzero(proj.visible):
        sprite = simulation.sprites.scale_sprite(float(proj.size[i]))
        half = sprite.shape[1] / 2.0
        composite_clipped(canvas, sprite, int(proj.vx[i] - half), int(proj.vy[i] - half))

    out = resize(canvas, geo.output_width, geo.output_height, geo.filter)
    del canvas
    return out


class FrameRenderer:
    """Renders frames of one Simulation, with progress diagnostics.

    Parameters
    ----------
    simulation : Simulation
        Shared run state
    """

    def __init__(self, simulation: Simulation):
        self.simulation = simulation

    @property
    def period_frames(self) -> Optional[int]:
        """Frames after which the animation repeats exactly, if integral."""
        geo = self.simulation.geometry
        if geo.speed <= 0.0:
            return None
        period = geo.tunnel_length / geo.speed
        if not float(period).is_integer():
            return None
        return int(period)

    def output_shape(self) -> Tuple[int, int, int]:
        geo = self.simulation.geometry
        return geo.output_height, geo.output_width, 3

    def render(self, frame_index: int) -> np.ndarray:
        """Render ``frame_index``; see ``render_frame``."""
        if frame_index < 0:
            raise ValueError(f"Frame index must be non-negative, got {frame_index}")
        push_context(frame=frame_index)
        try:
            proj = project_stars(self.simulation, frame_index)
            logger.debug(
                f"offset={proj.viewer_offset:.3f}, "
                f"visible={int(proj.visible.sum())}/{len(proj.visible)}"
            )
            return rasterize(self.simulation, proj)
        finally:
            pop_context(keys=["frame"])

    def render_many(self, frame_indices: Iterable[int], workers: int = 1) -> Iterator[Tuple[int, np.ndarray]]:
        """Yield (index, frame) in order; see ``render_frames``."""
        return render_frames(self, frame_indices, workers)


def render_frames(
    renderer: FrameRenderer,
    frame_indices: Iterable[int],
    workers: int = 1
) -> Iterator[Tuple[int, np.ndarray]]:
    """Render frames in index order, optionally on worker threads.

    Parameters
    ----------
    renderer : FrameRenderer
        Renderer bound to a Simulation
    frame_indices : iterable of int
        Frames to produce, yielded in this order
    workers : int
        Concurrent frames; 1 renders inline

    Yields
    ------
    (int, np.ndarray)
        Frame index and uint8 RGB frame

    Notes
    -----
    With workers > 1 at most ``workers`` frames are submitted ahead of the
    consumer, so peak memory stays at ``workers`` working canvases. Worker
    tasks inherit the caller's logging context (e.g. ``run``). Closing
    the generator early stops submitting new frames.
    """
    if workers <= 1:
        for index in frame_indices:
            yield index, renderer.render(index)
        return

    pending = deque()
    indices = iter(frame_indices)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="frame") as pool:
        try:
            for index in indices:
                # Each task runs in its own copy of the caller's logging context
                ctx = contextvars.copy_context()
                pending.append((index, pool.submit(ctx.run, renderer.render, index)))
                if len(pending) >= workers:
                    done_index, future = pending.popleft()
                    yield done_index, future.result()
            while pending:
                done_index, future = pending.popleft()
                yield done_index, future.result()
        finally:
            for _, future in pending:
                future.cancel()
