"""Star tunnel rasterizer.

Turns the 3-D star cloud into 8-bit RGB frames:
    - compositing: saturating additive blends (clipped to the canvas)
    - sprite_cache: supersampled reference disc → antialiased sprites
    - resample: area / triangle downscaling filters
    - frame_renderer: projection, culling, compositing, downsampling

Invariants:
    - Working canvas and sprites are uint8; light accumulates by saturating add
    - Simulation state (stars, reference disc) is read-only during rendering
    - Internal inconsistencies raise AssertionError subclasses and are not caught

Used by:
    - pipeline.render_animation: frame loop feeding a sink
    - tests: determinism and periodicity checks
"""

from .compositing import composite_clipped, saturating_add
from .frame_renderer import FrameRenderer, Geometry, Simulation, render_frame, render_frames
from .sprite_cache import SpriteCache, SpriteInvariantError

__all__ = [
    'composite_clipped',
    'saturating_add',
    'FrameRenderer',
    'Geometry',
    'Simulation',
    'render_frame',
    'render_frames',
    'SpriteCache',
    'SpriteInvariantError',
]
