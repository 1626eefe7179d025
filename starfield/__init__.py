"""Starfield: procedural flight through a tunnel of stars.

Renders an animation of a viewer travelling along the axis of a cylinder
filled with point-light stars, to numbered stills or a video file.

Architecture layers (strict one-way dependency):
    scripts/ → starfield.pipeline → starfield.{sinks,renderer} → starfield.simulation → starfield.utils

Key invariants:
    - Two resolutions: working canvas (oversampled) and output frame
    - Stars and reference disc are built once and never mutated
    - Each frame depends only on the Simulation and its index (deterministic
      for a seeded run, periodic in tunnel_length / speed)
    - Light accumulates by saturating 8-bit addition
    - YAML-only configs, validated by pydantic (schema starfield.v1)
"""

__version__ = "1.0.0"
