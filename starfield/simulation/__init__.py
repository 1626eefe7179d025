"""Star field model (sampled once, read-only afterwards)."""

from .star_field import StarField, init_star_field, make_rng

__all__ = ['StarField', 'init_star_field', 'make_rng']
