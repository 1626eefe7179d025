"""YAML schema validation and config loading.

Provides centralized validation for the starfield configuration using pydantic:
    - Render schema (starfield.v1): output/working resolution, tunnel geometry,
      optics, star population, sprite supersampling, animation length, sink

All entrypoints load configs through ``load_starfield_config`` for fail-fast
error detection with actionable messages (offending keys, expected ranges).
Geometry constants that are inconsistent with each other (corridor wider than
the tunnel, stars larger than the reference disc) are rejected here, before
any frame is rendered.

Units:
    - Tunnel geometry and optics: world units (arbitrary, consistent)
    - Resolutions and sprite sizes: pixels of the respective image
    - Speed: world units per frame

Usage:
    from starfield.utils import validators

    cfg = validators.load_starfield_config("configs/starfield_v1.yaml")
    cfg = cfg.with_overrides({"output.kind": "video", "seed": 7})
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RESAMPLE_FILTERS = ("area", "triangle")
SINK_KINDS = ("images", "video")


# ============================================================================
# STARFIELD SCHEMA V1
# ============================================================================

class OutputConfig(BaseModel):
    """Final frame size and sink selection."""
    model_config = ConfigDict(extra='forbid')

    kind: str = Field("images", description="Sink: 'images' (numbered stills) or 'video'")
    width: int = Field(720, gt=0, description="Output width (px)")
    height: int = Field(576, gt=0, description="Output height (px)")
    directory: str = Field("outputs/starfield", description="Directory for frames, video and manifest")
    image_pattern: str = Field("out{index:04d}.png", description="Still-frame filename pattern")
    video_name: str = Field("out.mp4", description="Video filename inside directory")
    codec: str = Field("mp4v", description="FourCC codec identifier for the video sink")

    @field_validator('kind')
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v not in SINK_KINDS:
            raise ValueError(f"Output kind must be one of {SINK_KINDS}, got '{v}'")
        return v

    @field_validator('image_pattern')
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            distinct = v.format(index=0) != v.format(index=1)
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid image pattern '{v}': {e}") from e
        if not distinct:
            raise ValueError(f"Image pattern must contain an {{index}} field, got '{v}'")
        return v

    @field_validator('codec')
    @classmethod
    def validate_codec(cls, v: str) -> str:
        if len(v) != 4:
            raise ValueError(f"Codec must be a 4-character FourCC, got '{v}'")
        return v


class RenderConfig(BaseModel):
    """Oversampled working canvas and final downsampling."""
    model_config = ConfigDict(extra='forbid')

    full_width: int = Field(768 * 4, gt=0, description="Working canvas width (px)")
    full_height: int = Field(576 * 4, gt=0, description="Working canvas height (px)")
    filter: str = Field("area", description="Downsampling filter: 'area' or 'triangle'")
    workers: int = Field(1, ge=1, le=64, description="Frames rendered concurrently")

    @field_validator('filter')
    @classmethod
    def validate_filter(cls, v: str) -> str:
        if v not in RESAMPLE_FILTERS:
            raise ValueError(f"Filter must be one of {RESAMPLE_FILTERS}, got '{v}'")
        return v


class StarsConfig(BaseModel):
    """Star population."""
    model_config = ConfigDict(extra='forbid')

    count: int = Field(500, ge=0, description="Number of stars in the cylinder")
    max_size: float = Field(20.0, gt=0.0, description="Largest sprite diameter on the working canvas (px)")


class TunnelConfig(BaseModel):
    """Cylinder holding the stars and the star-free corridor along its axis."""
    model_config = ConfigDict(extra='forbid')

    diameter: float = Field(1000.0, gt=0.0, description="Star cylinder diameter")
    length: float = Field(1500.0, gt=0.0, description="Star cylinder length (period of the motion)")
    corridor_diameter: float = Field(100.0, gt=0.0, description="Star-free corridor diameter")

    @model_validator(mode='after')
    def validate_corridor(self) -> 'TunnelConfig':
        if self.corridor_diameter >= self.diameter:
            raise ValueError(
                f"Corridor diameter {self.corridor_diameter} must be smaller than "
                f"tunnel diameter {self.diameter}"
            )
        return self


class OpticsConfig(BaseModel):
    """Pinhole projection parameters."""
    model_config = ConfigDict(extra='forbid')

    viewport_distance: float = Field(10.0, gt=0.0, description="Eye-to-viewport distance")
    viewport_width: float = Field(10.0, gt=0.0, description="Viewport width in world units")


class MotionConfig(BaseModel):
    """Viewer motion along the tunnel axis."""
    model_config = ConfigDict(extra='forbid')

    speed: float = Field(0.5, ge=0.0, description="World units travelled per frame")


class SpriteConfig(BaseModel):
    """Reference disc used as the antialiasing source."""
    model_config = ConfigDict(extra='forbid')

    canvas_size: int = Field(128, gt=0, description="Reference canvas side (px)")
    disc_size: int = Field(32, gt=0, description="Drawn disc diameter inside the canvas (px)")
    filter: str = Field("area", description="Sprite resampling filter: 'area' or 'triangle'")

    @field_validator('filter')
    @classmethod
    def validate_filter(cls, v: str) -> str:
        if v not in RESAMPLE_FILTERS:
            raise ValueError(f"Filter must be one of {RESAMPLE_FILTERS}, got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_disc_fits(self) -> 'SpriteConfig':
        if self.disc_size > self.canvas_size:
            raise ValueError(
                f"Disc size {self.disc_size} exceeds reference canvas size {self.canvas_size}"
            )
        return self


class AnimationConfig(BaseModel):
    """Frame count and playback rate."""
    model_config = ConfigDict(extra='forbid')

    fps: int = Field(25, gt=0, le=240, description="Frames per second (video sink)")
    frames: int = Field(25 * 5, ge=0, description="Number of frames to render")


class StarfieldConfigV1(BaseModel):
    """Complete renderer configuration (starfield.v1 schema)."""
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    schema_version: str = Field("starfield.v1", alias="schema", description="Schema version")
    seed: Optional[int] = Field(42, ge=0, description="Star sampling seed; null → unseeded run")
    output: OutputConfig = Field(default_factory=OutputConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    stars: StarsConfig = Field(default_factory=StarsConfig)
    tunnel: TunnelConfig = Field(default_factory=TunnelConfig)
    optics: OpticsConfig = Field(default_factory=OpticsConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    sprite: SpriteConfig = Field(default_factory=SpriteConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "starfield.v1":
            raise ValueError(f"Expected schema 'starfield.v1', got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_cross_section_consistency(self) -> 'StarfieldConfigV1':
        """Reject geometry the projection and sprite math cannot honour."""
        if self.render.full_width < self.render.full_height:
            raise ValueError(
                f"Working canvas must be at least as wide as it is high, got "
                f"{self.render.full_width}x{self.render.full_height}"
            )
        if self.output.width > self.render.full_width or self.output.height > self.render.full_height:
            raise ValueError(
                f"Output {self.output.width}x{self.output.height} exceeds working canvas "
                f"{self.render.full_width}x{self.render.full_height}"
            )
        if self.stars.max_size >= self.sprite.disc_size:
            raise ValueError(
                f"stars.max_size={self.stars.max_size} must be less than "
                f"sprite.disc_size={self.sprite.disc_size}"
            )
        return self

    def with_overrides(self, overrides: Dict[str, Any]) -> 'StarfieldConfigV1':
        """Return a re-validated copy with dotted-key overrides applied.

        Parameters
        ----------
        overrides : dict
            e.g. {"output.kind": "video", "animation.frames": 10, "seed": None}.
            Keys whose value is ``...`` are skipped.

        Returns
        -------
        StarfieldConfigV1
            New validated config (self is not modified)

        Raises
        ------
        ValueError
            Unknown key or the result fails validation
        """
        data = self.model_dump(by_alias=True)
        for dotted, value in overrides.items():
            if value is ...:
                continue
            node = data
            *parents, leaf = dotted.split('.')
            for key in parents:
                if key not in node or not isinstance(node[key], dict):
                    raise ValueError(f"Unknown config section '{key}' in override '{dotted}'")
                node = node[key]
            if leaf not in node:
                raise ValueError(f"Unknown config key '{dotted}'")
            node[leaf] = value
        return StarfieldConfigV1.model_validate(data)


def load_starfield_config(path: Union[str, Path]) -> StarfieldConfigV1:
    """Load and validate starfield config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to starfield.v1 YAML file

    Returns
    -------
    StarfieldConfigV1
        Validated configuration (missing sections take defaults)

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Starfield config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return StarfieldConfigV1.model_validate(data)
    except Exception as e:
        raise ValueError(f"Starfield config validation failed at {path}: {e}") from e


def flatten_config(cfg: Union[Dict, BaseModel]) -> Dict[str, Any]:
    """Flatten nested config into dotted keys (for manifests and logs).

    Examples
    --------
    >>> flatten_config({"tunnel": {"length": 1500.0}})
    {'tunnel.length': 1500.0}
    """
    if isinstance(cfg, BaseModel):
        cfg = cfg.model_dump(by_alias=True)

    def _flatten(d: Dict, parent_key: str = '') -> Dict:
        items = []
        for k, v in d.items():
            new_key = f"{parent_key}.{k}" if parent_key else k
            if isinstance(v, dict):
                items.extend(_flatten(v, new_key).items())
            else:
                items.append((new_key, v))
        return dict(items)

    return _flatten(cfg)
