"""YAML schema validation and config loading.

Provides centralized validation for the renderer configuration using pydantic:
    - Beam model: spot diameter, sampling density, gaussian falloff, row blur
    - Mask model: mask type, dots/slots per input pixel, slot fill ratio
    - Bloom: sharp/wide blur radii
    - Render: channel parallelism
    - Debug: optional mask dump directory

Every field has a default, so an empty file (or no file at all) yields the
reference look. Loaders fail fast with actionable messages (offending keys,
expected ranges).

Usage:
    from src.utils import validators

    cfg = validators.load_shadow_mask_config("configs/shadow_mask_v1.yaml")
    cfg = validators.default_shadow_mask_config()
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# SHADOW MASK RENDERER CONFIG (shadow_mask.v1.yaml)
# ============================================================================

SCHEMA_NAME = "shadow_mask.v1"


class BeamConfig(BaseModel):
    """Electron beam model: spot size, sampling, intensity falloff."""
    diameter_frac: float = Field(default=0.5, gt=0.0, le=4.0,
                                 description="Beam diameter as fraction of zoom factor")
    spot_scale: int = Field(default=3, ge=1, le=16,
                            description="Spot stamp size as multiple of beam diameter")
    sample_divisor: int = Field(default=5, ge=1, le=100,
                                description="Beam hits per beam diameter along a row")
    falloff: float = Field(default=5.0, gt=0.0, le=50.0,
                           description="Gaussian falloff: alpha = exp(-(falloff*d/size)^2)")
    row_blur_frac: float = Field(default=0.1, ge=0.0, le=2.0,
                                 description="Row blur radius as fraction of zoom factor")


class MaskConfig(BaseModel):
    """Shadow mask geometry parameters."""
    type: str = Field(default="DELTA", description="Mask type tag (DELTA, INLINE)")
    dots_per_input_pixel: int = Field(default=4, ge=1, le=64)
    slots_per_input_pixel: int = Field(default=2, ge=1, le=64)
    slot_fill: float = Field(default=0.9, gt=0.0, le=1.0,
                             description="Slot size as fraction of slot pitch")

    @field_validator('type')
    @classmethod
    def normalize_type(cls, v: str) -> str:
        # Membership is checked by MaskType.parse so the error kind stays
        # a ConfigurationError at render time.
        return v.strip().upper()


class BloomConfig(BaseModel):
    """Two-pass blur + screen blend bloom."""
    enabled: bool = Field(default=True)
    sharp_radius: float = Field(default=1.0, ge=0.0, le=64.0)
    wide_divisor: int = Field(default=4, ge=1, le=256,
                              description="Wide blur radius = zoom_factor // wide_divisor")


class RenderConfig(BaseModel):
    """Execution settings."""
    parallel_channels: bool = Field(default=True)
    max_workers: int = Field(default=3, ge=1, le=3)


class DebugConfig(BaseModel):
    """Debug outputs."""
    dump_masks_dir: Optional[str] = Field(default=None,
                                          description="Write mask<channel>.png here when set")


class ShadowMaskV1(BaseModel):
    """Renderer configuration (shadow_mask.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    schema_version: str = Field(default=SCHEMA_NAME, alias="schema")
    beam: BeamConfig = Field(default_factory=BeamConfig)
    mask: MaskConfig = Field(default_factory=MaskConfig)
    bloom: BloomConfig = Field(default_factory=BloomConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != SCHEMA_NAME:
            raise ValueError(f"schema must be '{SCHEMA_NAME}', got {v}")
        return v


def default_shadow_mask_config() -> ShadowMaskV1:
    """Return the reference configuration (all defaults)."""
    return ShadowMaskV1()


def load_shadow_mask_config(path: Union[str, Path]) -> ShadowMaskV1:
    """Load and validate renderer config from YAML.

    Parameters
    ----------
    path : str or Path
        Path to shadow_mask.v1.yaml file

    Returns
    -------
    ShadowMaskV1
        Validated config model

    Raises
    ------
    FileNotFoundError
        If file does not exist
    pydantic.ValidationError
        If config is invalid
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Shadow mask config not found: {path}")

    cfg = fs.load_yaml(path) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Config root must be a mapping, got {type(cfg).__name__}: {path}")
    return ShadowMaskV1(**cfg)


def flatten_config(cfg: Union[Dict, BaseModel], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested config into dotted keys (for logging).

    Examples
    --------
    >>> flatten_config({'beam': {'falloff': 5.0}})
    {'beam.falloff': 5.0}
    """
    if isinstance(cfg, BaseModel):
        cfg = cfg.model_dump()

    flat: Dict[str, Any] = {}
    for key, value in cfg.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            flat[full_key] = value
    return flat
