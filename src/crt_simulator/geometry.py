"""Output geometry derived from input size and requested output width.

    zoom_factor   = output_width // input_width        (integer, ≥ 1)
    beam_diameter = int(zoom_factor * beam.diameter_frac)
    output_height = input_height * zoom_factor
    spot_size     = beam_diameter * beam.spot_scale
    beam_step     = beam_diameter // beam.sample_divisor (≥ 1)

The output width is kept exactly as requested, so when it is not a multiple of
the input width the rightmost columns repeat the last input pixel.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.utils.validators import ShadowMaskV1, default_shadow_mask_config

from .errors import GeometryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CRTGeometry:
    """Immutable per-run geometry parameters (all in output pixels)."""
    input_width: int
    input_height: int
    output_width: int
    output_height: int
    zoom_factor: int
    beam_diameter: int
    spot_size: int
    beam_step: int


def compute_geometry(
    input_width: int,
    input_height: int,
    output_width: int,
    cfg: Optional[ShadowMaskV1] = None
) -> CRTGeometry:
    """Derive and validate render geometry.

    Parameters
    ----------
    input_width, input_height : int
        Source bitmap size (after any portrait pre-rotation)
    output_width : int
        Requested output width in pixels
    cfg : ShadowMaskV1, optional
        Renderer config; defaults when omitted

    Returns
    -------
    CRTGeometry

    Raises
    ------
    GeometryError
        Empty input, non-positive or too-narrow output width, or a beam
        sampling step that rounds to zero
    """
    cfg = cfg or default_shadow_mask_config()

    if input_width <= 0 or input_height <= 0:
        raise GeometryError(f"Input image is empty ({input_width}x{input_height})")
    if output_width <= 0:
        raise GeometryError(f"Output width must be positive, got {output_width}")
    if output_width < input_width:
        raise GeometryError(
            f"Output width {output_width} is narrower than input width {input_width}; "
            f"zoom factor would be 0"
        )

    zoom_factor = output_width // input_width
    beam_diameter = int(zoom_factor * cfg.beam.diameter_frac)
    beam_step = beam_diameter // cfg.beam.sample_divisor
    if beam_step == 0:
        min_zoom = _min_zoom_factor(cfg)
        raise GeometryError(
            f"Zoom factor {zoom_factor} gives beam diameter {beam_diameter}, too small to "
            f"sample (beam step would be 0); request an output width of at least "
            f"{input_width * min_zoom} for a {input_width}px wide input"
        )

    geometry = CRTGeometry(
        input_width=input_width,
        input_height=input_height,
        output_width=output_width,
        output_height=input_height * zoom_factor,
        zoom_factor=zoom_factor,
        beam_diameter=beam_diameter,
        spot_size=beam_diameter * cfg.beam.spot_scale,
        beam_step=beam_step,
    )
    logger.debug(f"Geometry: {geometry}")
    return geometry


def _min_zoom_factor(cfg: ShadowMaskV1) -> int:
    """Smallest zoom factor whose beam step is at least one pixel."""
    zoom = 1
    while int(zoom * cfg.beam.diameter_frac) // cfg.beam.sample_divisor == 0:
        zoom += 1
    return zoom
