"""CRT shadow-mask simulator.

Renders a low-resolution bitmap as it would look on a colour CRT seen up close:
gaussian beam spots per scanline, one shadow mask per phosphor colour, and a
bloom pass on the composed image.

Modules:
    - geometry: zoom factor, beam diameter, spot size, beam step
    - spots: gaussian spot stamps + per-channel SpotCache
    - masks: DELTA (dot triad) and INLINE (slot) mask generators
    - channel: per-channel beam rendering clipped to the mask
    - compositor: channel union + bloom (screen blend)
    - pipeline: load → render → save, portrait rotation, parallel channels
    - cli: command-line entry point (shadow-mask)

Invariants:
    - Pixel buffers are (H, W, 4) uint8 RGBA; channel 0/1/2 = R/G/B
    - Channel masks are pairwise disjoint
    - Same input + parameters → bit-identical output

Used by:
    - scripts/shadow_mask.py: CLI launcher
"""

from .errors import ConfigurationError, GeometryError, ShadowMaskError
from .geometry import CRTGeometry, compute_geometry
from .masks import MaskType, make_mask
from .pipeline import load_config, render_crt, run_pipeline

__all__ = [
    'ConfigurationError',
    'GeometryError',
    'ShadowMaskError',
    'CRTGeometry',
    'compute_geometry',
    'MaskType',
    'make_mask',
    'load_config',
    'render_crt',
    'run_pipeline',
]
