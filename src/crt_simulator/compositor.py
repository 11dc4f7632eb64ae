"""Channel composition and bloom.

compose():
    The three channel images have disjoint mask holes, so composing them is a
    union onto an opaque black base. Overlapping holes mean the mask lattice is
    broken; strict mode raises instead of silently overwriting.

apply_bloom():
    Simulated halo around bright phosphor: a lightly blurred copy with a widely
    blurred copy screen-blended on top,

        result = screen(blur(img, sharp_radius), blur(img, zoom // wide_divisor))

Invariants:
    - Blend math in float32 [0, 1]; uint8 at the boundaries
    - Output is always fully opaque
"""

import logging
from typing import Optional

import numpy as np

from src.utils import image_ops
from src.utils.validators import BloomConfig

logger = logging.getLogger(__name__)


def compose(
    channel0: np.ndarray,
    channel1: np.ndarray,
    channel2: np.ndarray,
    strict: bool = True
) -> np.ndarray:
    """Combine the three channel images into one colour image.

    Parameters
    ----------
    channel0, channel1, channel2 : np.ndarray
        (H, W, 4) uint8 channel renders (opaque inside their holes only)
    strict : bool
        Raise if two channels light the same pixel, default True

    Returns
    -------
    np.ndarray
        (H, W, 4) uint8, opaque black outside every hole

    Raises
    ------
    ValueError
        Mismatched sizes, or overlapping holes in strict mode
    """
    channels = (channel0, channel1, channel2)
    shape = channel0.shape
    for i, ch in enumerate(channels):
        if ch.shape != shape:
            raise ValueError(f"Channel {i} shape {ch.shape} != channel 0 shape {shape}")

    coverage = np.zeros(shape[:2], dtype=np.uint8)
    out = image_ops.make_opaque(shape[0], shape[1])
    for ch in channels:
        lit = ch[..., 3] > 0
        coverage += lit
        out[lit] = ch[lit]

    if strict:
        overlap = int(np.count_nonzero(coverage > 1))
        if overlap:
            raise ValueError(f"Channel masks overlap on {overlap} pixels")

    out[..., 3] = 255
    return out


def apply_bloom(
    composite: np.ndarray,
    zoom_factor: int,
    cfg: Optional[BloomConfig] = None
) -> np.ndarray:
    """Add bloom: sharp blur with a wide blur screen-blended on top.

    Parameters
    ----------
    composite : np.ndarray
        (H, W, 4) uint8 composed image
    zoom_factor : int
        Output pixels per input pixel (sets the wide radius)
    cfg : BloomConfig, optional
        Radii; defaults when omitted

    Returns
    -------
    np.ndarray
        (H, W, 4) uint8, opaque
    """
    cfg = cfg or BloomConfig()
    rgb = composite[..., :3].astype(np.float32) / 255.0

    wide_radius = zoom_factor // cfg.wide_divisor
    sharp = image_ops.gaussian_blur(rgb, cfg.sharp_radius)
    wide = image_ops.gaussian_blur(rgb, wide_radius)
    logger.debug(f"Bloom radii: sharp={cfg.sharp_radius}, wide={wide_radius}")

    blended = image_ops.screen_blend(sharp, wide)

    out = np.empty(composite.shape[:2] + (4,), dtype=np.uint8)
    out[..., :3] = np.clip(np.rint(blended * 255.0), 0, 255).astype(np.uint8)
    out[..., 3] = 255
    return out
