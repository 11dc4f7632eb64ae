"""Gaussian electron-beam spot stamps.

A spot is the light blob left where the beam hits the phosphor: a square RGBA
stamp whose colour is the pure channel hue and whose alpha carries the
intensity,

    alpha(x, y) = floor(exp(-(falloff * d / size)²) * brightness),  d < size // 2

with d measured from the integer centre (size // 2, size // 2). Pixels at
d ≥ size // 2 are fully transparent.

Spots only depend on (channel, brightness, size), so each channel render keeps
a SpotCache of at most 256 stamps.
"""

import logging
from typing import Dict, Tuple

import numpy as np

logger = logging.getLogger(__name__)

NUM_CHANNELS = 3


def make_spot(
    brightness: int,
    channel_index: int,
    size: int,
    falloff: float = 5.0
) -> np.ndarray:
    """Make a gaussian spot for an electron beam hitting the phosphor.

    Parameters
    ----------
    brightness : int
        Peak intensity 0..255 (alpha at the centre)
    channel_index : int
        0 = red, 1 = green, 2 = blue
    size : int
        Stamp edge length in pixels
    falloff : float
        Gaussian steepness, default 5.0

    Returns
    -------
    np.ndarray
        (size, size, 4) uint8 RGBA stamp
    """
    if channel_index not in range(NUM_CHANNELS):
        raise ValueError(f"channel_index must be 0, 1 or 2, got {channel_index}")
    if not 0 <= brightness <= 255:
        raise ValueError(f"brightness must be in [0, 255], got {brightness}")
    if size < 1:
        raise ValueError(f"Spot size must be ≥ 1, got {size}")

    center = size // 2
    ys, xs = np.mgrid[0:size, 0:size]
    dist = np.sqrt(((xs - center) ** 2 + (ys - center) ** 2).astype(np.float64))
    inside = dist < center

    normalized = falloff * dist / size
    alpha = np.floor(np.exp(-(normalized * normalized)) * brightness)

    spot = np.zeros((size, size, 4), dtype=np.uint8)
    spot[inside, channel_index] = 255
    spot[inside, 3] = alpha[inside].astype(np.uint8)
    return spot


class SpotCache:
    """Memoized spot stamps for one render.

    Stamps are keyed by (channel_index, brightness). The stamp size is fixed
    when the cache is created; asking for another size raises instead of
    returning a stamp of the wrong size.

    Not thread-safe: give each channel render its own instance.

    Attributes
    ----------
    size : int
        Stamp edge length for every spot in this cache
    falloff : float
        Gaussian steepness passed to make_spot()
    hits, misses : int
        Lookup statistics
    """

    def __init__(self, size: int, falloff: float = 5.0):
        if size < 1:
            raise ValueError(f"Spot size must be ≥ 1, got {size}")
        self.size = size
        self.falloff = falloff
        self.hits = 0
        self.misses = 0
        self._spots: Dict[Tuple[int, int], np.ndarray] = {}

    def get_spot(self, channel_index: int, brightness: int, size: int) -> np.ndarray:
        """Get a (possibly cached) spot for the brightness, channel and size.

        The returned array is shared; callers must not modify it.
        """
        if size != self.size:
            raise ValueError(
                f"SpotCache is bound to size {self.size}, got request for size {size}"
            )

        key = (channel_index, int(brightness))
        spot = self._spots.get(key)
        if spot is None:
            self.misses += 1
            spot = make_spot(key[1], channel_index, size, self.falloff)
            spot.setflags(write=False)
            self._spots[key] = spot
        else:
            self.hits += 1
        return spot

    def __len__(self) -> int:
        return len(self._spots)
