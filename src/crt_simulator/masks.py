"""Procedural shadow-mask geometry.

A mask image is transparent except for opaque white holes where the channel's
phosphor can be lit. The three channels use the same lattice shifted by one
horizontal spacing each, so their holes interleave into RGB triads and never
overlap.

DELTA (triad of round dots):
    h = zoom // dots_per_input_pixel
    v = round(h * √3 / 2)                     row pitch
    dot = h * 2 // 3                          dot diameter
    rows every v, odd rows shifted right by h * 3 // 2,
    dots every 3h starting at h * (channel - 3)

INLINE (vertical slots, Porta-Color style):
    h = zoom // 3 // slots_per_input_pixel
    v = zoom // slots_per_input_pixel         slot pitch
    slot = int(h * fill) × int(v * fill), corner arc diameter min(w, h)
    columns every 3h starting at h * (channel - 3),
    odd columns shifted up by v // 2

Holes are drawn without antialiasing: a mask pixel is either a hole or not.
"""

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import numpy as np

from src.utils import fs
from src.utils.validators import MaskConfig

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DOTS_PER_INPUT_PIXEL = 4
SLOTS_PER_INPUT_PIXEL = 2
SLOT_FILL = 0.9

HOLE_COLOR = (255, 255, 255, 255)


class MaskType(str, Enum):
    """Shadow mask geometry."""
    DELTA = "DELTA"
    # https://en.wikipedia.org/wiki/Porta-Color
    INLINE = "INLINE"

    @classmethod
    def parse(cls, tag: Union[str, "MaskType"]) -> "MaskType":
        """Parse a mask type tag (case-insensitive).

        Raises
        ------
        ConfigurationError
            If the tag names no known mask type
        """
        if isinstance(tag, MaskType):
            return tag
        try:
            return cls(str(tag).strip().upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Unknown mask type '{tag}' (expected one of: {allowed})") from None


def _disc_stamp(diameter: int) -> np.ndarray:
    """Boolean disc filling a diameter × diameter box (pixel-centre test)."""
    r = diameter / 2.0
    ys, xs = np.mgrid[0:diameter, 0:diameter]
    return (xs + 0.5 - r) ** 2 + (ys + 0.5 - r) ** 2 <= r * r


def _rounded_rect_stamp(width: int, height: int, arc: int) -> np.ndarray:
    """Boolean rounded rectangle; ``arc`` is the corner arc diameter."""
    stamp = np.ones((height, width), dtype=bool)
    r = arc / 2.0
    if r <= 0:
        return stamp

    ys, xs = np.mgrid[0:height, 0:width]
    px = xs + 0.5
    py = ys + 0.5
    # Distance to the nearest corner-circle centre, only in the corner boxes
    cx = np.clip(px, r, width - r)
    cy = np.clip(py, r, height - r)
    return (px - cx) ** 2 + (py - cy) ** 2 <= r * r


def _paste(holes: np.ndarray, stamp: np.ndarray, x: int, y: int) -> None:
    """OR a boolean stamp into ``holes`` with top-left at (x, y), clipped."""
    H, W = holes.shape
    sh, sw = stamp.shape
    x_min, y_min = max(0, x), max(0, y)
    x_max, y_max = min(W, x + sw), min(H, y + sh)
    if x_max <= x_min or y_max <= y_min:
        return
    holes[y_min:y_max, x_min:x_max] |= stamp[y_min - y:y_max - y, x_min - x:x_max - x]


def _holes_to_rgba(holes: np.ndarray) -> np.ndarray:
    mask = np.zeros(holes.shape + (4,), dtype=np.uint8)
    mask[holes] = HOLE_COLOR
    return mask


def make_delta_mask(
    width: int,
    height: int,
    zoom_factor: int,
    channel_index: int,
    dots_per_input_pixel: int = DOTS_PER_INPUT_PIXEL
) -> np.ndarray:
    """Full-size delta mask for a channel.

    Parameters
    ----------
    width, height : int
        Output size in pixels
    zoom_factor : int
        Output pixels per input pixel
    channel_index : int
        0 = red, 1 = green, 2 = blue
    dots_per_input_pixel : int
        Horizontal dot pitch divisor, default 4

    Returns
    -------
    np.ndarray
        (height, width, 4) uint8, transparent except white holes
    """
    horizontal_spacing = zoom_factor // dots_per_input_pixel
    vertical_spacing = int(horizontal_spacing * math.sqrt(3) / 2 + 0.5)
    dot_size = horizontal_spacing * 2 // 3

    holes = np.zeros((height, width), dtype=bool)
    if horizontal_spacing < 1 or vertical_spacing < 1 or dot_size < 1:
        logger.warning(
            f"Delta mask degenerate at zoom {zoom_factor} "
            f"(spacing={horizontal_spacing}, dot={dot_size}); mask has no holes"
        )
        return _holes_to_rgba(holes)

    dot = _disc_stamp(dot_size)
    even_row = True
    for y in range(0, height, vertical_spacing):
        start_x = horizontal_spacing * (channel_index - 3)
        if not even_row:
            start_x += horizontal_spacing * 3 // 2
        for x in range(start_x, width, horizontal_spacing * 3):
            _paste(holes, dot, x, y)
        even_row = not even_row

    return _holes_to_rgba(holes)


def make_inline_mask(
    width: int,
    height: int,
    zoom_factor: int,
    channel_index: int,
    slots_per_input_pixel: int = SLOTS_PER_INPUT_PIXEL,
    slot_fill: float = SLOT_FILL
) -> np.ndarray:
    """Full-size inline (slot) mask for a channel.

    Parameters
    ----------
    width, height : int
        Output size in pixels
    zoom_factor : int
        Output pixels per input pixel
    channel_index : int
        0 = red, 1 = green, 2 = blue
    slots_per_input_pixel : int
        Slots per input pixel in each direction, default 2
    slot_fill : float
        Slot size as fraction of its pitch, default 0.9

    Returns
    -------
    np.ndarray
        (height, width, 4) uint8, transparent except white slots
    """
    horizontal_spacing = zoom_factor // 3 // slots_per_input_pixel
    vertical_spacing = zoom_factor // slots_per_input_pixel
    dot_width = int(horizontal_spacing * slot_fill)
    dot_height = int(vertical_spacing * slot_fill)
    corner = min(dot_width, dot_height)

    holes = np.zeros((height, width), dtype=bool)
    if horizontal_spacing < 1 or vertical_spacing < 1 or dot_width < 1 or dot_height < 1:
        logger.warning(
            f"Inline mask degenerate at zoom {zoom_factor} "
            f"(slot={dot_width}x{dot_height}); mask has no holes"
        )
        return _holes_to_rgba(holes)

    slot = _rounded_rect_stamp(dot_width, dot_height, corner)
    even_column = True
    start_x = horizontal_spacing * (channel_index - 3)
    for x in range(start_x, width, horizontal_spacing * 3):
        start_y = 0
        if not even_column:
            start_y -= vertical_spacing // 2
        for y in range(start_y, height, vertical_spacing):
            _paste(holes, slot, x, y)
        even_column = not even_column

    return _holes_to_rgba(holes)


def make_mask(
    mask_type: Union[str, MaskType],
    width: int,
    height: int,
    zoom_factor: int,
    channel_index: int,
    cfg: Optional[MaskConfig] = None
) -> np.ndarray:
    """Full-size mask image for a channel.

    Parameters
    ----------
    mask_type : MaskType or str
        DELTA or INLINE
    width, height : int
        Output size in pixels
    zoom_factor : int
        Output pixels per input pixel
    channel_index : int
        0 = red, 1 = green, 2 = blue
    cfg : MaskConfig, optional
        Mask pitch/fill overrides; module defaults when omitted

    Returns
    -------
    np.ndarray
        (height, width, 4) uint8 mask

    Raises
    ------
    ConfigurationError
        Unknown mask type
    """
    mask_type = MaskType.parse(mask_type)
    if channel_index not in (0, 1, 2):
        raise ValueError(f"channel_index must be 0, 1 or 2, got {channel_index}")

    if mask_type is MaskType.DELTA:
        dots = cfg.dots_per_input_pixel if cfg is not None else DOTS_PER_INPUT_PIXEL
        return make_delta_mask(width, height, zoom_factor, channel_index, dots)
    elif mask_type is MaskType.INLINE:
        slots = cfg.slots_per_input_pixel if cfg is not None else SLOTS_PER_INPUT_PIXEL
        fill = cfg.slot_fill if cfg is not None else SLOT_FILL
        return make_inline_mask(width, height, zoom_factor, channel_index, slots, fill)
    raise ConfigurationError(f"Unsupported mask type: {mask_type}")


def dump_mask(mask: np.ndarray, out_dir: Union[str, Path], channel_index: int) -> Path:
    """Write a channel mask to ``out_dir/mask<channel>.png`` for inspection.

    Raises
    ------
    fs.ImageIOError
        If ``out_dir`` cannot be created or the image cannot be written
    """
    try:
        path = fs.ensure_dir(out_dir) / f"mask{channel_index}.png"
    except OSError as e:
        raise fs.ImageIOError(out_dir, f"cannot create mask directory ({e})") from e
    fs.atomic_save_image(mask, path)
    logger.info(f"Wrote channel {channel_index} mask to {path}")
    return path
