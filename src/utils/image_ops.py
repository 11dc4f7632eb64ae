"""Raster primitives shared by the renderer.

Provides:
    - gaussian_blur(): OpenCV gaussian blur with a radius in pixels
    - screen_blend(): "screen" blend mode, 1 - (1-a)(1-b)
    - clip_to_mask(): keep pixels under opaque mask pixels, clear the rest
    - rotate_right() / rotate_left(): 90° rotations for portrait mounting
    - make_opaque(): fill a new RGBA buffer with a solid colour

Conventions:
    - Pixel buffers are (H, W, C) numpy arrays, C = 3 or 4
    - uint8 in, uint8 out; float32 in [0, 1], float32 out
    - Functions never mutate their inputs
"""

import math
from typing import Sequence

import cv2
import numpy as np


def _kernel_size(radius: float) -> int:
    """Odd kernel size covering ±3σ."""
    return 2 * int(math.ceil(3.0 * radius)) + 1


def gaussian_blur(img: np.ndarray, radius: float) -> np.ndarray:
    """Gaussian blur with σ = radius (pixels).

    Parameters
    ----------
    img : np.ndarray
        (H, W) or (H, W, C), uint8 or float32
    radius : float
        Blur radius; ≤ 0 returns an unmodified copy

    Returns
    -------
    np.ndarray
        Blurred image, same shape and dtype

    Notes
    -----
    Edges replicate the border pixel so a flat row stays flat after blurring.
    Single-row and single-column inputs only blur along their long axis.
    """
    if radius <= 0:
        return img.copy()

    h, w = img.shape[:2]
    k = _kernel_size(radius)
    # A size-1 kernel is the identity along that axis
    ksize = (k if w > 1 else 1, k if h > 1 else 1)

    return cv2.GaussianBlur(
        np.ascontiguousarray(img), ksize,
        sigmaX=float(radius), sigmaY=float(radius),
        borderType=cv2.BORDER_REPLICATE,
    )


def screen_blend(base: np.ndarray, top: np.ndarray) -> np.ndarray:
    """Screen blend: result = 1 - (1 - base) * (1 - top).

    Parameters
    ----------
    base, top : np.ndarray
        Same shape. Either both uint8 (0..255) or both float in [0, 1].

    Returns
    -------
    np.ndarray
        uint8 for uint8 input (rounded), float32 otherwise

    Notes
    -----
    screen(0, b) = b, screen(a, 0) = a, screen(1, 1) = 1; monotonic
    non-decreasing in both arguments.
    """
    base = np.asarray(base)
    top = np.asarray(top)
    if base.shape != top.shape:
        raise ValueError(f"screen_blend shape mismatch: {base.shape} vs {top.shape}")

    if base.dtype == np.uint8 and top.dtype == np.uint8:
        a = base.astype(np.float32) / 255.0
        b = top.astype(np.float32) / 255.0
        out = 1.0 - (1.0 - a) * (1.0 - b)
        return np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)

    a = base.astype(np.float32)
    b = top.astype(np.float32)
    return 1.0 - (1.0 - a) * (1.0 - b)


def clip_to_mask(img: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Keep pixels where the mask is opaque; clear everything else.

    Parameters
    ----------
    img : np.ndarray
        (H, W, 4) uint8 RGBA
    mask : np.ndarray
        (H, W, 4) uint8 RGBA; pixels with alpha > 0 are holes

    Returns
    -------
    np.ndarray
        (H, W, 4) uint8; holes keep ``img`` (alpha forced to 255), the
        rest is transparent black
    """
    if img.shape[:2] != mask.shape[:2]:
        raise ValueError(f"Image {img.shape[:2]} and mask {mask.shape[:2]} sizes differ")
    if img.ndim != 3 or img.shape[2] != 4:
        raise ValueError(f"Expected (H, W, 4) RGBA image, got {img.shape}")

    holes = mask[..., 3] > 0
    out = np.zeros_like(img)
    out[holes] = img[holes]
    out[holes, 3] = 255
    return out


def make_opaque(height: int, width: int, color: Sequence[int] = (0, 0, 0)) -> np.ndarray:
    """New (H, W, 4) uint8 buffer filled with an opaque colour."""
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[..., :3] = np.asarray(color, dtype=np.uint8)
    out[..., 3] = 255
    return out


def rotate_right(img: np.ndarray) -> np.ndarray:
    """Rotate 90° clockwise."""
    return np.ascontiguousarray(np.rot90(img, k=-1))


def rotate_left(img: np.ndarray) -> np.ndarray:
    """Rotate 90° counter-clockwise."""
    return np.ascontiguousarray(np.rot90(img, k=1))
