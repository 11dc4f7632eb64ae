"""Filesystem operations: image load, atomic image save, YAML handling.

Provides:
    - load_image(): decode any PIL-readable file into an (H, W, 4) uint8 RGBA array
    - atomic_save_image(): encode to a hidden partial file, then rename over the target
    - load_yaml(): safe_load with the file name in parse errors
    - ensure_dir()

Every failure to read or write an image surfaces as ImageIOError carrying the
offending path, so the CLI can report it and exit non-zero.

Usage:
    from src.utils import fs
    image = fs.load_image("screens/title.png")
    fs.atomic_save_image(output, "out/title_crt.png")
"""

from pathlib import Path
from typing import Any, Union

import numpy as np
import yaml
from PIL import Image, UnidentifiedImageError


class ImageIOError(OSError):
    """Image could not be loaded or saved.

    Attributes
    ----------
    path : Path
        Offending file path
    message : str
        Underlying reason
    """

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


def ensure_dir(p: Union[str, Path]) -> Path:
    """mkdir -p; returns the directory as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Load an image file as an RGBA pixel buffer.

    Parameters
    ----------
    path : Union[str, Path]
        Image file path (any format PIL can decode)

    Returns
    -------
    np.ndarray
        (H, W, 4) uint8, channel order R, G, B, A

    Raises
    ------
    ImageIOError
        If the file is missing, unreadable, or not an image
    """
    path = Path(path)
    if not path.is_file():
        raise ImageIOError(path, "file not found")

    try:
        with Image.open(path) as img:
            rgba = img.convert("RGBA")
    except UnidentifiedImageError as e:
        raise ImageIOError(path, "not a recognized image format") from e
    except OSError as e:
        raise ImageIOError(path, str(e)) from e

    return np.asarray(rgba, dtype=np.uint8).copy()


# Formats PIL cannot write with an alpha channel
_NO_ALPHA_SUFFIXES = (".jpg", ".jpeg", ".bmp")


def atomic_save_image(img: np.ndarray, path: Union[str, Path]) -> None:
    """Encode ``img`` next to ``path`` and rename it into place.

    Parameters
    ----------
    img : np.ndarray
        (H, W, 4), (H, W, 3) or (H, W) pixels; non-uint8 values are clipped
        to [0, 255]
    path : str or Path
        Destination; the extension selects the encoder. Parent directories
        are created.

    Raises
    ------
    ImageIOError
        Unknown extension, encoder failure or unwritable destination. A file
        already at ``path`` is not touched and no temp file is left behind.
    """
    path = Path(path)
    pixels = img if img.dtype == np.uint8 else np.clip(img, 0, 255).astype(np.uint8)
    pil_img = Image.fromarray(np.ascontiguousarray(pixels))
    if pil_img.mode == "RGBA" and path.suffix.lower() in _NO_ALPHA_SUFFIXES:
        pil_img = pil_img.convert("RGB")

    # Keep the real suffix last so PIL still picks the encoder from it
    partial = path.parent / f".{path.stem}.partial{path.suffix}"
    try:
        ensure_dir(path.parent)
        pil_img.save(partial)
        partial.replace(path)
    except (OSError, ValueError, KeyError) as e:
        if partial.exists():
            partial.unlink()
        raise ImageIOError(path, str(e)) from e


def load_yaml(path: Union[str, Path]) -> Any:
    """Parse a YAML file with ``yaml.safe_load`` (None for an empty file).

    Raises
    ------
    FileNotFoundError
        If the file is missing
    yaml.YAMLError
        Malformed YAML; the message names the file
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"YAML file not found: {path}")
    with path.open('r', encoding='utf-8') as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"{path}: {e}") from e
