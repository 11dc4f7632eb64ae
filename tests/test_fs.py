"""Test image and YAML filesystem operations.

Tests for src.utils.fs:
    - load_image() returns RGBA uint8 for RGB, L and RGBA sources
    - Missing and non-image files raise ImageIOError carrying the path
    - atomic_save_image() round-trips PNG and leaves no temp file
    - Failed saves leave an existing output untouched
    - ensure_dir() creates parents

Run:
    pytest tests/test_fs.py -v
"""
import numpy as np
import pytest
from PIL import Image

from src.utils import fs


# ============================================================================
# load_image
# ============================================================================

def test_load_rgb_png_as_rgba(tmp_path):
    path = tmp_path / "rgb.png"
    Image.new("RGB", (3, 2), (10, 20, 30)).save(path)

    img = fs.load_image(path)
    assert img.shape == (2, 3, 4)
    assert img.dtype == np.uint8
    np.testing.assert_array_equal(img[1, 2], [10, 20, 30, 255])


def test_load_grayscale(tmp_path):
    path = tmp_path / "gray.png"
    Image.new("L", (2, 2), 77).save(path)
    img = fs.load_image(path)
    np.testing.assert_array_equal(img[0, 0], [77, 77, 77, 255])


def test_load_missing_file(tmp_path):
    path = tmp_path / "nope.png"
    with pytest.raises(fs.ImageIOError) as exc_info:
        fs.load_image(path)
    assert exc_info.value.path == path
    assert "not found" in exc_info.value.message
    assert str(path) in str(exc_info.value)


def test_load_not_an_image(tmp_path):
    path = tmp_path / "fake.png"
    path.write_text("definitely not a PNG")
    with pytest.raises(fs.ImageIOError, match="not a recognized image"):
        fs.load_image(path)


def test_image_io_error_is_os_error(tmp_path):
    with pytest.raises(OSError):
        fs.load_image(tmp_path / "missing.gif")


# ============================================================================
# atomic_save_image
# ============================================================================

def test_atomic_save_image_roundtrip(tmp_path):
    img = np.random.default_rng(0).integers(0, 256, (8, 5, 4), dtype=np.uint8)
    path = tmp_path / "out" / "img.png"

    fs.atomic_save_image(img, path)

    assert path.exists()
    assert list(path.parent.iterdir()) == [path]
    np.testing.assert_array_equal(fs.load_image(path), img)


def test_atomic_save_jpeg_drops_alpha(tmp_path):
    img = np.full((4, 4, 4), 128, dtype=np.uint8)
    path = tmp_path / "img.jpg"
    fs.atomic_save_image(img, path)
    with Image.open(path) as saved:
        assert saved.mode == "RGB"


def test_atomic_save_float_input_clipped(tmp_path):
    img = np.full((2, 2, 3), 300.0)
    path = tmp_path / "clip.png"
    fs.atomic_save_image(img, path)
    assert np.all(fs.load_image(path)[..., :3] == 255)


def test_failed_save_keeps_existing_file(tmp_path):
    path = tmp_path / "img.unknownext"
    path.write_bytes(b"previous")
    with pytest.raises(fs.ImageIOError) as exc_info:
        fs.atomic_save_image(np.zeros((2, 2, 4), dtype=np.uint8), path)
    assert exc_info.value.path == path
    assert path.read_bytes() == b"previous"


def test_save_into_file_as_directory_fails(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(fs.ImageIOError):
        fs.atomic_save_image(np.zeros((2, 2, 4), dtype=np.uint8), blocker / "img.png")


# ============================================================================
# Directories and YAML
# ============================================================================

def test_ensure_dir(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    assert fs.ensure_dir(target) == target
    assert target.is_dir()
    fs.ensure_dir(target)


def test_load_yaml(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("beam:\n  falloff: 4.0\n")
    assert fs.load_yaml(path) == {'beam': {'falloff': 4.0}}


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "missing.yaml")
