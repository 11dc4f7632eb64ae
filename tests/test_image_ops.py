"""Tests for raster primitives (blur, screen blend, clip, rotate).

Test cases:
    - screen_blend identities: screen(0, b) = b, screen(a, 0) = a,
      screen(255, 255) = 255; monotonic in both arguments
    - gaussian_blur keeps flat images flat and never mutates input
    - clip_to_mask keeps hole pixels only
    - rotate_right / rotate_left are inverse 90° rotations

Run: pytest tests/test_image_ops.py -v
"""
import numpy as np
import pytest

from src.utils import image_ops


ALL_LEVELS = np.arange(256, dtype=np.uint8)


# ============================================================================
# screen_blend
# ============================================================================

class TestScreenBlend:

    def test_black_base_is_identity(self):
        out = image_ops.screen_blend(np.zeros_like(ALL_LEVELS), ALL_LEVELS)
        np.testing.assert_array_equal(out, ALL_LEVELS)

    def test_black_top_is_identity(self):
        out = image_ops.screen_blend(ALL_LEVELS, np.zeros_like(ALL_LEVELS))
        np.testing.assert_array_equal(out, ALL_LEVELS)

    def test_white_saturates(self):
        white = np.array([255], dtype=np.uint8)
        assert image_ops.screen_blend(white, white)[0] == 255
        assert image_ops.screen_blend(white, np.array([3], dtype=np.uint8))[0] == 255

    @pytest.mark.parametrize("b", [0, 1, 64, 200, 255])
    def test_monotonic(self, b):
        top = np.full(256, b, dtype=np.uint8)
        out = image_ops.screen_blend(ALL_LEVELS, top).astype(int)
        assert np.all(np.diff(out) >= 0)
        assert np.all(out >= ALL_LEVELS)
        assert np.all(out >= b)

    def test_float_path(self):
        a = np.array([0.0, 0.5, 1.0], dtype=np.float32)
        b = np.array([0.5, 0.5, 0.2], dtype=np.float32)
        np.testing.assert_allclose(image_ops.screen_blend(a, b), [0.5, 0.75, 1.0])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="shape mismatch"):
            image_ops.screen_blend(np.zeros(3, np.uint8), np.zeros(4, np.uint8))


# ============================================================================
# gaussian_blur
# ============================================================================

class TestGaussianBlur:

    def test_zero_radius_returns_copy(self):
        img = np.arange(12, dtype=np.uint8).reshape(3, 4)
        out = image_ops.gaussian_blur(img, 0)
        np.testing.assert_array_equal(out, img)
        assert out is not img

    def test_flat_stays_flat(self):
        img = np.full((10, 12, 3), 0.25, dtype=np.float32)
        out = image_ops.gaussian_blur(img, 2.5)
        np.testing.assert_allclose(out, 0.25, atol=1e-6)
        assert out.dtype == np.float32

    def test_flat_uint8_row_stays_flat(self):
        row = np.full((1, 50, 3), 255, dtype=np.uint8)
        out = image_ops.gaussian_blur(row, 3.2)
        assert out.shape == (1, 50, 3)
        assert np.all(out == 255)

    def test_single_row_blurs_horizontally(self):
        row = np.zeros((1, 21), dtype=np.float32)
        row[0, 10] = 1.0
        out = image_ops.gaussian_blur(row, 1.5)
        assert out[0, 10] < 1.0
        assert out[0, 9] > 0 and out[0, 11] > 0
        assert out.sum() == pytest.approx(1.0, abs=1e-4)

    def test_input_not_modified(self):
        img = np.zeros((5, 5), dtype=np.float32)
        img[2, 2] = 1.0
        before = img.copy()
        image_ops.gaussian_blur(img, 1.0)
        np.testing.assert_array_equal(img, before)


# ============================================================================
# clip_to_mask / make_opaque
# ============================================================================

def test_clip_to_mask():
    img = np.full((2, 2, 4), 100, dtype=np.uint8)
    mask = np.zeros((2, 2, 4), dtype=np.uint8)
    mask[0, 1] = 255
    out = image_ops.clip_to_mask(img, mask)
    np.testing.assert_array_equal(out[0, 1], [100, 100, 100, 255])
    assert out[0, 0].sum() == 0
    assert out[1].sum() == 0


def test_clip_to_mask_size_mismatch():
    with pytest.raises(ValueError, match="sizes differ"):
        image_ops.clip_to_mask(np.zeros((2, 2, 4), np.uint8), np.zeros((3, 2, 4), np.uint8))


def test_make_opaque():
    out = image_ops.make_opaque(2, 3, (1, 2, 3))
    assert out.shape == (2, 3, 4)
    assert np.all(out[..., 3] == 255)
    np.testing.assert_array_equal(out[1, 2, :3], [1, 2, 3])


# ============================================================================
# Rotation
# ============================================================================

def test_rotate_right_moves_top_left_to_top_right():
    img = np.zeros((2, 3, 4), dtype=np.uint8)
    img[0, 0] = 255
    out = image_ops.rotate_right(img)
    assert out.shape == (3, 2, 4)
    assert out[0, 1, 0] == 255
    assert out.flags['C_CONTIGUOUS']


def test_rotate_left_moves_top_left_to_bottom_left():
    img = np.zeros((2, 3, 4), dtype=np.uint8)
    img[0, 0] = 255
    out = image_ops.rotate_left(img)
    assert out.shape == (3, 2, 4)
    assert out[2, 0, 0] == 255


def test_rotations_are_inverse():
    img = np.random.default_rng(1).integers(0, 256, (5, 7, 4), dtype=np.uint8)
    np.testing.assert_array_equal(image_ops.rotate_left(image_ops.rotate_right(img)), img)
    np.testing.assert_array_equal(image_ops.rotate_right(image_ops.rotate_left(img)), img)
