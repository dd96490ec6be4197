# -*- coding: utf-8 -*-
"""
RGBA 像素缓冲测试
"""

import numpy as np
import pytest

from core.pixel_buffer import PixelBuffer


def test_blank_buffer_shape_and_color():
    buffer = PixelBuffer.blank(7, 3, (1, 2, 3, 4))
    assert buffer.pixels.shape == (3, 7, 4)
    assert buffer.size == (7, 3)
    assert np.all(buffer.pixels == [1, 2, 3, 4])


def test_blank_rejects_empty_size():
    with pytest.raises(ValueError):
        PixelBuffer.blank(0, 5)


def test_from_array_promotes_gray_and_rgb_to_opaque_rgba():
    gray = np.full((4, 5), 90, dtype=np.uint8)
    buffer = PixelBuffer.from_array(gray)
    assert buffer.pixels.shape == (4, 5, 4)
    assert np.all(buffer.rgb == 90)
    assert np.all(buffer.alpha == 255)

    rgb = np.zeros((2, 2, 3), dtype=np.uint8)
    rgb[..., 0] = 200
    buffer = PixelBuffer.from_array(rgb)
    assert np.all(buffer.pixels[..., 0] == 200)
    assert np.all(buffer.alpha == 255)


def test_from_array_copies_input():
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    buffer = PixelBuffer.from_array(rgba)
    rgba[0, 0, 0] = 255
    assert buffer.pixels[0, 0, 0] == 0


def test_rejects_non_rgba_pixels():
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros((3, 3, 3), dtype=np.uint8))


def test_read_rect_is_clipped_copy():
    buffer = PixelBuffer.blank(10, 10, (0, 0, 0, 0))
    buffer.pixels[0, 0] = (9, 9, 9, 9)

    region = buffer.read_rect(-2, -2, 5, 5)
    assert region.shape == (3, 3, 4)
    assert tuple(region[0, 0]) == (9, 9, 9, 9)

    region[0, 0] = 0
    assert tuple(buffer.pixels[0, 0]) == (9, 9, 9, 9)


def test_read_rect_outside_is_empty():
    buffer = PixelBuffer.blank(4, 4)
    assert buffer.read_rect(10, 10, 3, 3).shape == (0, 0, 4)


def test_write_rect_clips_at_edges():
    buffer = PixelBuffer.blank(4, 4)
    patch = np.full((3, 3, 4), 77, dtype=np.uint8)
    buffer.write_rect(2, 2, patch)

    assert np.all(buffer.pixels[2:, 2:] == 77)
    assert np.all(buffer.pixels[:2, :] == 0)
    assert np.all(buffer.pixels[:, :2] == 0)


def test_equality_and_copy():
    a = PixelBuffer.blank(3, 3, (5, 5, 5, 5))
    b = a.copy()
    assert a == b
    b.pixels[1, 1, 3] = 0
    assert a != b
