"""Tests for packed 5-6-5 pixel helpers and Frame construction."""

import numpy as np
import pytest

from spottrack.core.types import Frame
from spottrack.core.vision.rgb565 import (
    gray_to_rgb565,
    pack_rgb565,
    pixel_luma,
    rgb565_to_luma,
    unpack_rgb565,
)


class TestUnpack:

    def test_white_widens_to_full_range(self):
        r, g, b = unpack_rgb565(np.array([0xFFFF], dtype=np.uint16))
        assert (int(r[0]), int(g[0]), int(b[0])) == (255, 255, 255)

    def test_black(self):
        r, g, b = unpack_rgb565(np.array([0x0000], dtype=np.uint16))
        assert (int(r[0]), int(g[0]), int(b[0])) == (0, 0, 0)

    def test_pure_red_lives_in_high_bits(self):
        r, g, b = unpack_rgb565(np.array([0xF800], dtype=np.uint16))
        assert (int(r[0]), int(g[0]), int(b[0])) == (255, 0, 0)

    def test_bit_replication(self):
        # r5 = 0b10000 -> 0b10000100
        r, _, _ = unpack_rgb565(np.array([0b10000 << 11], dtype=np.uint16))
        assert int(r[0]) == 0b10000100


class TestLuma:

    def test_white_is_255(self):
        assert pixel_luma(0xFFFF) == 255

    def test_black_is_0(self):
        assert pixel_luma(0x0000) == 0

    def test_pure_channels(self):
        assert pixel_luma(0xF800) == (77 * 255) >> 8
        assert pixel_luma(0x07E0) == (150 * 255) >> 8
        assert pixel_luma(0x001F) == (29 * 255) >> 8

    def test_green_dominates(self):
        assert pixel_luma(0x07E0) > pixel_luma(0xF800) > pixel_luma(0x001F)

    def test_vectorised_shape_and_dtype(self):
        pixels = np.full((4, 6), 0xFFFF, dtype=np.uint16)
        luma = rgb565_to_luma(pixels)
        assert luma.shape == (4, 6)
        assert luma.dtype == np.uint8
        assert np.all(luma == 255)


class TestPack:

    def test_gray_levels_that_survive_packing(self):
        gray = np.array([[0, 247, 255]], dtype=np.uint8)
        luma = rgb565_to_luma(gray_to_rgb565(gray))
        assert luma.tolist() == [[0, 247, 255]]

    def test_pack_white(self):
        rgb = np.full((1, 1, 3), 255, dtype=np.uint8)
        assert int(pack_rgb565(rgb)[0, 0]) == 0xFFFF

    def test_pack_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            pack_rgb565(np.zeros((4, 4), dtype=np.uint8))


class TestFrame:

    def test_from_buffer_is_little_endian(self):
        buffer = bytes([0x1F, 0x00, 0x00, 0xF8])  # blue, red
        frame = Frame.from_buffer(buffer, width=2, height=1)
        assert frame.pixels.tolist() == [[0x001F, 0xF800]]

    def test_from_buffer_too_short(self):
        with pytest.raises(ValueError):
            Frame.from_buffer(bytes(10), width=4, height=4)

    def test_shape_must_match(self):
        with pytest.raises(ValueError):
            Frame(width=5, height=4, pixels=np.zeros((4, 4), dtype=np.uint16))

    def test_rejects_non_uint16(self):
        with pytest.raises(ValueError):
            Frame.from_pixels(np.zeros((4, 4), dtype=np.uint8))

    def test_pixels_are_read_only(self):
        frame = Frame.from_pixels(np.zeros((4, 4), dtype=np.uint16))
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 1
