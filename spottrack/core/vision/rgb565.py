"""
Packed 5-6-5 pixel helpers.

Layout per 16-bit pixel: RRRRRGGGGGGBBBBB (red in the high bits). This is
what the camera DMA path delivers and what OpenCV calls COLOR_BGR2BGR565.
"""
import numpy as np

# Integer approximation of Y = 0.299 R + 0.587 G + 0.114 B, scaled by 256
LUMA_WEIGHT_R = 77
LUMA_WEIGHT_G = 150
LUMA_WEIGHT_B = 29


def unpack_rgb565(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split packed pixels into 8-bit channels, widening by bit replication."""
    p = pixels.astype(np.uint32, copy=False)
    r5 = (p >> 11) & 0x1F
    g6 = (p >> 5) & 0x3F
    b5 = p & 0x1F
    r8 = (r5 << 3) | (r5 >> 2)
    g8 = (g6 << 2) | (g6 >> 4)
    b8 = (b5 << 3) | (b5 >> 2)
    return r8, g8, b8


def rgb565_to_luma(pixels: np.ndarray) -> np.ndarray:
    """Luma (0-255, uint8) for every packed pixel."""
    r8, g8, b8 = unpack_rgb565(pixels)
    luma = (LUMA_WEIGHT_R * r8 + LUMA_WEIGHT_G * g8 + LUMA_WEIGHT_B * b8) >> 8
    return luma.astype(np.uint8)


def pixel_luma(value: int) -> int:
    """Scalar version of rgb565_to_luma, handy for logging a single pixel."""
    return int(rgb565_to_luma(np.array([value], dtype=np.uint16))[0])


def pack_rgb565(rgb: np.ndarray) -> np.ndarray:
    """Pack an (H, W, 3) uint8 RGB image into (H, W) uint16 5-6-5 pixels."""
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"expected an (H, W, 3) RGB image, got shape {rgb.shape}")
    rgb16 = rgb.astype(np.uint16, copy=False)
    r = rgb16[..., 0] >> 3
    g = rgb16[..., 1] >> 2
    b = rgb16[..., 2] >> 3
    return ((r << 11) | (g << 5) | b).astype(np.uint16)


def gray_to_rgb565(gray: np.ndarray) -> np.ndarray:
    """Pack an (H, W) uint8 gray image; gray levels whose low bits survive packing keep their luma."""
    gray = np.asarray(gray, dtype=np.uint8)
    return pack_rgb565(np.stack([gray, gray, gray], axis=-1))
