"""
Separable Gaussian smoothing.

One pass runs a 5-tap kernel over every row, then over every column. The
2-pixel halo comes from replicating the nearest edge row/column, so a
constant raster is a fixed point. Coarser smoothing is obtained only by
repeating the pass.
"""

import cv2
import numpy as np

from ..module1_bitmap_codec import PixelRaster
from .exceptions import ImageOpsError


# Center, +/-1, +/-2
GAUSSIAN_HALF_WEIGHTS = (0.4026, 0.2442, 0.0545)
HALO = 2


def _convolve_rows(rgb: np.ndarray) -> np.ndarray:
    """Horizontal 5-tap pass over an (H, W, 3) float array."""
    w0, w1, w2 = GAUSSIAN_HALF_WEIGHTS
    width = rgb.shape[1]
    padded = cv2.copyMakeBorder(rgb, 0, 0, HALO, HALO, cv2.BORDER_REPLICATE)

    center = padded[:, HALO:HALO + width]
    near = padded[:, HALO - 1:HALO - 1 + width] + padded[:, HALO + 1:HALO + 1 + width]
    far = padded[:, :width] + padded[:, 2 * HALO:2 * HALO + width]
    return center * w0 + near * w1 + far * w2


def _convolve_columns(rgb: np.ndarray) -> np.ndarray:
    """Vertical 5-tap pass over an (H, W, 3) float array."""
    w0, w1, w2 = GAUSSIAN_HALF_WEIGHTS
    height = rgb.shape[0]
    padded = cv2.copyMakeBorder(rgb, HALO, HALO, 0, 0, cv2.BORDER_REPLICATE)

    center = padded[HALO:HALO + height]
    near = padded[HALO - 1:HALO - 1 + height] + padded[HALO + 1:HALO + 1 + height]
    far = padded[:height] + padded[2 * HALO:2 * HALO + height]
    return center * w0 + near * w1 + far * w2


def _to_channel(values: np.ndarray) -> np.ndarray:
    # Each pass stores back to 8-bit channels
    return np.clip(np.rint(values), 0, 255)


def gaussian_blur(raster: PixelRaster) -> PixelRaster:
    """
    Smooth the RGB channels in place with one separable pass.

    Args:
        raster: Raster to smooth (alpha untouched)

    Returns:
        The same raster, for chaining
    """
    rgb = np.ascontiguousarray(raster.pixels[..., :3], dtype=np.float64)

    rgb = _to_channel(_convolve_rows(rgb))
    rgb = _to_channel(_convolve_columns(np.ascontiguousarray(rgb)))

    raster.pixels[..., :3] = rgb.astype(np.uint8)
    return raster


def gaussian_blur_n(raster: PixelRaster, times: int) -> PixelRaster:
    """
    Repeat gaussian_blur() `times` times in place.

    Raises:
        ImageOpsError: If times is negative
    """
    if times < 0:
        raise ImageOpsError(f"Blur repetition count must be >= 0, got {times}")
    for _ in range(times):
        gaussian_blur(raster)
    return raster
