"""
Nearest-neighbor downscaling.

Two rounding policies exist side by side:
    - nearest_resample(): output floor(W*sw) x floor(H*sh), any factor in (0, 1]
    - downsample_half(): legacy halving, output ceil(W/2) x ceil(H/2)
"""

import numpy as np

from ..module1_bitmap_codec import PixelRaster
from .exceptions import ImageOpsError


def _source_indices(dst_size: int, scale: float, src_size: int) -> np.ndarray:
    """floor(i / scale) for every output index, clamped to the source."""
    indices = np.floor(np.arange(dst_size, dtype=np.float64) / scale).astype(np.int64)
    return np.clip(indices, 0, src_size - 1)


def nearest_resample(raster: PixelRaster, scale_width: float, scale_height: float) -> PixelRaster:
    """
    Downscale by independent horizontal/vertical factors.

    Output pixel (i, j), counted from the top-left, samples source pixel
    (floor(i / scale_height), floor(j / scale_width)).

    Args:
        raster: Source raster (not modified)
        scale_width: Horizontal factor in (0, 1]
        scale_height: Vertical factor in (0, 1]

    Returns:
        New raster of floor(W * scale_width) x floor(H * scale_height)

    Raises:
        ImageOpsError: Factor outside (0, 1] or empty output
    """
    for name, scale in (("scale_width", scale_width), ("scale_height", scale_height)):
        if not 0.0 < scale <= 1.0:
            raise ImageOpsError(f"{name} must be in (0, 1] (downscale only), got {scale}")

    dst_width = int(raster.width * scale_width)
    dst_height = int(raster.height * scale_height)
    if dst_width == 0 or dst_height == 0:
        raise ImageOpsError(
            f"Resampling {raster.width}x{raster.height} by ({scale_width}, {scale_height}) "
            f"gives an empty raster"
        )

    rows = _source_indices(dst_height, scale_height, raster.height)
    cols = _source_indices(dst_width, scale_width, raster.width)

    top_down = raster.top_down()
    sampled = top_down[rows[:, None], cols[None, :]]

    return PixelRaster(dst_width, dst_height, np.ascontiguousarray(sampled[::-1]))


def downsample_half(raster: PixelRaster) -> PixelRaster:
    """
    Legacy halving: keep every second pixel of every second row.

    Sampling starts at buffer row 0 (the bottom scanline) and column 0.

    Returns:
        New raster of ceil(W / 2) x ceil(H / 2)
    """
    halved = np.ascontiguousarray(raster.pixels[::2, ::2])
    return PixelRaster(halved.shape[1], halved.shape[0], halved)


def downsample_half_n(raster: PixelRaster, times: int) -> PixelRaster:
    """
    Apply downsample_half() `times` times.

    Raises:
        ImageOpsError: If times is negative
    """
    if times < 0:
        raise ImageOpsError(f"Downsample repetition count must be >= 0, got {times}")
    result = raster.copy()
    for _ in range(times):
        result = downsample_half(result)
    return result
