"""
Grayscale conversion.
"""

import numpy as np

from ..module1_bitmap_codec import PixelRaster
from .exceptions import ImageOpsError


# Integer luma weights (sum 256)
LUMA_WEIGHTS = (76, 150, 30)


def to_grayscale(raster: PixelRaster) -> np.ndarray:
    """
    Integer luma of every pixel: (R*76 + G*150 + B*30) >> 8.

    Args:
        raster: Source raster, left untouched

    Returns:
        (H, W) uint8 array in the raster's row order (row 0 = bottom)
    """
    rgb = raster.pixels[..., :3].astype(np.uint32)
    luma = (
        rgb[..., 0] * LUMA_WEIGHTS[0]
        + rgb[..., 1] * LUMA_WEIGHTS[1]
        + rgb[..., 2] * LUMA_WEIGHTS[2]
    ) >> 8
    return luma.astype(np.uint8)


def apply_grayscale(raster: PixelRaster, gray: np.ndarray) -> PixelRaster:
    """
    Write a luma buffer into the red, green and blue channels in place.

    Alpha is kept.

    Raises:
        ImageOpsError: If gray does not match the raster dimensions
    """
    if gray.shape != (raster.height, raster.width):
        raise ImageOpsError(
            f"Grayscale buffer shape {gray.shape} does not match raster "
            f"{raster.height}x{raster.width}"
        )
    raster.pixels[..., :3] = gray.astype(np.uint8)[..., None]
    return raster
