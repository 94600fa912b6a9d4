"""
Module 2: Image Operations

Raster preprocessing used ahead of template matching: integer grayscale,
separable Gaussian smoothing with edge-replicated halo, and nearest-neighbor
downscaling.

Public Interface:
    - to_grayscale(raster) -> np.ndarray
    - apply_grayscale(raster, gray) -> PixelRaster
    - gaussian_blur(raster) / gaussian_blur_n(raster, times)
    - nearest_resample(raster, scale_width, scale_height) -> PixelRaster
    - downsample_half(raster) / downsample_half_n(raster, times)
    - ImageOpsError

Example usage:
    >>> from src.module2_image_ops import gaussian_blur_n, nearest_resample, to_grayscale
    >>> gaussian_blur_n(scene, 3)
    >>> small = nearest_resample(scene, 0.1, 0.1)
    >>> gray = to_grayscale(small)
"""

from .grayscale import to_grayscale, apply_grayscale, LUMA_WEIGHTS
from .filters import gaussian_blur, gaussian_blur_n, GAUSSIAN_HALF_WEIGHTS
from .resampling import nearest_resample, downsample_half, downsample_half_n
from .exceptions import ImageOpsError

__all__ = [
    "to_grayscale",
    "apply_grayscale",
    "LUMA_WEIGHTS",
    "gaussian_blur",
    "gaussian_blur_n",
    "GAUSSIAN_HALF_WEIGHTS",
    "nearest_resample",
    "downsample_half",
    "downsample_half_n",
    "ImageOpsError",
]

__version__ = "1.0.0"
