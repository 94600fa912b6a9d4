"""
Owned pixel raster shared by every pipeline stage.

Pixels are stored as one contiguous (H, W, 4) uint8 RGBA array. Row 0 of the
buffer is the BOTTOM scanline of the displayed image (origin bottom-left), the
same order uncompressed bitmaps store their rows in.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import RasterError


# Type alias for a single pixel
Pixel = Tuple[int, int, int, int]  # (red, green, blue, alpha)


@dataclass
class PixelRaster:
    """
    RGBA raster with explicit dimensions.

    Attributes:
        width: Number of columns (> 0)
        height: Number of rows (> 0)
        pixels: Array of shape (height, width, 4), dtype uint8, RGBA order,
                row 0 = bottom scanline
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise RasterError(
                f"Raster dimensions must be positive, got {self.width}x{self.height}"
            )
        if not isinstance(self.pixels, np.ndarray):
            raise RasterError(f"Pixel buffer must be np.ndarray, got {type(self.pixels)}")
        if self.pixels.dtype != np.uint8:
            raise RasterError(f"Pixel buffer must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape != (self.height, self.width, 4):
            raise RasterError(
                f"Pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        self.pixels = np.ascontiguousarray(self.pixels)

    @classmethod
    def blank(cls, width: int, height: int, color: Pixel = (0, 0, 0, 255)) -> "PixelRaster":
        """Create a raster filled with a single color."""
        if width <= 0 or height <= 0:
            raise RasterError(f"Raster dimensions must be positive, got {width}x{height}")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = np.asarray(color, dtype=np.uint8)
        return cls(width, height, pixels)

    @classmethod
    def from_top_down(cls, rgba: np.ndarray) -> "PixelRaster":
        """
        Build a raster from an (H, W, 4) or (H, W, 3) array whose row 0 is the top row.

        Three-channel input gets an opaque alpha channel.
        """
        if rgba.ndim != 3 or rgba.shape[2] not in (3, 4):
            raise RasterError(f"Expected (H, W, 3|4) array, got shape {rgba.shape}")
        height, width = rgba.shape[:2]
        if rgba.shape[2] == 3:
            alpha = np.full((height, width, 1), 255, dtype=np.uint8)
            rgba = np.concatenate([rgba.astype(np.uint8), alpha], axis=2)
        return cls(width, height, np.flipud(rgba).astype(np.uint8))

    @property
    def size(self) -> int:
        """Number of pixels (W * H)."""
        return self.width * self.height

    @property
    def buffer(self) -> np.ndarray:
        """Flat row-major (W*H, 4) view of the pixel buffer."""
        return self.pixels.reshape(self.size, 4)

    @property
    def stride(self) -> int:
        """Pixels per row in the flat buffer."""
        return self.width

    def top_down(self) -> np.ndarray:
        """(H, W, 4) view with row 0 as the top displayed row."""
        return self.pixels[::-1]

    def pixel(self, x: int, y: int) -> Pixel:
        """
        Read one pixel in buffer coordinates (y = 0 is the bottom row).

        Raises:
            IndexError: If (x, y) lies outside the raster
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} raster")
        return tuple(int(c) for c in self.pixels[y, x])

    def set_pixels(self, pixels: np.ndarray) -> None:
        """Replace the buffer wholesale; dimensions follow the new array."""
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise RasterError(f"Expected (H, W, 4) array, got shape {pixels.shape}")
        height, width = pixels.shape[:2]
        if width <= 0 or height <= 0:
            raise RasterError(f"Raster dimensions must be positive, got {width}x{height}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
        self.width = width
        self.height = height

    def copy(self) -> "PixelRaster":
        return PixelRaster(self.width, self.height, self.pixels.copy())
