"""
Color tables for palette-indexed bitmaps.

Decoding reads BGRA records from the stream. Encoding never searches for a
palette: the 4-bit (2:2:1) and 8-bit (3:3:2) tables are generated from the
bit allocation alone, and every pixel maps to an index by truncating its
channels to that allocation.
"""

import numpy as np

from .errors import BitmapDecodeError, BitmapEncodeError
from .raster import PixelRaster


def read_palette(data: bytes, offset: int, capacity: int, colors_used: int = 0) -> np.ndarray:
    """
    Read a color table into a full-size RGBA array.

    Args:
        data: Whole bitmap stream
        offset: Byte offset of the first entry
        capacity: Table size implied by the bit depth (2, 16 or 256)
        colors_used: Entries actually stored (0 = capacity)

    Returns:
        (capacity, 4) uint8 array in RGBA order; unstored entries are zero

    Raises:
        BitmapDecodeError: If the stream ends inside the table
    """
    count = colors_used if 0 < colors_used <= capacity else capacity
    end = offset + 4 * count
    if end > len(data):
        raise BitmapDecodeError(
            f"Stream truncated inside color table ({count} entries at offset {offset})"
        )

    bgra = np.frombuffer(data, dtype=np.uint8, count=4 * count, offset=offset).reshape(count, 4)
    palette = np.zeros((capacity, 4), dtype=np.uint8)
    palette[:count] = bgra[:, [2, 1, 0, 3]]
    return palette


def palette_to_bytes(palette: np.ndarray) -> bytes:
    """Serialize an (N, 4) RGBA palette as BGRA records."""
    return np.ascontiguousarray(palette[:, [2, 1, 0, 3]], dtype=np.uint8).tobytes()


def lookup(palette: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Map palette indices to RGBA pixels.

    The table always holds the full capacity of the bit depth, so an index
    past the stored colors_used entries is accepted and yields the zero
    entry (0, 0, 0, 0).

    Raises:
        BitmapDecodeError: If an index falls outside the table
    """
    if indices.size and int(indices.max()) >= len(palette):
        raise BitmapDecodeError(
            f"Palette index {int(indices.max())} out of range for {len(palette)}-entry table"
        )
    return palette[indices]


def _widen(level: int, shift: int, fill: int) -> int:
    return (level << shift) | fill if level else 0


def quantized_palette(bit_count: int) -> np.ndarray:
    """
    Deterministic palette for quantized writes.

    4-bit: index = r | g << 2 | b << 3 with 2 red bits, 1 green bit, 1 blue bit.
    8-bit: index = r | g << 3 | b << 6 with 3 red bits, 3 green bits, 2 blue bits.

    Raises:
        BitmapEncodeError: For any other depth
    """
    if bit_count == 4:
        palette = np.zeros((16, 4), dtype=np.uint8)
        for r in range(4):
            for g in range(2):
                for b in range(2):
                    palette[r | g << 2 | b << 3] = (
                        _widen(r, 6, 0x3F), _widen(g, 7, 0x7F), _widen(b, 7, 0x7F), 0xFF
                    )
        return palette

    if bit_count == 8:
        palette = np.zeros((256, 4), dtype=np.uint8)
        for r in range(8):
            for g in range(8):
                for b in range(4):
                    palette[r | g << 3 | b << 6] = (
                        _widen(r, 5, 0x1F), _widen(g, 5, 0x1F), _widen(b, 6, 0x3F), 0xFF
                    )
        return palette

    raise BitmapEncodeError(f"No quantized palette for {bit_count}-bit output")


def quantize_indices(raster: PixelRaster, bit_count: int) -> np.ndarray:
    """
    Palette indices for every pixel, shape (H, W), uint8.

    Raises:
        BitmapEncodeError: For depths without a quantized palette
    """
    red = raster.pixels[..., 0]
    green = raster.pixels[..., 1]
    blue = raster.pixels[..., 2]

    if bit_count == 4:
        return ((red >> 6) | (green >> 7) << 2 | (blue >> 7) << 3).astype(np.uint8)
    if bit_count == 8:
        return ((red >> 5) | (green >> 5) << 3 | (blue >> 6) << 6).astype(np.uint8)

    raise BitmapEncodeError(f"No quantized palette for {bit_count}-bit output")
