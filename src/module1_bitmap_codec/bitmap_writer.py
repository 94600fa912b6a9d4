"""
Bitmap file writing.

This module encodes a raster with encode_bitmap() and writes it to disk.
"""

import os
from typing import Optional

from .encoder import encode_bitmap
from .headers import BitmapDescriptor
from .raster import PixelRaster


def save_bitmap(
    path: str,
    raster: PixelRaster,
    bit_count: int = 32,
    descriptor: Optional[BitmapDescriptor] = None,
) -> None:
    """
    Encode a raster and write it to a bitmap file.

    The file is only created once encoding has succeeded, so a failed encode
    never leaves a partial file behind.

    Args:
        path: Output path
        raster: Pixels to write
        bit_count: Output depth (4, 8, 16, 24 or 32)
        descriptor: Source metadata whose resolution fields are reused

    Raises:
        BitmapEncodeError: If the raster cannot be encoded at bit_count
        IOError: If the write fails
    """
    data = encode_bitmap(raster, bit_count, descriptor)

    path = os.fspath(path)
    output_dir = os.path.dirname(path)

    try:
        if output_dir and not os.path.exists(output_dir):
            os.makedirs(output_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        if os.path.exists(path):
            os.remove(path)
        raise IOError(f"Error writing bitmap {path}: {e}") from e
