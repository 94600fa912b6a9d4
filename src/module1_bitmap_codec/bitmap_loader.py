"""
Bitmap file loading.

This module reads a bitmap file from disk and decodes it with decode_bitmap().
"""

import os
from typing import Tuple

from .decoder import decode_bitmap
from .errors import BitmapDecodeError
from .headers import BitmapDescriptor
from .raster import PixelRaster


def load_bitmap(path: str) -> Tuple[BitmapDescriptor, PixelRaster]:
    """
    Load and decode a bitmap file.

    Args:
        path: Path to a .bmp file

    Returns:
        descriptor: Header metadata
        raster: Decoded RGBA pixels (row 0 = bottom scanline)

    Raises:
        FileNotFoundError: If the file doesn't exist
        BitmapDecodeError: If the file is unreadable or not a supported bitmap
    """
    path = os.fspath(path)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Bitmap file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise BitmapDecodeError(f"Unable to read bitmap file {path}: {e}") from e

    return decode_bitmap(data)
