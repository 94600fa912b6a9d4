# file: src/module1_bitmap_codec/__init__.py

"""
Module 1: Bitmap Codec

Decodes BMP byte streams (1/4/8/16/24/32-bit, palette-indexed, RLE8 or
bit-field masks) into an RGBA PixelRaster and encodes rasters back at
4, 8, 16, 24 or 32 bits.

Coordinate convention: row 0 of every raster is the bottom scanline.

Public API:
    - decode_bitmap(data: bytes) -> (BitmapDescriptor, PixelRaster)
    - encode_bitmap(raster, bit_count=32, descriptor=None) -> bytes
    - load_bitmap(path) -> (BitmapDescriptor, PixelRaster)
    - save_bitmap(path, raster, bit_count=32, descriptor=None)
    - pack_with_masks(raster, masks, include_padding=True) -> bytes
    - raster_from_masked_buffer(buffer, width, height, masks) -> PixelRaster
    - convert_channel(value, from_bits, to_bits)
"""

from .raster import PixelRaster, Pixel
from .headers import BitmapDescriptor, Compression
from .masks import (
    ChannelMasks,
    MASKS_RGB555,
    MASKS_RGB565,
    MASKS_RGB888,
    MASKS_ARGB8888,
    bit_count_by_mask,
    bit_position_by_mask,
    component_by_mask,
    convert_channel,
    pack_with_masks,
    raster_from_masked_buffer,
)
from .decoder import decode_bitmap
from .encoder import encode_bitmap
from .bitmap_loader import load_bitmap
from .bitmap_writer import save_bitmap
from .errors import (
    BitmapError,
    BitmapDecodeError,
    UnsupportedBitmapError,
    BitmapEncodeError,
    RasterError,
)

__version__ = "1.0.0"

__all__ = [
    "PixelRaster",
    "Pixel",
    "BitmapDescriptor",
    "Compression",
    "ChannelMasks",
    "MASKS_RGB555",
    "MASKS_RGB565",
    "MASKS_RGB888",
    "MASKS_ARGB8888",
    "bit_count_by_mask",
    "bit_position_by_mask",
    "component_by_mask",
    "convert_channel",
    "pack_with_masks",
    "raster_from_masked_buffer",
    "decode_bitmap",
    "encode_bitmap",
    "load_bitmap",
    "save_bitmap",
    "BitmapError",
    "BitmapDecodeError",
    "UnsupportedBitmapError",
    "BitmapEncodeError",
    "RasterError",
]
