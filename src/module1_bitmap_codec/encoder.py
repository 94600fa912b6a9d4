"""
Bitmap encoding entry point.

Provides encode_bitmap() which serializes a raster at a chosen bit depth.
"""

import logging
from typing import Optional

import numpy as np

from .errors import BitmapEncodeError
from .headers import (
    DEFAULT_PELS_PER_METER,
    BitmapDescriptor,
    Compression,
    pack_headers,
    row_stride,
)
from .masks import MASKS_ARGB8888, MASKS_RGB565, MASKS_RGB888, pack_with_masks
from .palette import palette_to_bytes, quantize_indices, quantized_palette
from .raster import PixelRaster

logger = logging.getLogger(__name__)


SUPPORTED_OUTPUT_BIT_COUNTS = (4, 8, 16, 24, 32)


def encode_bitmap(
    raster: PixelRaster,
    bit_count: int = 32,
    descriptor: Optional[BitmapDescriptor] = None,
) -> bytes:
    """
    Encode a raster into a bitmap byte stream.

    Args:
        raster: Source pixels (row 0 = bottom scanline)
        bit_count: Output depth
            - 32: bit-field write with ARGB masks
            - 24: uncompressed BGR
            - 16: bit-field write with 5-6-5 masks
            - 8:  3:3:2 quantized palette
            - 4:  2:2:1 quantized palette
        descriptor: Source metadata; only the resolution fields are reused

    Returns:
        Complete bitmap file contents (V4 header, bottom-up rows)

    Raises:
        BitmapEncodeError: Unsupported depth or inconsistent raster buffer
    """
    if bit_count not in SUPPORTED_OUTPUT_BIT_COUNTS:
        raise BitmapEncodeError(
            f"Cannot encode {bit_count}-bit bitmaps (supported: {SUPPORTED_OUTPUT_BIT_COUNTS})"
        )
    _validate_raster(raster)

    x_ppm = descriptor.x_pels_per_meter if descriptor else DEFAULT_PELS_PER_METER
    y_ppm = descriptor.y_pels_per_meter if descriptor else DEFAULT_PELS_PER_METER

    if bit_count in (4, 8):
        encoded = _encode_quantized(raster, bit_count, x_ppm, y_ppm)
    else:
        encoded = _encode_masked(raster, bit_count, x_ppm, y_ppm)

    logger.debug(
        f"Encoded {raster.width}x{raster.height} raster at {bit_count} bits "
        f"({len(encoded)} bytes)"
    )
    return encoded


def _validate_raster(raster: PixelRaster) -> None:
    pixels = raster.pixels
    if pixels.dtype != np.uint8 or pixels.shape != (raster.height, raster.width, 4):
        raise BitmapEncodeError(
            f"Raster buffer {pixels.shape}/{pixels.dtype} is inconsistent with "
            f"{raster.width}x{raster.height} RGBA"
        )
    if raster.width <= 0 or raster.height <= 0:
        raise BitmapEncodeError(f"Cannot encode empty raster {raster.width}x{raster.height}")


def _encode_masked(raster: PixelRaster, bit_count: int, x_ppm: int, y_ppm: int) -> bytes:
    if bit_count == 32:
        masks, compression = MASKS_ARGB8888, Compression.BITFIELDS
    elif bit_count == 16:
        masks, compression = MASKS_RGB565, Compression.BITFIELDS
    else:
        masks, compression = MASKS_RGB888, Compression.NONE

    body = pack_with_masks(raster, masks, include_padding=True)

    expected = row_stride(raster.width, bit_count) * raster.height
    if len(body) != expected:
        raise BitmapEncodeError(f"Packed {len(body)} bytes, expected {expected}")

    header = pack_headers(
        raster.width, raster.height, bit_count, compression, masks,
        x_pels_per_meter=x_ppm, y_pels_per_meter=y_ppm,
    )
    return header + body


def _encode_quantized(raster: PixelRaster, bit_count: int, x_ppm: int, y_ppm: int) -> bytes:
    palette = quantized_palette(bit_count)
    indices = quantize_indices(raster, bit_count)

    if bit_count == 4:
        # Two indices per byte, high nibble first
        if raster.width % 2:
            indices = np.concatenate(
                [indices, np.zeros((raster.height, 1), dtype=np.uint8)], axis=1
            )
        packed = (indices[:, 0::2] << 4) | indices[:, 1::2]
    else:
        packed = indices

    stride = row_stride(raster.width, bit_count)
    rows = np.zeros((raster.height, stride), dtype=np.uint8)
    rows[:, :packed.shape[1]] = packed

    header = pack_headers(
        raster.width, raster.height, bit_count, Compression.NONE,
        palette_entries=len(palette), x_pels_per_meter=x_ppm, y_pels_per_meter=y_ppm,
    )
    return header + palette_to_bytes(palette) + rows.tobytes()
