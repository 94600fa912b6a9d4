"""
Bitmap decoding entry point.

Provides decode_bitmap() which turns a complete bitmap byte stream into a
descriptor and an RGBA raster whose row 0 is the bottom scanline, whatever
the scan direction of the source.
"""

import logging
from typing import Tuple

import numpy as np

from .errors import BitmapDecodeError, UnsupportedBitmapError
from .headers import BitmapDescriptor, Compression, parse_headers, palette_offset
from .masks import MASKS_RGB555, unpack_with_masks
from .palette import lookup, read_palette
from .raster import PixelRaster

logger = logging.getLogger(__name__)


# RLE8 escape codes (second byte after a zero count)
RLE_END_OF_LINE = 0
RLE_END_OF_BITMAP = 1
RLE_DELTA = 2


def decode_bitmap(data: bytes) -> Tuple[BitmapDescriptor, PixelRaster]:
    """
    Decode a bitmap byte stream.

    Args:
        data: Complete file contents

    Returns:
        descriptor: Header metadata (palette attached for depths <= 8)
        raster: RGBA pixels, row 0 = bottom scanline

    Raises:
        BitmapDecodeError: Bad signature, truncated or malformed stream
        UnsupportedBitmapError: RLE4 or any depth/compression pair not handled

    Example:
        >>> with open("scene.bmp", "rb") as f:
        ...     descriptor, raster = decode_bitmap(f.read())
        >>> raster.width, raster.height
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise BitmapDecodeError(f"Input must be bytes, got {type(data)}")
    data = bytes(data)

    descriptor = parse_headers(data)

    if descriptor.palette_capacity:
        descriptor.palette = read_palette(
            data,
            palette_offset(descriptor),
            descriptor.palette_capacity,
            descriptor.colors_used,
        )

    compression = descriptor.compression
    if compression == Compression.NONE:
        rows = _decode_uncompressed(data, descriptor)
    elif compression == Compression.RLE8:
        rows = _decode_rle8(data, descriptor)
    elif compression == Compression.RLE4:
        raise UnsupportedBitmapError(
            "RLE4 compression is not supported", descriptor.bit_count, int(compression)
        )
    elif compression == Compression.BITFIELDS:
        rows = _decode_bitfields(data, descriptor)
    else:
        raise UnsupportedBitmapError(
            f"Unknown compression {compression}", descriptor.bit_count, int(compression)
        )

    scan = "top-down" if descriptor.top_down else "bottom-up"
    logger.debug(
        f"Decoded {descriptor.width}x{descriptor.abs_height} {descriptor.bit_count}-bit "
        f"bitmap ({compression.name}, {scan})"
    )

    return descriptor, PixelRaster(descriptor.width, descriptor.abs_height, rows)


def _read_scanlines(data: bytes, descriptor: BitmapDescriptor) -> np.ndarray:
    """
    Raw scanlines as a (H, stride) uint8 array in buffer order (row 0 = bottom).

    Raises:
        BitmapDecodeError: If the pixel data is truncated
    """
    height = descriptor.abs_height
    stride = descriptor.row_stride
    needed = stride * height
    offset = descriptor.bits_offset

    if offset + needed > len(data):
        raise BitmapDecodeError(
            f"Pixel data truncated: need {needed} bytes at offset {offset}, "
            f"stream has {max(len(data) - offset, 0)}"
        )

    lines = np.frombuffer(data, dtype=np.uint8, count=needed, offset=offset).reshape(height, stride)
    if descriptor.top_down:
        lines = lines[::-1]
    return lines


def _require_palette(descriptor: BitmapDescriptor) -> np.ndarray:
    if descriptor.palette is None:
        raise UnsupportedBitmapError(
            f"{descriptor.bit_count}-bit {descriptor.compression.name} bitmap has no color table",
            descriptor.bit_count, int(descriptor.compression),
        )
    return descriptor.palette


def _decode_uncompressed(data: bytes, descriptor: BitmapDescriptor) -> np.ndarray:
    """Unpack uncompressed scanlines for every supported depth."""
    lines = _read_scanlines(data, descriptor)
    width = descriptor.width
    height = descriptor.abs_height
    bit_count = descriptor.bit_count

    if bit_count == 1:
        # 8 pixels per byte, most significant bit first
        indices = np.unpackbits(lines, axis=1)[:, :width]
        return lookup(_require_palette(descriptor), indices)

    if bit_count == 4:
        # 2 pixels per byte, high nibble first
        nibbles = np.empty((height, lines.shape[1] * 2), dtype=np.uint8)
        nibbles[:, 0::2] = lines >> 4
        nibbles[:, 1::2] = lines & 0x0F
        return lookup(_require_palette(descriptor), nibbles[:, :width])

    if bit_count == 8:
        return lookup(_require_palette(descriptor), lines[:, :width])

    if bit_count == 16:
        words = lines[:, :2 * width].copy().view("<u2")
        # Widened with low-bit fill, so a 5-bit 31 becomes 255 rather than 248
        return unpack_with_masks(words, MASKS_RGB555)

    if bit_count == 24:
        bgr = lines[:, :3 * width].reshape(height, width, 3)
        rgba = np.empty((height, width, 4), dtype=np.uint8)
        rgba[..., :3] = bgr[..., ::-1]
        rgba[..., 3] = 255
        return rgba

    if bit_count == 32:
        bgra = lines[:, :4 * width].reshape(height, width, 4)
        return np.ascontiguousarray(bgra[..., [2, 1, 0, 3]])

    raise UnsupportedBitmapError(
        f"Unsupported uncompressed bit depth {bit_count}", bit_count, int(Compression.NONE)
    )


def _decode_bitfields(data: bytes, descriptor: BitmapDescriptor) -> np.ndarray:
    """Extract channels through the header masks (16 and 32-bit only)."""
    bit_count = descriptor.bit_count
    if bit_count not in (16, 32):
        raise UnsupportedBitmapError(
            f"Bit-field compression is not valid for {bit_count}-bit bitmaps",
            bit_count, int(Compression.BITFIELDS),
        )
    if descriptor.masks is None:
        raise BitmapDecodeError("Bit-field bitmap carries no channel masks")

    lines = _read_scanlines(data, descriptor)
    bytes_per_pixel = bit_count // 8
    raw = lines[:, :bytes_per_pixel * descriptor.width].copy()
    words = raw.view("<u2" if bit_count == 16 else "<u4")

    return unpack_with_masks(words, descriptor.masks)


def _decode_rle8(data: bytes, descriptor: BitmapDescriptor) -> np.ndarray:
    """
    Decode an RLE8 token stream.

    The cursor addresses the buffer linearly (x + y * width) with y counting
    scanlines from the bottom. Pixels never written keep palette entry 0.
    """
    if descriptor.bit_count != 8:
        raise UnsupportedBitmapError(
            f"RLE8 compression is not valid for {descriptor.bit_count}-bit bitmaps",
            descriptor.bit_count, int(Compression.RLE8),
        )
    palette = _require_palette(descriptor)

    width = descriptor.width
    height = descriptor.abs_height
    total = width * height
    indices = np.zeros(total, dtype=np.uint8)

    pos = descriptor.bits_offset
    end = len(data)
    if descriptor.image_size:
        end = min(end, pos + descriptor.image_size)
    if pos > end:
        raise BitmapDecodeError(f"Pixel data offset {pos} lies beyond the stream")

    def emit(start: int, values) -> None:
        if start < 0 or start + len(values) > total:
            raise BitmapDecodeError(
                f"RLE8 run of {len(values)} pixels at index {start} overflows {width}x{height} buffer"
            )
        indices[start:start + len(values)] = values

    x = 0
    y = 0
    while pos < end:
        if pos + 2 > end:
            raise BitmapDecodeError("RLE8 stream truncated inside a token")
        count, value = data[pos], data[pos + 1]
        pos += 2

        if count > 0:
            emit(x + y * width, np.full(count, value, dtype=np.uint8))
            x += count
            continue

        if value == RLE_END_OF_LINE:
            x = 0
            y += 1
        elif value == RLE_END_OF_BITMAP:
            break
        elif value == RLE_DELTA:
            if pos + 2 > end:
                raise BitmapDecodeError("RLE8 stream truncated inside a delta escape")
            dx = int.from_bytes(data[pos:pos + 1], "little", signed=True)
            dy = int.from_bytes(data[pos + 1:pos + 2], "little", signed=True)
            pos += 2
            x += dx
            y += dy
        else:
            # Literal run; stream stays 2-byte aligned
            run = value
            if pos + run > end:
                raise BitmapDecodeError(f"RLE8 stream truncated inside a {run}-byte literal run")
            emit(x + y * width, np.frombuffer(data, dtype=np.uint8, count=run, offset=pos))
            pos += run + (run & 1)
            x += run

    rows = lookup(palette, indices).reshape(height, width, 4)
    if descriptor.top_down:
        rows = rows[::-1]
    return np.ascontiguousarray(rows)
