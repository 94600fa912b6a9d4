"""
Bitmap file and DIB header layouts.

All fields are little-endian. The file header is 14 bytes; the DIB header
size is self-describing (40 for BITMAPINFOHEADER, up to 108 for V4 with
channel masks, color-space type, endpoints and gamma).
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from .errors import BitmapDecodeError, UnsupportedBitmapError
from .masks import ChannelMasks


BITMAP_SIGNATURE = 0x4D42  # "BM"
FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
V4_HEADER_SIZE = 108

FILE_HEADER = struct.Struct("<HIII")
INFO_HEADER = struct.Struct("<IiiHHIIiiII")
MASKS_RGB = struct.Struct("<III")
MASKS_RGBA = struct.Struct("<IIII")
V4_TAIL = struct.Struct("<I9I3I")  # cs_type, endpoints[9], gamma r/g/b

LCS_SRGB = 0x73524742
DEFAULT_PELS_PER_METER = 3780

SUPPORTED_BIT_COUNTS = (1, 4, 8, 16, 24, 32)


class Compression(IntEnum):
    """DIB compression codes."""
    NONE = 0
    RLE8 = 1
    RLE4 = 2
    BITFIELDS = 3


@dataclass
class BitmapDescriptor:
    """
    Decoded header metadata.

    height keeps its sign: positive means rows are stored bottom-up,
    negative means top-down.
    """
    width: int
    height: int
    bit_count: int
    compression: Compression
    masks: Optional[ChannelMasks] = None
    palette: Optional[np.ndarray] = None  # (N, 4) uint8 RGBA
    header_size: int = V4_HEADER_SIZE
    planes: int = 1
    image_size: int = 0
    x_pels_per_meter: int = DEFAULT_PELS_PER_METER
    y_pels_per_meter: int = DEFAULT_PELS_PER_METER
    colors_used: int = 0
    colors_important: int = 0
    bits_offset: int = 0
    file_size: int = 0
    cs_type: int = 0

    @property
    def abs_height(self) -> int:
        return abs(self.height)

    @property
    def top_down(self) -> bool:
        return self.height < 0

    @property
    def row_stride(self) -> int:
        """Scanline width in bytes, padded to a 4-byte boundary."""
        return row_stride(self.width, self.bit_count)

    @property
    def palette_capacity(self) -> int:
        """Full color table size for palette-indexed depths, 0 otherwise."""
        if self.bit_count in (1, 4, 8):
            return 1 << self.bit_count
        return 0


def row_stride(width: int, bit_count: int) -> int:
    return ((width * bit_count + 7) // 8 + 3) & ~3


def parse_headers(data: bytes) -> BitmapDescriptor:
    """
    Parse file and DIB headers into a descriptor (palette not yet attached).

    Raises:
        BitmapDecodeError: Bad signature or truncated headers
        UnsupportedBitmapError: Header variants or depths we do not decode
    """
    if len(data) < FILE_HEADER_SIZE + 4:
        raise BitmapDecodeError(f"Stream too short for bitmap headers ({len(data)} bytes)")

    signature, file_size, _reserved, bits_offset = FILE_HEADER.unpack_from(data, 0)
    if signature != BITMAP_SIGNATURE:
        raise BitmapDecodeError(f"Bad bitmap signature 0x{signature:04X}, expected 0x{BITMAP_SIGNATURE:04X}")

    header_size = struct.unpack_from("<I", data, FILE_HEADER_SIZE)[0]
    if header_size < INFO_HEADER_SIZE:
        raise UnsupportedBitmapError(f"DIB header size {header_size} is not supported (minimum 40)")
    if len(data) < FILE_HEADER_SIZE + header_size:
        raise BitmapDecodeError(
            f"Stream truncated inside DIB header ({len(data)} bytes, header needs {FILE_HEADER_SIZE + header_size})"
        )

    try:
        (_size, width, height, planes, bit_count, compression_code, image_size,
         x_ppm, y_ppm, colors_used, colors_important) = INFO_HEADER.unpack_from(data, FILE_HEADER_SIZE)
    except struct.error as e:
        raise BitmapDecodeError(f"Unreadable DIB header: {e}") from e

    try:
        compression = Compression(compression_code)
    except ValueError as e:
        raise UnsupportedBitmapError(
            f"Unknown compression code {compression_code}", bit_count, compression_code
        ) from e

    if bit_count not in SUPPORTED_BIT_COUNTS:
        raise UnsupportedBitmapError(f"Unsupported bit depth {bit_count}", bit_count, compression_code)
    if width <= 0 or height == 0:
        raise BitmapDecodeError(f"Invalid bitmap dimensions {width}x{height}")

    descriptor = BitmapDescriptor(
        width=width,
        height=height,
        bit_count=bit_count,
        compression=compression,
        header_size=header_size,
        planes=planes,
        image_size=image_size,
        x_pels_per_meter=x_ppm,
        y_pels_per_meter=y_ppm,
        colors_used=colors_used,
        colors_important=colors_important,
        bits_offset=bits_offset,
        file_size=file_size,
    )

    mask_offset = FILE_HEADER_SIZE + INFO_HEADER_SIZE
    if header_size >= INFO_HEADER_SIZE + MASKS_RGBA.size:
        red, green, blue, alpha = MASKS_RGBA.unpack_from(data, mask_offset)
        descriptor.masks = ChannelMasks(red, green, blue, alpha)
    elif header_size >= INFO_HEADER_SIZE + MASKS_RGB.size:
        red, green, blue = MASKS_RGB.unpack_from(data, mask_offset)
        descriptor.masks = ChannelMasks(red, green, blue)
    elif compression == Compression.BITFIELDS:
        # Plain info header: masks follow it as three DWORDs
        if len(data) < mask_offset + MASKS_RGB.size:
            raise BitmapDecodeError("Stream truncated inside bit-field masks")
        red, green, blue = MASKS_RGB.unpack_from(data, mask_offset)
        descriptor.masks = ChannelMasks(red, green, blue)

    if header_size >= V4_HEADER_SIZE:
        descriptor.cs_type = V4_TAIL.unpack_from(data, mask_offset + MASKS_RGBA.size)[0]

    return descriptor


def palette_offset(descriptor: BitmapDescriptor) -> int:
    """Byte offset of the color table."""
    offset = FILE_HEADER_SIZE + descriptor.header_size
    if descriptor.compression == Compression.BITFIELDS and descriptor.header_size == INFO_HEADER_SIZE:
        offset += MASKS_RGB.size
    return offset


def pack_headers(
    width: int,
    height: int,
    bit_count: int,
    compression: Compression,
    masks: Optional[ChannelMasks] = None,
    palette_entries: int = 0,
    x_pels_per_meter: int = DEFAULT_PELS_PER_METER,
    y_pels_per_meter: int = DEFAULT_PELS_PER_METER,
) -> bytes:
    """
    Build a 14-byte file header plus a 108-byte V4 DIB header.

    Rows are always written bottom-up (positive height).
    """
    image_size = row_stride(width, bit_count) * height
    bits_offset = FILE_HEADER_SIZE + V4_HEADER_SIZE + 4 * palette_entries
    masks = masks or ChannelMasks(0, 0, 0, 0)

    file_header = FILE_HEADER.pack(BITMAP_SIGNATURE, bits_offset + image_size, 0, bits_offset)
    info_header = INFO_HEADER.pack(
        V4_HEADER_SIZE, width, height, 1, bit_count, int(compression), image_size,
        x_pels_per_meter, y_pels_per_meter, palette_entries, 0,
    )
    mask_block = MASKS_RGBA.pack(masks.red, masks.green, masks.blue, masks.alpha)
    v4_tail = V4_TAIL.pack(LCS_SRGB, *([0] * 12))

    return file_header + info_header + mask_block + v4_tail
