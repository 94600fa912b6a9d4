"""
Channel bit-mask helpers.

A bit-field mask marks which bits of a packed pixel word hold one channel.
The channel width is the population count of the mask and its position is
the index of the lowest set bit. Masks may appear in any order in the word.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

from .errors import BitmapEncodeError, BitmapDecodeError
from .raster import PixelRaster


ArrayOrInt = Union[int, np.ndarray]


@dataclass(frozen=True)
class ChannelMasks:
    """Red/green/blue/alpha bit masks of a packed pixel format."""
    red: int
    green: int
    blue: int
    alpha: int = 0

    @property
    def bit_count(self) -> int:
        """Bits per packed pixel, rounded up to the next byte boundary."""
        total = sum(bit_count_by_mask(m) for m in (self.red, self.green, self.blue, self.alpha))
        return (total + 7) & ~7


# Fixed layouts
MASKS_RGB555 = ChannelMasks(red=0x00007C00, green=0x000003E0, blue=0x0000001F)
MASKS_RGB565 = ChannelMasks(red=0x0000F800, green=0x000007E0, blue=0x0000001F)
MASKS_RGB888 = ChannelMasks(red=0x00FF0000, green=0x0000FF00, blue=0x000000FF)
MASKS_ARGB8888 = ChannelMasks(
    red=0x00FF0000, green=0x0000FF00, blue=0x000000FF, alpha=0xFF000000
)


def bit_count_by_mask(mask: int) -> int:
    """Number of set bits in mask."""
    return bin(mask & 0xFFFFFFFF).count("1")


def bit_position_by_mask(mask: int) -> int:
    """Index of the lowest set bit (0 for an empty mask)."""
    mask &= 0xFFFFFFFF
    if mask == 0:
        return 0
    return bit_count_by_mask((mask & -mask) - 1)


def bit_count_to_mask(bit_count: int) -> int:
    """All-ones mask of the given width."""
    if bit_count >= 32:
        return 0xFFFFFFFF
    return (1 << bit_count) - 1


def component_by_mask(color: ArrayOrInt, mask: int) -> ArrayOrInt:
    """Extract the channel selected by mask, shifted down to bit 0."""
    mask = int(mask)
    return (color & mask) >> bit_position_by_mask(mask)


def convert_channel(value: ArrayOrInt, from_bits: int, to_bits: int) -> ArrayOrInt:
    """
    Rescale a channel value between bit widths.

    Narrowing shifts right. Widening shifts left and, for non-zero values,
    fills the exposed low bits with ones so the maximum of the narrow range
    maps to the maximum of the wide range (5-bit 31 -> 8-bit 255).

    Args:
        value: Channel value(s), int or integer np.ndarray
        from_bits: Current width (0..32)
        to_bits: Target width (0..32)

    Returns:
        Rescaled value(s), same kind as the input
    """
    if to_bits < from_bits:
        return value >> (from_bits - to_bits)

    added = to_bits - from_bits
    widened = value << added
    fill = bit_count_to_mask(added)

    if isinstance(widened, np.ndarray):
        return np.where(widened > 0, widened | fill, widened)
    if widened > 0:
        widened |= fill
    return widened


def unpack_with_masks(words: np.ndarray, masks: ChannelMasks, opaque_without_alpha: bool = True) -> np.ndarray:
    """
    Split packed pixel words into 8-bit RGBA channels.

    Args:
        words: Integer array of packed pixels, any shape
        masks: Channel layout
        opaque_without_alpha: Force alpha to 255 when masks.alpha is empty

    Returns:
        uint8 array of shape words.shape + (4,)
    """
    words = words.astype(np.uint64)
    rgba = np.empty(words.shape + (4,), dtype=np.uint8)

    for channel, mask in enumerate((masks.red, masks.green, masks.blue, masks.alpha)):
        if mask == 0:
            rgba[..., channel] = 255 if (channel == 3 and opaque_without_alpha) else 0
            continue
        bits = bit_count_by_mask(mask)
        component = component_by_mask(words, mask)
        rgba[..., channel] = convert_channel(component, bits, 8).astype(np.uint8)

    return rgba


def pack_with_masks(raster: PixelRaster, masks: ChannelMasks, include_padding: bool = True) -> bytes:
    """
    Pack raster pixels into words laid out by masks.

    Each channel is narrowed from 8 bits to its mask width and shifted to the
    mask position. Rows are emitted in buffer order (bottom row first).

    Args:
        raster: Source raster
        masks: Target channel layout (at most 32 bits per pixel)
        include_padding: Pad every row to a multiple of 4 bytes

    Returns:
        Packed pixel bytes

    Raises:
        BitmapEncodeError: If the mask layout exceeds 32 bits per pixel
    """
    bit_count = masks.bit_count
    if bit_count == 0 or bit_count > 32:
        raise BitmapEncodeError(f"Mask layout needs {bit_count} bits per pixel (1..32 supported)")

    bytes_per_pixel = bit_count // 8
    pixels = raster.pixels.astype(np.uint64)
    words = np.zeros((raster.height, raster.width), dtype=np.uint64)

    for channel, mask in enumerate((masks.red, masks.green, masks.blue, masks.alpha)):
        if mask == 0:
            continue
        bits = bit_count_by_mask(mask)
        narrowed = convert_channel(pixels[..., channel], 8, bits)
        words |= (narrowed << np.uint64(bit_position_by_mask(mask))) & np.uint64(mask)

    # Little-endian byte planes of each word
    planes = [((words >> np.uint64(8 * k)) & np.uint64(0xFF)).astype(np.uint8)
              for k in range(bytes_per_pixel)]
    rows = np.stack(planes, axis=-1).reshape(raster.height, raster.width * bytes_per_pixel)

    if include_padding:
        stride = (raster.width * bytes_per_pixel + 3) & ~3
        padded = np.zeros((raster.height, stride), dtype=np.uint8)
        padded[:, :rows.shape[1]] = rows
        rows = padded

    return rows.tobytes()


def raster_from_masked_buffer(buffer: bytes, width: int, height: int, masks: ChannelMasks) -> PixelRaster:
    """
    Build a raster from an unpadded buffer of packed pixels.

    Bytes per pixel come from the combined mask width rounded up to a byte.
    Pixels are taken in buffer order (row 0 = bottom).

    Raises:
        BitmapDecodeError: If the buffer is too short or the layout is invalid
    """
    combined = masks.red | masks.green | masks.blue | masks.alpha
    bit_count = (bit_count_by_mask(combined) + 7) & ~7
    if bit_count == 0 or bit_count > 32:
        raise BitmapDecodeError(f"Mask layout needs {bit_count} bits per pixel (1..32 supported)")

    bytes_per_pixel = bit_count // 8
    needed = width * height * bytes_per_pixel
    if len(buffer) < needed:
        raise BitmapDecodeError(f"Buffer holds {len(buffer)} bytes, {needed} required")

    raw = np.frombuffer(buffer, dtype=np.uint8, count=needed).reshape(height, width, bytes_per_pixel)
    words = np.zeros((height, width), dtype=np.uint64)
    for k in range(bytes_per_pixel):
        words |= raw[..., k].astype(np.uint64) << np.uint64(8 * k)

    # Missing alpha decodes as 0 here, matching the packed source exactly
    return PixelRaster(width, height, unpack_with_masks(words, masks, opaque_without_alpha=False))
