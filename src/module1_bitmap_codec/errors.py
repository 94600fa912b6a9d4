# file: src/module1_bitmap_codec/errors.py

"""
Bitmap codec exception hierarchy.

All exceptions inherit from BitmapError for unified handling.
"""


class BitmapError(Exception):
    """Base exception for all bitmap codec errors."""
    pass


class BitmapDecodeError(BitmapError):
    """Raised when a byte stream cannot be decoded into a raster."""
    pass


class UnsupportedBitmapError(BitmapDecodeError):
    """Raised for a valid header describing a depth/compression pair we do not decode."""

    def __init__(self, message: str, bit_count: int = None, compression: int = None):
        super().__init__(message)
        self.bit_count = bit_count
        self.compression = compression


class BitmapEncodeError(BitmapError):
    """Raised when a raster cannot be encoded at the requested bit depth."""
    pass


class RasterError(BitmapError):
    """Raised when a pixel buffer does not match its declared dimensions."""
    pass
