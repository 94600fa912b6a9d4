"""
Custom exceptions for Module 2: Image Operations.
"""


class ImageOpsError(Exception):
    """
    Exception raised for errors in raster image operations.

    This includes:
    - Scale factors outside (0, 1]
    - Resampling that would produce an empty raster
    - Grayscale buffers that do not match their raster
    - Negative repetition counts
    """
    pass
