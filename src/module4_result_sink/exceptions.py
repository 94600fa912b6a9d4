"""
Module 4 Exceptions

Custom exceptions for report writing and scene annotation.
"""


class ResultSinkError(Exception):
    """
    Exception raised when match results cannot be written out.

    This can occur due to:
    - Unwritable report path
    - Malformed reference point fixture
    - Rectangle with non-positive extent
    """
    pass
