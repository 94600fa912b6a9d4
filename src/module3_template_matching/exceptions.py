"""
Module 3 Exceptions

Custom exceptions for template matching.
"""


class MatchingError(Exception):
    """
    Exception raised when a template search cannot run.

    This can occur due to:
    - Template larger than the scene
    - Empty scale schedule
    - Template/window arrays of mismatched shape
    """
    pass


class MatchingConfigError(MatchingError):
    """Raised when the matcher configuration is missing or invalid."""
    pass
