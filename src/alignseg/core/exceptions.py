"""
Exception types raised by the aligner and the segmenter.

Both engines are leaf computations: errors are raised synchronously to the
caller and never retried.
"""


class AlignSegError(Exception):
    """Base exception for alignseg errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class InvalidInputError(AlignSegError, ValueError):
    """Raised when a sequence passed to the aligner is missing or empty."""
    pass


class InvalidParameterError(AlignSegError, ValueError):
    """Raised when a configuration value is out of range or inconsistent."""
    pass


class ConfigurationError(AlignSegError):
    """Raised when a configuration file has an invalid structure."""
    pass
