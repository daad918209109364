"""
Exceptions raised while reading and scaling FITS images.

I/O failures are not wrapped: the OSError raised by the file system reaches
the caller unchanged.
"""

from typing import Optional


class FitsError(Exception):
    """Base exception for all FITS reading errors."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path

    def __str__(self) -> str:
        if self.file_path:
            return f"{self.message} ({self.file_path})"
        return self.message


class MalformedHeaderError(FitsError):
    """Raised when the header has no END card or a broken card layout."""
    pass


class TruncatedDataError(FitsError):
    """Raised when the payload is shorter than the header geometry requires."""

    def __init__(self, message: str, expected: int = 0, available: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.available = available


class UnsupportedFormatError(FitsError, ValueError):
    """Raised when BITPIX is not one of the supported sample formats."""

    def __init__(self, message: str, bitpix: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.bitpix = bitpix


class InsufficientDataError(FitsError):
    """Raised when an image is too small for adaptive sampling."""

    def __init__(self, message: str, width: int = 0, height: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.width = width
        self.height = height
