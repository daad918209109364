"""
fits-image-reader - Python library for reading FITS images and scaling them for display

This library reads the primary image of a FITS file, decodes its samples
and derives an 8-bit display image with a zscale-style contrast stretch.

Main usage:
    import fits_image_reader

    # Load an image
    image = fits_image_reader.read_fits("m31.fits", rng=42)

    # Access the data
    print(f"Mean value: {image.grid.mean:.2f}")
    pixels = image.display.pixels
"""

__version__ = "0.1.0"

from .exceptions import (
    FitsError,
    InsufficientDataError,
    MalformedHeaderError,
    TruncatedDataError,
    UnsupportedFormatError,
)
from .formats import SampleFormat
from .models import DisplayGrid, FitsImage, Header, HeaderRecord, SampleGrid
from .parsers import HeaderParser, PixelDecoder
from .reader import FitsReader, read_fits, read_header, rescale
from .scaling import linear_stretch, zscale

__all__ = [
    "read_fits",  # main entry point
    "read_header",
    "rescale",
    "FitsReader",
    "HeaderParser",
    "PixelDecoder",
    "zscale",
    "linear_stretch",
    "Header",
    "HeaderRecord",
    "SampleGrid",
    "DisplayGrid",
    "FitsImage",
    "SampleFormat",
    "FitsError",
    "MalformedHeaderError",
    "TruncatedDataError",
    "UnsupportedFormatError",
    "InsufficientDataError",
]
