"""
Data models for FITS images: header, decoded samples and display bitmap.
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np

from .formats import BLOCK_SIZE, SampleFormat


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class HeaderRecord:
    """One header card: keyword, raw value text and comment."""

    key: str
    value: str = ""
    comment: str = ""

    def matches(self, key: str) -> bool:
        return self.key.strip().upper() == key.strip().upper()

    def __str__(self) -> str:
        return f"{self.key}, {self.value}, {self.comment}"


@dataclass(frozen=True)
class Header:
    """Parsed primary header; built once by HeaderParser.parse."""

    raw_text: str
    data_offset: int
    conforms_to_standard: bool
    bitpix: int
    sample_format: Optional[SampleFormat]
    axis_count: int
    width: int
    height: int
    # None when the keyword is absent, NaN when present but unparsable
    zero_offset: Optional[float] = None
    scale_factor: Optional[float] = None
    records: Tuple[HeaderRecord, ...] = ()

    def __post_init__(self):
        if self.data_offset < 0 or self.data_offset % BLOCK_SIZE != 0:
            raise ValueError(f"data_offset must be a non-negative multiple of {BLOCK_SIZE}")

    @property
    def sample_byte_width(self) -> int:
        return abs(self.bitpix) // 8

    @property
    def pixel_count(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

    @property
    def payload_size(self) -> int:
        """Bytes of pixel data the geometry requires."""
        return self.pixel_count * self.sample_byte_width

    @property
    def effective_zero_offset(self) -> float:
        """BZERO with unset/unparsable values treated as 0."""
        if self.zero_offset is None or math.isnan(self.zero_offset):
            return 0.0
        return self.zero_offset

    def keys(self) -> List[str]:
        return [record.key for record in self.records]

    def get(self, key: str, default: Any = None) -> Any:
        """Value of the last record with this keyword (case-insensitive)."""
        for record in reversed(self.records):
            if record.matches(key):
                return record.value
        return default

    def __contains__(self, key: str) -> bool:
        return any(record.matches(key) for record in self.records)


@dataclass(frozen=True)
class SampleGrid:
    """Decoded sample values (row-major, float64) and their statistics."""

    values: np.ndarray
    width: int
    height: int
    min: float
    max: float
    mean: float
    stddev: float

    def __post_init__(self):
        if self.values.size != self.width * self.height:
            raise ValueError(
                f"values has {self.values.size} elements, expected {self.width * self.height}"
            )
        _read_only(self.values)

    @property
    def image(self) -> np.ndarray:
        """2-D (height, width) view of the values."""
        return self.values.reshape(self.height, self.width)

    @property
    def is_empty(self) -> bool:
        return self.values.size == 0

    def get_image_shape(self) -> tuple:
        """Return the image dimensions."""
        return (self.height, self.width)

    def get_value_range(self) -> tuple:
        """Return the value range (min, max)."""
        return self.min, self.max

    def get_value_at_pixel(self, x: int, y: int) -> float:
        """Return the sample value at the given pixel."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return float(self.values[y * self.width + x])
        raise IndexError(f"Pixel coordinates ({x}, {y}) out of image bounds")


@dataclass(frozen=True)
class DisplayGrid:
    """8-bit display image derived from a SampleGrid and black/white points."""

    pixels: np.ndarray
    z1: float
    z2: float

    def __post_init__(self):
        if self.pixels.ndim != 2 or self.pixels.dtype != np.uint8:
            raise ValueError("pixels must be a 2-D uint8 array")
        _read_only(self.pixels)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def pixel(self, x: int, y: int) -> int:
        if 0 <= x < self.width and 0 <= y < self.height:
            return int(self.pixels[y, x])
        raise IndexError(f"Pixel coordinates ({x}, {y}) out of image bounds")


@dataclass(frozen=True)
class FitsImage:
    """Result of reading one file."""

    header: Header
    grid: SampleGrid
    display: Optional[DisplayGrid] = None
    file_name: str = field(default="")

    def get_image_shape(self) -> tuple:
        return self.grid.get_image_shape()
