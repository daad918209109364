"""
Format constants and sample-format registry for FITS primary images.

The header is a sequence of 80-character card images grouped in 2880-byte
blocks; the data payload starts on the first block boundary after the END
card and stores samples big-endian, row-major.

To support another sample format: add one entry to SAMPLE_FORMATS. The
decoder and the list of supported codes are derived from the dict.
"""
from enum import Enum
from typing import Dict, Optional

import numpy as np

# -----------------------------------------------------------------------------
# Header layout
# -----------------------------------------------------------------------------
LINE_WIDTH = 80
LINES_PER_BLOCK = 36
BLOCK_SIZE = LINE_WIDTH * LINES_PER_BLOCK  # 2880
MAX_HEADER_BLOCKS = 20
HEADER_ENCODING = "ascii"

KEY_VALUE_SEPARATOR = "="
COMMENT_SEPARATOR = "/"
LINE_SEPARATOR = "\n"

# -----------------------------------------------------------------------------
# Recognized keywords
# -----------------------------------------------------------------------------
END_KEYWORD = "END"
KEY_SIMPLE = "SIMPLE"
KEY_BITPIX = "BITPIX"
KEY_NAXIS = "NAXIS"
KEY_NAXIS1 = "NAXIS1"
KEY_NAXIS2 = "NAXIS2"
KEY_BZERO = "BZERO"
KEY_BSCALE = "BSCALE"

INTEGER_KEYWORDS = (KEY_BITPIX, KEY_NAXIS, KEY_NAXIS1, KEY_NAXIS2)
FLOAT_KEYWORDS = (KEY_BZERO, KEY_BSCALE)

# -----------------------------------------------------------------------------
# Display scaling defaults
# -----------------------------------------------------------------------------
DEFAULT_CONTRAST = 0.25
MAX_SAMPLES = 10000
SAMPLE_FRACTION = 10  # one sample per this many pixels
MIN_SCALE_DIMENSION = 3
EPSILON = np.finfo(np.float32).tiny
BYTE_MAX = 255

SUPPORTED_EXTENSIONS = (".fits", ".fit", ".fts")


class SampleFormat(Enum):
    """Pixel sample formats keyed by their BITPIX code."""

    UINT8 = 8
    INT16 = 16
    INT32 = 32
    INT64 = 64
    FLOAT32 = -32
    FLOAT64 = -64

    @property
    def bitpix(self) -> int:
        return self.value

    @property
    def byte_width(self) -> int:
        return abs(self.value) // 8

    @property
    def dtype(self) -> np.dtype:
        return SAMPLE_FORMATS[self]


# Big-endian numpy dtype per format (FITS fixes the byte order).
SAMPLE_FORMATS: Dict[SampleFormat, np.dtype] = {
    SampleFormat.UINT8: np.dtype(">u1"),
    SampleFormat.INT16: np.dtype(">i2"),
    SampleFormat.INT32: np.dtype(">i4"),
    SampleFormat.INT64: np.dtype(">i8"),
    SampleFormat.FLOAT32: np.dtype(">f4"),
    SampleFormat.FLOAT64: np.dtype(">f8"),
}


def get_sample_format(bitpix: int) -> Optional[SampleFormat]:
    """Return the SampleFormat for a BITPIX code, or None if unrecognized."""
    try:
        return SampleFormat(bitpix)
    except ValueError:
        return None


def list_supported_bitpix() -> list:
    """BITPIX codes the decoder understands."""
    return [fmt.bitpix for fmt in SAMPLE_FORMATS]


def align_to_block(offset: int) -> int:
    """Round a byte offset up to the next multiple of BLOCK_SIZE."""
    if offset % BLOCK_SIZE == 0:
        return offset
    return (offset // BLOCK_SIZE + 1) * BLOCK_SIZE
