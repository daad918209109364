"""
Shared helpers: build synthetic FITS files and sample grids in memory.
"""
import numpy as np
import pytest

from fits_image_reader.formats import BLOCK_SIZE, LINE_WIDTH
from fits_image_reader.models import SampleGrid
from fits_image_reader.parsers import compute_statistics

DTYPES = {8: ">u1", 16: ">i2", 32: ">i4", 64: ">i8", -32: ">f4", -64: ">f8"}


def card(key, value=None, comment=None):
    """One 80-character header card."""
    text = f"{key:<8}"
    if value is not None:
        text += f"= {value:>20}"
        if comment is not None:
            text += f" / {comment}"
    return text.ljust(LINE_WIDTH)[:LINE_WIDTH]


def header_bytes(cards, end=True, pad=True):
    text = "".join(cards)
    if end:
        text += "END".ljust(LINE_WIDTH)
    raw = text.encode("ascii")
    if pad and len(raw) % BLOCK_SIZE:
        raw += b" " * (BLOCK_SIZE - len(raw) % BLOCK_SIZE)
    return raw


def fits_bytes(data, bitpix=16, extra_cards=(), width=None, height=None):
    """Header plus big-endian payload for a 2-D array (height, width)."""
    data = np.asarray(data)
    if data.ndim == 1:
        data = data.reshape(1, -1)
    h, w = data.shape
    cards = [
        card("SIMPLE", "T", "conforms to FITS standard"),
        card("BITPIX", bitpix, "bits per data value"),
        card("NAXIS", 2, "number of axes"),
        card("NAXIS1", w if width is None else width),
        card("NAXIS2", h if height is None else height),
    ]
    cards.extend(extra_cards)
    dtype = DTYPES.get(bitpix, ">i2")
    return header_bytes(cards) + data.astype(dtype).tobytes()


@pytest.fixture
def build_fits():
    return fits_bytes


@pytest.fixture
def build_header():
    return header_bytes


@pytest.fixture
def make_card():
    return card


@pytest.fixture
def write_fits(tmp_path):
    """Write a synthetic FITS file and return its path."""
    def write(data, name="image.fits", **kwargs):
        path = tmp_path / name
        path.write_bytes(fits_bytes(data, **kwargs))
        return path
    return write


@pytest.fixture
def make_grid():
    """SampleGrid from a 2-D array (height, width)."""
    def make(data):
        data = np.asarray(data, dtype=np.float64)
        h, w = data.shape
        values = data.ravel().copy()
        v_min, v_max, mean, stddev = compute_statistics(values)
        return SampleGrid(values=values, width=w, height=h,
                          min=v_min, max=v_max, mean=mean, stddev=stddev)
    return make
