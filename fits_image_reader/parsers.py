"""Parse FITS primary headers and decode the pixel payload that follows them."""

import io
import logging
import math
import os
import re
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

import numpy as np

from .exceptions import MalformedHeaderError, TruncatedDataError, UnsupportedFormatError
from .formats import (
    COMMENT_SEPARATOR,
    END_KEYWORD,
    FLOAT_KEYWORDS,
    HEADER_ENCODING,
    INTEGER_KEYWORDS,
    KEY_BITPIX,
    KEY_BSCALE,
    KEY_BZERO,
    KEY_NAXIS,
    KEY_NAXIS1,
    KEY_NAXIS2,
    KEY_SIMPLE,
    KEY_VALUE_SEPARATOR,
    LINE_SEPARATOR,
    LINE_WIDTH,
    LINES_PER_BLOCK,
    MAX_HEADER_BLOCKS,
    align_to_block,
    get_sample_format,
    list_supported_bitpix,
)
from .models import Header, HeaderRecord, SampleGrid

logger = logging.getLogger(__name__)

Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]


@contextmanager
def open_source(source: Source) -> Iterator[BinaryIO]:
    """Yield a binary stream for a path, a bytes buffer or an open stream.

    Paths are opened here and closed on every exit path; streams passed in by
    the caller are left open.
    """
    if isinstance(source, (bytes, bytearray)):
        yield io.BytesIO(source)
    elif isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            yield f
    else:
        yield source


def _source_name(source: Source) -> Optional[str]:
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    return getattr(source, "name", None)


INT_PATTERN = re.compile(r"[+-]?[0-9]+")
# FITS allows Fortran-style exponents (1.0D+03)
FLOAT_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([EeDd][+-]?[0-9]+)?")


def _parse_int(value: str) -> int:
    if not INT_PATTERN.fullmatch(value):
        return 0
    return int(value)


def _parse_float(value: str) -> float:
    if not FLOAT_PATTERN.fullmatch(value):
        return math.nan
    return float(value.upper().replace("D", "E"))


def _bytes_after(stream: BinaryIO, offset: int) -> int:
    """Bytes available from offset to the end of a seekable stream."""
    end = stream.seek(0, io.SEEK_END)
    return max(0, end - offset)


def split_card(line: str) -> HeaderRecord:
    """Split one card into keyword, value and comment."""
    key, sep, rest = line.partition(KEY_VALUE_SEPARATOR)
    if not sep:
        return HeaderRecord(key.strip(), "", "")
    value, _, comment = rest.partition(COMMENT_SEPARATOR)
    return HeaderRecord(key.strip(), value.strip(), comment.strip())


class HeaderParser:
    """Scan 80-character cards up to END and build an immutable Header."""

    def __init__(self, max_blocks: int = MAX_HEADER_BLOCKS):
        self.max_blocks = max_blocks

    @property
    def max_lines(self) -> int:
        return self.max_blocks * LINES_PER_BLOCK

    def parse(self, source: Source) -> Header:
        """Read the header from a path, bytes or binary stream."""
        name = _source_name(source)
        with open_source(source) as stream:
            return self.parse_stream(stream, name)

    def parse_stream(self, stream: BinaryIO, name: Optional[str] = None) -> Header:
        lines: List[str] = []
        records: List[HeaderRecord] = []
        fields = {
            KEY_SIMPLE: False,
            KEY_BITPIX: 0,
            KEY_NAXIS: 0,
            KEY_NAXIS1: 0,
            KEY_NAXIS2: 0,
            KEY_BZERO: None,
            KEY_BSCALE: None,
        }

        for line_index in range(self.max_lines):
            chunk = stream.read(LINE_WIDTH)
            if len(chunk) < LINE_WIDTH:
                raise MalformedHeaderError(
                    f"Header ended after {line_index} cards without an {END_KEYWORD} card",
                    file_path=name,
                )
            line = chunk.decode(HEADER_ENCODING, errors="replace")
            lines.append(line)

            if line.strip().upper() == END_KEYWORD:
                records.append(HeaderRecord(END_KEYWORD, "", ""))
                data_offset = align_to_block(LINE_WIDTH * (line_index + 1))
                logger.debug(
                    "END card at line %d, %d records, data offset %d",
                    line_index, len(records), data_offset,
                )
                return self._build_header(lines, records, fields, data_offset)

            record = split_card(line)
            records.append(record)
            self._apply_keyword(fields, record)

        raise MalformedHeaderError(
            f"No {END_KEYWORD} card within {self.max_blocks} header blocks",
            file_path=name,
        )

    def _apply_keyword(self, fields: dict, record: HeaderRecord):
        """Update derived header fields from a recognized keyword; last one wins."""
        key = record.key.upper()
        if key == KEY_SIMPLE:
            fields[key] = record.value.upper() == "T"
        elif key in INTEGER_KEYWORDS:
            fields[key] = _parse_int(record.value)
        elif key in FLOAT_KEYWORDS:
            fields[key] = _parse_float(record.value)

    def _build_header(self, lines: List[str], records: List[HeaderRecord], fields: dict,
                      data_offset: int) -> Header:
        raw_text = "".join(line + LINE_SEPARATOR for line in lines)
        return Header(
            raw_text=raw_text,
            data_offset=data_offset,
            conforms_to_standard=fields[KEY_SIMPLE],
            bitpix=fields[KEY_BITPIX],
            sample_format=get_sample_format(fields[KEY_BITPIX]),
            axis_count=fields[KEY_NAXIS],
            width=fields[KEY_NAXIS1],
            height=fields[KEY_NAXIS2],
            zero_offset=fields[KEY_BZERO],
            scale_factor=fields[KEY_BSCALE],
            records=tuple(records),
        )


def compute_statistics(values: np.ndarray) -> Tuple[float, float, float, float]:
    """Return (min, max, mean, stddev); NaN for an empty array.

    min/max skip NaN samples; mean and stddev propagate them.
    """
    n = values.size
    if n == 0:
        return math.nan, math.nan, math.nan, math.nan
    finite = values[~np.isnan(values)]
    if finite.size:
        v_min, v_max = float(finite.min()), float(finite.max())
    else:
        v_min = v_max = math.nan
    with np.errstate(over="ignore", invalid="ignore"):
        mean = float(values.sum()) / n
        # Second pass over the values using the known mean
        stddev = math.sqrt(float(np.sum((values - mean) ** 2)) / n)
    return v_min, v_max, mean, stddev


class PixelDecoder:
    """Decode the big-endian sample payload described by a Header."""

    def decode(self, source: Source, header: Header) -> SampleGrid:
        """Read samples from a path, bytes or binary stream."""
        name = _source_name(source)
        with open_source(source) as stream:
            return self.decode_stream(stream, header, name)

    def decode_stream(self, stream: BinaryIO, header: Header, name: Optional[str] = None) -> SampleGrid:
        fmt = header.sample_format
        if fmt is None:
            raise UnsupportedFormatError(
                f"Unsupported BITPIX {header.bitpix}; supported: {list_supported_bitpix()}",
                bitpix=header.bitpix,
                file_path=name,
            )
        if header.width < 0 or header.height < 0:
            raise MalformedHeaderError(
                f"Invalid image geometry {header.width}x{header.height}", file_path=name
            )
        if header.axis_count > 2:
            logger.warning(
                "NAXIS=%d: only the first %dx%d plane is decoded",
                header.axis_count, header.width, header.height,
            )
        if header.scale_factor is not None and header.scale_factor != 1.0:
            logger.warning("BSCALE=%s is not applied to decoded samples", header.scale_factor)

        expected = header.payload_size
        # Checked before reading so a corrupt geometry never allocates the buffer
        available = _bytes_after(stream, header.data_offset)
        if available < expected:
            raise TruncatedDataError(
                f"Payload has {available} bytes, geometry requires {expected}",
                expected=expected,
                available=available,
                file_path=name,
            )
        stream.seek(header.data_offset)
        payload = stream.read(expected)

        if header.pixel_count == 0:
            raw = np.empty(0, dtype=fmt.dtype)
        else:
            raw = np.frombuffer(payload, dtype=fmt.dtype, count=header.pixel_count)
        values = raw.astype(np.float64) + header.effective_zero_offset
        v_min, v_max, mean, stddev = compute_statistics(values)
        logger.debug(
            "Decoded %dx%d BITPIX=%d: min=%g max=%g mean=%g stddev=%g",
            header.width, header.height, header.bitpix, v_min, v_max, mean, stddev,
        )
        return SampleGrid(
            values=values,
            width=header.width,
            height=header.height,
            min=v_min,
            max=v_max,
            mean=mean,
            stddev=stddev,
        )
