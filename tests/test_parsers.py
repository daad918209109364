"""
Tests for the FITS header parser.
"""
import builtins
import io
import math

import pytest

from fits_image_reader import parsers
from fits_image_reader.exceptions import MalformedHeaderError, TruncatedDataError
from fits_image_reader.formats import BLOCK_SIZE, LINE_WIDTH, SampleFormat
from fits_image_reader.parsers import HeaderParser, PixelDecoder, split_card
from fits_image_reader.reader import read_fits


def test_parse_minimal_header(build_fits):
    """Required keywords are extracted and data starts at the first block."""
    header = HeaderParser().parse(build_fits([[1, 2, 3], [4, 5, 6]], bitpix=16))
    assert header.conforms_to_standard is True
    assert header.bitpix == 16
    assert header.sample_format is SampleFormat.INT16
    assert header.axis_count == 2
    assert header.width == 3
    assert header.height == 2
    assert header.zero_offset is None
    assert header.scale_factor is None
    assert header.data_offset == BLOCK_SIZE


@pytest.mark.parametrize("n_cards", [0, 1, 34, 35, 36, 71, 72])
def test_data_offset_is_block_aligned(build_header, make_card, n_cards):
    """Offset is a multiple of 2880 at or after the END card."""
    cards = [make_card("COMMENT", None) for _ in range(n_cards)]
    header = HeaderParser().parse(build_header(cards))
    assert header.data_offset % BLOCK_SIZE == 0
    assert header.data_offset >= (n_cards + 1) * LINE_WIDTH
    assert header.data_offset - (n_cards + 1) * LINE_WIDTH < BLOCK_SIZE


def test_end_on_last_line_of_block(build_header, make_card):
    """END as the 36th card keeps the payload at 2880."""
    cards = [make_card("COMMENT") for _ in range(35)]
    assert HeaderParser().parse(build_header(cards)).data_offset == BLOCK_SIZE


def test_records_in_file_order(build_fits, make_card):
    """Every card, END included, becomes one record."""
    extra = [make_card("OBJECT", "'M31'", "target name"), make_card("HISTORY")]
    header = HeaderParser().parse(build_fits([[0]], extra_cards=extra))
    assert header.keys() == ["SIMPLE", "BITPIX", "NAXIS", "NAXIS1", "NAXIS2", "OBJECT", "HISTORY", "END"]
    obj = header.records[5]
    assert obj.value == "'M31'"
    assert obj.comment == "target name"
    assert header.records[6].value == ""
    assert header.records[6].comment == ""
    assert header.records[-1].key == "END"
    assert header.get("object") == "'M31'"
    assert "naxis1" in header


def test_raw_text_is_verbatim(build_fits):
    header = HeaderParser().parse(build_fits([[0]]))
    lines = header.raw_text.split("\n")
    assert len(lines) == 7  # six cards plus trailing empty string
    assert all(len(line) == LINE_WIDTH for line in lines[:-1])
    assert lines[5].strip() == "END"


def test_split_card():
    record = split_card("EXPTIME =                 30.0 / exposure time / seconds".ljust(80))
    assert record.key == "EXPTIME"
    assert record.value == "30.0"
    assert record.comment == "exposure time / seconds"

    record = split_card("COMMENT no separator here".ljust(80))
    assert record.key == "COMMENT no separator here"
    assert record.value == ""

    record = split_card("DATE    = '2024-01-01'".ljust(80))
    assert record.value == "'2024-01-01'"
    assert record.comment == ""


def test_malformed_numbers_are_tolerated(build_header, make_card):
    """Bad integer values become 0 and bad floats become NaN."""
    cards = [
        make_card("SIMPLE", "F"),
        make_card("BITPIX", "sixteen"),
        make_card("NAXIS", "2"),
        make_card("NAXIS1", "10.5"),
        make_card("NAXIS2", "4"),
        make_card("BZERO", "abc"),
    ]
    header = HeaderParser().parse(build_header(cards))
    assert header.conforms_to_standard is False
    assert header.bitpix == 0
    assert header.sample_format is None
    assert header.width == 0
    assert header.height == 4
    assert math.isnan(header.zero_offset)
    assert header.effective_zero_offset == 0.0
    assert header.scale_factor is None


def test_optional_float_keywords(build_header, make_card):
    cards = [
        make_card("BITPIX", -32),
        make_card("BZERO", "1.5D2"),
        make_card("BSCALE", "2.0E0"),
    ]
    header = HeaderParser().parse(build_header(cards))
    assert header.zero_offset == 150.0
    assert header.scale_factor == 2.0
    assert header.sample_format is SampleFormat.FLOAT32


def test_repeated_keyword_last_value_wins(build_header, make_card):
    cards = [make_card("NAXIS1", 10), make_card("NAXIS1", 20)]
    header = HeaderParser().parse(build_header(cards))
    assert header.width == 20
    assert [r.value for r in header.records if r.key == "NAXIS1"] == ["10", "20"]
    assert header.get("NAXIS1") == "20"


def test_keywords_are_case_insensitive(build_header):
    cards = ["naxis1  =                   7".ljust(80), "  end".ljust(80)]
    header = HeaderParser().parse(build_header(cards, end=False))
    assert header.width == 7
    assert header.records[-1].key == "END"
    assert header.data_offset == BLOCK_SIZE


def test_missing_end_raises(build_header, make_card):
    """No END card within the block limit is fatal."""
    cards = [make_card("COMMENT") for _ in range(2 * 36)]
    data = build_header(cards, end=False) + build_header([], end=True)
    with pytest.raises(MalformedHeaderError, match="No END card"):
        HeaderParser(max_blocks=2).parse(data)
    # The same bytes parse with a larger limit
    assert HeaderParser(max_blocks=3).parse(data).data_offset == 3 * BLOCK_SIZE


def test_missing_end_default_limit(build_header, make_card):
    cards = [make_card("COMMENT") for _ in range(20 * 36)]
    with pytest.raises(MalformedHeaderError):
        HeaderParser().parse(build_header(cards, end=False))


def test_short_header_raises(make_card):
    """Stream ending before END is malformed."""
    data = (make_card("SIMPLE", "T") + "BITPIX  =").encode("ascii")
    with pytest.raises(MalformedHeaderError, match="without an END card"):
        HeaderParser().parse(data)
    with pytest.raises(MalformedHeaderError):
        HeaderParser().parse(b"")


def test_parse_stream_leaves_stream_open(build_fits):
    stream = io.BytesIO(build_fits([[1, 2]]))
    HeaderParser().parse(stream)
    assert not stream.closed
    assert stream.tell() == 6 * LINE_WIDTH


def test_missing_file_raises_oserror(tmp_path):
    with pytest.raises(FileNotFoundError):
        HeaderParser().parse(tmp_path / "missing.fits")


def test_header_is_immutable(build_fits):
    header = HeaderParser().parse(build_fits([[0]]))
    with pytest.raises(AttributeError):
        header.width = 5


@pytest.mark.parametrize("text,expected", [("16", 16), ("+16", 16), ("-32", -32), ("1_6", 0), ("16.0", 0), (" ", 0)])
def test_integer_values_are_strict(build_header, make_card, text, expected):
    """Only plain decimal integers are accepted."""
    header = HeaderParser().parse(build_header([make_card("NAXIS1", text)]))
    assert header.width == expected


@pytest.mark.parametrize("text,expected", [
    ("32768", 32768.0), ("-1.5E+3", -1500.0), ("2.5d1", 25.0), (".5", 0.5), ("3.", 3.0),
    ("inf", math.nan), ("nan", math.nan), ("1_000.0", math.nan), ("0x10", math.nan),
])
def test_float_values_are_strict(build_header, make_card, text, expected):
    header = HeaderParser().parse(build_header([make_card("BZERO", text)]))
    if math.isnan(expected):
        assert math.isnan(header.zero_offset)
    else:
        assert header.zero_offset == expected


@pytest.fixture
def opened_files(monkeypatch):
    """Record every file handle opened by the parsers module."""
    handles = []

    def recording_open(*args, **kwargs):
        handle = builtins.open(*args, **kwargs)
        handles.append(handle)
        return handle

    monkeypatch.setattr(parsers, "open", recording_open, raising=False)
    return handles


def test_file_closed_after_parse(tmp_path, build_fits, opened_files):
    path = tmp_path / "ok.fits"
    path.write_bytes(build_fits([[1, 2]]))
    HeaderParser().parse(path)
    assert len(opened_files) == 1
    assert opened_files[0].closed


def test_file_closed_after_header_error(tmp_path, make_card, opened_files):
    path = tmp_path / "no_end.fits"
    path.write_bytes(make_card("SIMPLE", "T").encode("ascii"))
    with pytest.raises(MalformedHeaderError):
        HeaderParser().parse(path)
    assert len(opened_files) == 1
    assert opened_files[0].closed


def test_file_closed_after_truncated_read(tmp_path, build_fits, opened_files):
    path = tmp_path / "short.fits"
    path.write_bytes(build_fits([[1, 2], [3, 4]], height=5))
    with pytest.raises(TruncatedDataError):
        read_fits(path)
    assert len(opened_files) == 1
    assert opened_files[0].closed


def test_file_closed_after_decode_error(tmp_path, build_fits, opened_files):
    path = tmp_path / "bad.fits"
    path.write_bytes(build_fits([[1, 2]], bitpix=3))
    header = HeaderParser().parse(path)
    with pytest.raises(ValueError):
        PixelDecoder().decode(path, header)
    assert len(opened_files) == 2
    assert all(handle.closed for handle in opened_files)
