"""Read FITS image files; returns FitsImage with header, decoded samples and display grid."""

import logging
import os
from pathlib import Path
from typing import List, Tuple, Union

from .exceptions import FitsError, InsufficientDataError
from .formats import DEFAULT_CONTRAST, SUPPORTED_EXTENSIONS
from .models import DisplayGrid, FitsImage, Header, SampleGrid
from .parsers import HeaderParser, PixelDecoder, Source, open_source
from .scaling import RandomSource, linear_stretch, zscale

logger = logging.getLogger(__name__)


def _check_exists(source: Source):
    if isinstance(source, (str, os.PathLike)) and not Path(source).exists():
        raise FileNotFoundError(f"File not found: {source}")


def read_header(source: Source) -> Header:
    """Parse only the header of a file, bytes buffer or stream."""
    _check_exists(source)
    return HeaderParser().parse(source)


def rescale(grid: SampleGrid, contrast: float = DEFAULT_CONTRAST,
            rng: RandomSource = None) -> Tuple[float, float, DisplayGrid]:
    """Build a new display grid for an already decoded image.

    Falls back to a min/max stretch when the image is too small to sample.
    """
    try:
        return zscale(grid, contrast=contrast, rng=rng)
    except InsufficientDataError as e:
        logger.warning("%s; using min/max stretch", e)
        return linear_stretch(grid)


def read_fits(source: Source, scale: bool = True, contrast: float = DEFAULT_CONTRAST,
              rng: RandomSource = None) -> FitsImage:
    """Read header and samples; with scale=True also compute the display grid."""
    _check_exists(source)
    is_path = isinstance(source, (str, os.PathLike))
    file_name = os.path.basename(os.fspath(source)) if is_path else ""

    # One open handle serves both stages
    with open_source(source) as stream:
        name = os.fspath(source) if is_path else getattr(stream, "name", None)
        header = HeaderParser().parse_stream(stream, name)
        grid = PixelDecoder().decode_stream(stream, header, name)

    display = None
    if scale:
        _, _, display = rescale(grid, contrast=contrast, rng=rng)
    return FitsImage(header=header, grid=grid, display=display, file_name=file_name)


class FitsReader:
    """Read FITS image files with a fixed display contrast."""

    def __init__(self, contrast: float = DEFAULT_CONTRAST, rng: RandomSource = None):
        self.contrast = contrast
        self.rng = rng

    def _check_extension(self, file_path: Path):
        if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported file format: {file_path.suffix}. "
                f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
            )

    def read_file(self, file_path: Union[str, Path], scale: bool = True) -> FitsImage:
        """Read a .fits/.fit/.fts file."""
        file_path = Path(file_path)
        self._check_extension(file_path)
        return read_fits(file_path, scale=scale, contrast=self.contrast, rng=self.rng)

    def read_header(self, file_path: Union[str, Path]) -> Header:
        file_path = Path(file_path)
        self._check_extension(file_path)
        return read_header(file_path)

    def get_supported_formats(self) -> List[str]:
        return list(SUPPORTED_EXTENSIONS)

    def validate_file(self, file_path: Union[str, Path]) -> bool:
        """Return True if the file decodes without error."""
        try:
            self.read_file(file_path, scale=False)
            return True
        except (FitsError, OSError, ValueError):
            return False
