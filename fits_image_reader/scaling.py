"""Map decoded samples to 8-bit display intensities (zscale and min/max stretch)."""

import logging
from typing import NamedTuple, Optional, Tuple, Union

import numpy as np

from .exceptions import InsufficientDataError
from .formats import (
    BYTE_MAX,
    DEFAULT_CONTRAST,
    EPSILON,
    MAX_SAMPLES,
    MIN_SCALE_DIMENSION,
    SAMPLE_FRACTION,
)
from .models import DisplayGrid, SampleGrid

logger = logging.getLogger(__name__)

RandomSource = Union[None, int, np.random.Generator]


class SampleFit(NamedTuple):
    """Least-squares line through a sorted sample, value = slope * rank + intercept."""

    zmed: float
    midpoint: int
    slope: float
    intercept: float


def sample_size(width: int, height: int) -> int:
    """Number of interior pixels drawn for the fit."""
    return max(1, min(width * height // SAMPLE_FRACTION, MAX_SAMPLES))


def sample_coordinates(width: int, height: int, n: int, rng: RandomSource = None) -> np.ndarray:
    """Draw n (x, y) interior coordinates with replacement; shape (n, 2).

    rng may be a seed, a numpy Generator, or None for system entropy.
    """
    generator = np.random.default_rng(rng)
    xs = generator.integers(1, width - 1, size=n)
    ys = generator.integers(1, height - 1, size=n)
    return np.column_stack((xs, ys))


def fit_sorted_sample(ordered: np.ndarray, contrast: float = DEFAULT_CONTRAST) -> SampleFit:
    """Fit value against rank over a sorted sample; slope is divided by contrast."""
    n = ordered.size
    ranks = np.arange(n, dtype=np.float64)
    sx = 0.5 * n * (n - 1)
    sxx = float(np.sum(ranks * ranks))
    sy = float(np.sum(ordered))
    sxy = float(np.sum(ranks * ordered))
    denominator = n * sxx - sx * sx
    # A single sample has no slope
    slope = 0.0 if denominator == 0 else (n * sxy - sx * sy) / denominator
    intercept = (sy - slope * sx) / n
    midpoint = n // 2
    return SampleFit(
        zmed=float(ordered[midpoint]),
        midpoint=midpoint,
        slope=slope / contrast,
        intercept=intercept,
    )


def render(grid: SampleGrid, z1: float, z2: float) -> DisplayGrid:
    """Scale grid values between z1 and z2 to [0, 255], mirrored on both axes."""
    span = z2 - z1
    byte_scale = BYTE_MAX / span if span >= EPSILON else 0.0
    with np.errstate(invalid="ignore", over="ignore"):
        scaled = (grid.image - z1) * byte_scale
        scaled = np.where(np.isfinite(scaled), scaled, 0.0)
        intensity = np.clip(np.floor(scaled + 0.5), 0, BYTE_MAX).astype(np.uint8)
    # Storage cell (w, h) lands on display pixel (width-1-w, height-1-h)
    pixels = np.ascontiguousarray(intensity[::-1, ::-1])
    return DisplayGrid(pixels=pixels, z1=float(z1), z2=float(z2))


def zscale(
    grid: SampleGrid,
    contrast: float = DEFAULT_CONTRAST,
    rng: RandomSource = None,
    coordinates: Optional[np.ndarray] = None,
) -> Tuple[float, float, DisplayGrid]:
    """Pick display limits from a random interior sub-sample and render the grid.

    Returns (z1, z2, display). Passing the same coordinates (or the same seed)
    twice gives identical results.
    """
    if grid.width < MIN_SCALE_DIMENSION or grid.height < MIN_SCALE_DIMENSION:
        raise InsufficientDataError(
            f"Adaptive scaling needs at least {MIN_SCALE_DIMENSION}x{MIN_SCALE_DIMENSION} "
            f"pixels, got {grid.width}x{grid.height}",
            width=grid.width,
            height=grid.height,
        )
    if contrast <= 0:
        raise ValueError(f"contrast must be positive, got {contrast}")

    if coordinates is None:
        coordinates = sample_coordinates(grid.width, grid.height, sample_size(grid.width, grid.height), rng)
    coordinates = np.asarray(coordinates, dtype=np.intp).reshape(-1, 2)
    xs, ys = coordinates[:, 0], coordinates[:, 1]
    if np.any((xs < 0) | (xs >= grid.width) | (ys < 0) | (ys >= grid.height)):
        raise IndexError("Sample coordinates out of image bounds")

    samples = grid.image[ys, xs]
    ordered = np.sort(samples[np.isfinite(samples)])
    if ordered.size == 0:
        logger.warning("No finite samples drawn; using the full data range")
        z1, z2 = grid.min, grid.max
    else:
        fit = fit_sorted_sample(ordered, contrast)
        z1 = max(grid.min, fit.zmed - fit.midpoint * fit.slope)
        z2 = min(grid.max, fit.zmed + fit.midpoint * fit.slope)
        logger.debug(
            "zscale: %d samples, zmed=%g slope=%g -> z1=%g z2=%g",
            ordered.size, fit.zmed, fit.slope, z1, z2,
        )

    display = render(grid, z1, z2)
    return display.z1, display.z2, display


def linear_stretch(grid: SampleGrid) -> Tuple[float, float, DisplayGrid]:
    """Map [grid.min, grid.max] linearly to [0, 255]."""
    display = render(grid, grid.min, grid.max)
    return display.z1, display.z2, display
