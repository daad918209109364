#!/usr/bin/env python3
"""
Example script for fits_image_reader

This script reads a FITS image, prints its header summary and statistics,
and shows the zscale display image next to a plain min/max stretch.

Usage:
    python example.py path/to/image.fits
"""

import sys

import matplotlib.pyplot as plt

from fits_image_reader import linear_stretch, read_fits


def main():
    """Basic example showing FITS reading and display scaling."""
    if len(sys.argv) < 2:
        print(__doc__)
        return 1

    fits_file = sys.argv[1]
    image = read_fits(fits_file, rng=0)
    header, grid = image.header, image.grid

    print(f"File: {image.file_name}")
    print(f"Size: {header.width} x {header.height}, BITPIX {header.bitpix}")
    print(f"Min/Max: {grid.min:.2f} / {grid.max:.2f}")
    print(f"Mean/Stddev: {grid.mean:.2f} / {grid.stddev:.2f}")
    print(f"zscale limits: {image.display.z1:.2f} .. {image.display.z2:.2f}")

    _, _, plain = linear_stretch(grid)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 5))
    ax1.imshow(image.display.pixels, cmap="gray", vmin=0, vmax=255)
    ax1.set_title("zscale")
    ax2.imshow(plain.pixels, cmap="gray", vmin=0, vmax=255)
    ax2.set_title("min/max")
    for ax in (ax1, ax2):
        ax.axis("off")
    plt.tight_layout()
    plt.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
