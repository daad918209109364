"""
Command-line interface for fits-image-reader.
"""

import argparse
import logging
import math
import sys

from .exceptions import FitsError
from .formats import DEFAULT_CONTRAST
from .reader import read_fits


def build_parser():
    parser = argparse.ArgumentParser(
        description="FITS image reader with zscale display scaling"
    )

    parser.add_argument(
        "file_path",
        help="Path to the FITS file to read"
    )

    parser.add_argument(
        "--header",
        action="store_true",
        help="Print the raw header cards"
    )

    parser.add_argument(
        "--info",
        action="store_true",
        help="Show image geometry and sample format"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show sample statistics and display limits"
    )

    parser.add_argument(
        "--export-csv",
        type=str,
        help="Export sample values to CSV file"
    )

    parser.add_argument(
        "--save-image",
        type=str,
        help="Save the scaled display image (PNG, JPG, ...)"
    )

    parser.add_argument(
        "--contrast",
        type=float,
        default=DEFAULT_CONTRAST,
        help=f"zscale contrast (default: {DEFAULT_CONTRAST})"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random sub-sample"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        image = read_fits(args.file_path, contrast=args.contrast, rng=args.seed)

        if args.header:
            print(image.header.raw_text, end="")

        if args.info:
            print_info(image)

        if args.stats:
            print_stats(image)

        if args.export_csv:
            export_to_csv(image, args.export_csv)
            print(f"Data exported to: {args.export_csv}")

        if args.save_image:
            save_display_image(image, args.save_image)
            print(f"Image saved to: {args.save_image}")

        if not any([args.header, args.info, args.stats, args.export_csv, args.save_image]):
            print(f"File loaded successfully: {args.file_path}")
            print(f"Image size: {image.get_image_shape()}")
            print(f"Mean value: {image.grid.mean:.2f}")

    except (FitsError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _format_value(value):
    if value is None:
        return "unset"
    if math.isnan(value):
        return "invalid"
    return f"{value:g}"


def print_info(image):
    """Print header geometry and format information."""
    header = image.header

    print("\n=== IMAGE INFORMATION ===")
    print(f"Conforms to standard: {'yes' if header.conforms_to_standard else 'no'}")
    print(f"BITPIX: {header.bitpix}")
    print(f"Axes: {header.axis_count}")
    print(f"Image size: {header.width} x {header.height}")
    print(f"Data offset: {header.data_offset}")
    print(f"BZERO: {_format_value(header.zero_offset)}")
    print(f"BSCALE: {_format_value(header.scale_factor)} (not applied)")
    print(f"Header records: {len(header.records)}")


def print_stats(image):
    """Print sample statistics and display limits."""
    grid = image.grid

    print("\n=== SAMPLE STATISTICS ===")
    print(f"Minimum value: {grid.min:.4g}")
    print(f"Maximum value: {grid.max:.4g}")
    print(f"Mean value: {grid.mean:.4g}")
    print(f"Standard deviation: {grid.stddev:.4g}")
    if image.display is not None:
        print(f"Display range (z1, z2): {image.display.z1:.4g}, {image.display.z2:.4g}")


def export_to_csv(image, output_path):
    """Export sample values to CSV format."""
    import csv

    grid = image.grid

    with open(output_path, 'w', newline='') as csvfile:
        writer = csv.writer(csvfile)

        # Header
        writer.writerow(['X', 'Y', 'Value'])

        # Data
        for y in range(grid.height):
            for x in range(grid.width):
                writer.writerow([x, y, grid.get_value_at_pixel(x, y)])


def save_display_image(image, output_path):
    """Write the display grid as a grayscale image."""
    from matplotlib import image as mpimg

    if image.display is None:
        raise ValueError("No display image to save")
    mpimg.imsave(output_path, image.display.pixels, cmap="gray", vmin=0, vmax=255)


if __name__ == "__main__":
    sys.exit(main())
