#!/usr/bin/env python

##   _ __  ___ ___| |_ ___ _ _
##  | '_ \/ _ (_-<  _/ -_) '_|
##  | .__/\___/__/\__\___|_|
##  |_|
##
## Splits a large image into a grid of overlapping tiles, one per sheet of paper.
## Each tile is cut so that the whole image prints at a single resolution
## and fills the assembled sheets along one axis.  Neighbouring sheets share a
## 0.1" strip, so they can be trimmed and lined up after printing.
##
## Tiles are written next to the source image as NAME-row-col.EXT.
##

import sys
import os
import argparse

import imagetools
from imagetools import ImageToolError
from tiling import (GeometryError, PAPER_FORMATS, DEFAULT_PAPER, compute_layout,
                    describe, paper_format)

EXIT_DECLINED = 255


def parse_grid_dimension(value):
    """Parse a grid count like '3' into a positive int"""
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid grid size '{value}', expected a whole number") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"grid size must be at least 1, got {n}")
    return n


def parse_orientation(value):
    """Parse 'p', 'l', 'portrait' or 'landscape'; returns True for landscape"""
    v = value.strip().lower()
    if v in ('p', 'portrait'):
        return False
    if v in ('l', 'landscape'):
        return True
    raise argparse.ArgumentTypeError(f"invalid orientation '{value}', use p or l")


def confirm(message="Proceed?", default=False):
    """Ask a yes/no question on the terminal. EOF counts as no."""
    hint = "[y/N]" if not default else "[Y/n]"
    while True:
        try:
            answer = input(f"{message} {hint} ").strip().lower()
        except EOFError:
            print()
            return False
        if not answer:
            return default
        if answer in ('y', 'yes'):
            return True
        if answer in ('n', 'no'):
            return False
        print("Please answer y or n.")


def tile_path(tile, output_dir=None):
    if output_dir is None:
        return tile.name
    return os.path.join(output_dir, os.path.basename(tile.name))


def produce_tiles(image_path, layout, crop, output_dir=None):
    """Crop every tile in order. The first failure propagates and stops the run."""
    written = []
    for tile in layout.tiles:
        out = tile_path(tile, output_dir)
        print(f"Run crop {tile.geometry} -> {out}")
        crop(image_path, tile, out, layout.dpi)
        written.append(out)
    return written


def build_parser():
    # -h is the grid height, so help has to live on --help only
    p = argparse.ArgumentParser(
        description="Split an image into overlapping tiles for printing as a poster",
        epilog="Example: python poster.py -w 3 -h 2 -o l image.jpg",
        add_help=False,
    )
    p.add_argument("--help", action="help",
                   help="Show this help message and exit")
    p.add_argument("-w", "--width", dest="columns", required=True, type=parse_grid_dimension,
                   help="Number of sheets across")
    p.add_argument("-h", "--height", dest="rows", required=True, type=parse_grid_dimension,
                   help="Number of sheets down")
    p.add_argument("-o", "--orientation", dest="landscape", default=False, type=parse_orientation,
                   metavar="{p|l}",
                   help="Sheet orientation, portrait or landscape (default: p)")
    p.add_argument("-p", "--paper", default=DEFAULT_PAPER, type=str.lower, choices=list(PAPER_FORMATS),
                   help=f"Paper format (default: {DEFAULT_PAPER})")
    p.add_argument("-d", "--output-dir", default=None,
                   help="Directory for the tiles (default: next to the image)")
    p.add_argument("-b", "--backend", default=imagetools.DEFAULT_BACKEND, choices=list(imagetools.BACKENDS),
                   help=f"Image tool used to measure and crop (default: {imagetools.DEFAULT_BACKEND})")
    p.add_argument("-y", "--yes", action="store_true",
                   help="Don't ask for confirmation before writing tiles")
    p.add_argument("--preview", action="store_true",
                   help="Show the layout without writing any tiles")
    p.add_argument("image", help="Input image file name")
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)

    size, crop = imagetools.BACKENDS[args.backend]

    try:
        image_width, image_height = size(args.image)
        layout = compute_layout(image_width, image_height, args.columns, args.rows,
                                paper=paper_format(args.paper), landscape=args.landscape,
                                image_name=args.image)
    except (ImageToolError, GeometryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for line in describe(layout, args.image):
        print(line)

    if args.preview:
        for tile in layout.tiles:
            print(f"  {tile_path(tile, args.output_dir)}: {tile.geometry}")
        return 0

    if not args.yes and not confirm("Proceed?", default=False):
        print("Exited by user's request")
        return EXIT_DECLINED

    try:
        if args.output_dir:
            os.makedirs(args.output_dir, exist_ok=True)
        produce_tiles(args.image, layout, crop, output_dir=args.output_dir)
    except (ImageToolError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("All done!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
