"""Tile geometry for printing a large image as a poster on several sheets.

Everything here is pure arithmetic: two image dimensions go in, an ordered
list of crop rectangles comes out.  Reading images and writing tiles lives
in imagetools.py.

All physical sizes are in inches, all tile coordinates in source pixels.
"""

import math
import os
from dataclasses import dataclass

from reportlab.lib.pagesizes import LEDGER, LEGAL, LETTER, portrait
from reportlab.lib.units import inch

# Printers can't reach the edge of the sheet, so 1/4" is lost on every side.
PAGE_MARGIN = 0.25

# Strip of image printed twice on neighbouring sheets, for trimming and gluing.
OVERLAP = 0.1


class GeometryError(ValueError):
    """Raised when the requested grid can't be laid out over the image."""


@dataclass(frozen=True)
class PaperFormat:
    title: str
    width: float        # print area, inches
    height: float

    def oriented(self, landscape=False):
        """Return (width, height) of the print area for the given orientation."""
        if landscape:
            return self.height, self.width
        return self.width, self.height


def _print_area(title, pagesize):
    w, h = portrait(pagesize)
    return PaperFormat(title, w / inch - 2.0 * PAGE_MARGIN, h / inch - 2.0 * PAGE_MARGIN)


# Hopelessly U.S. centric, no A sizes here...
PAPER_FORMATS = {
    'letter': _print_area('Letter', LETTER),
    'legal': _print_area('Legal', LEGAL),
    'ledger': _print_area('Ledger', LEDGER),
}
DEFAULT_PAPER = 'letter'


def paper_format(name):
    """Look up a catalog entry by case-insensitive name."""
    try:
        return PAPER_FORMATS[name.lower()]
    except KeyError:
        known = ', '.join(PAPER_FORMATS)
        raise ValueError(f"Unknown paper format '{name}'. Choose one of: {known}") from None


@dataclass(frozen=True)
class Tile:
    """One sheet's worth of the source image."""
    name: str
    left: int
    top: int
    width: int
    height: int
    row: int = 0
    column: int = 0

    @property
    def box(self):
        """Crop box in PIL order: (left, upper, right, lower)."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)

    @property
    def geometry(self):
        """ImageMagick geometry string, e.g. 1509x1981+0+0."""
        return f"{self.width}x{self.height}+{self.left}+{self.top}"


@dataclass(frozen=True)
class TileLayout:
    image_width: int
    image_height: int
    columns: int
    rows: int
    paper: PaperFormat
    landscape: bool
    overlap: float
    paper_width: float
    paper_height: float
    canvas_width: float
    canvas_height: float
    image_ratio: float
    canvas_ratio: float
    dpi: float
    width_binds: bool
    pixel_overlap: int
    block_width: int
    block_height: int
    shift_x: int
    shift_y: int
    last_width: int
    last_height: int
    tiles: tuple = ()

    @property
    def print_width(self):
        return self.image_width / self.dpi

    @property
    def print_height(self):
        return self.image_height / self.dpi

    @property
    def rounding_slack(self):
        """Pixels the last tile on the binding axis differs from a regular tile."""
        if self.width_binds:
            return self.last_width - self.block_width
        return self.last_height - self.block_height

    def __len__(self):
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles)


def round_half_up(value):
    # round() does banker's rounding; 2.5 px must become 3, not 2.
    return int(math.floor(value + 0.5))


def tile_name(image_name, row, column):
    """Insert -row-column before the extension: poster.jpg -> poster-1-2.jpg"""
    base, ext = os.path.splitext(image_name)
    return f"{base}-{row}-{column}{ext}"


def _check_positive_int(value, what):
    if isinstance(value, bool) or not isinstance(value, int):
        raise GeometryError(f"{what} must be an integer, got {value!r}")
    if value < 1:
        raise GeometryError(f"{what} must be at least 1, got {value}")


def canvas_size(paper_width, paper_height, columns, rows, overlap=OVERLAP):
    """Total printable area of the assembled grid, in inches."""
    _check_positive_int(columns, "Grid width")
    _check_positive_int(rows, "Grid height")
    return (paper_width * columns - overlap * (columns - 1),
            paper_height * rows - overlap * (rows - 1))


def print_resolution(image_width, image_height, canvas_width, canvas_height):
    """Return (dpi, width_binds).

    The image fills the canvas exactly along one axis and is smaller than it
    along the other.  It is never scaled past the canvas.
    """
    image_ratio = image_height / image_width
    canvas_ratio = canvas_height / canvas_width
    if canvas_ratio > image_ratio:
        return image_width / canvas_width, True
    return image_height / canvas_height, False


def compute_layout(image_width, image_height, columns, rows, paper=None,
                   landscape=False, overlap=OVERLAP, image_name='image.png'):
    """Split a WxH image into a columns x rows grid of overlapping tiles.

    Tiles come back in row-major order, top row left to right first.
    Raises GeometryError if any input or any resulting tile is degenerate.
    """
    if paper is None:
        paper = PAPER_FORMATS[DEFAULT_PAPER]
    _check_positive_int(image_width, "Image width")
    _check_positive_int(image_height, "Image height")

    paper_width, paper_height = paper.oriented(landscape)
    canvas_width, canvas_height = canvas_size(paper_width, paper_height, columns, rows, overlap)
    dpi, width_binds = print_resolution(image_width, image_height, canvas_width, canvas_height)

    pixel_overlap = round_half_up(overlap * dpi)
    block_width = round_half_up(dpi * paper_width)
    block_height = round_half_up(dpi * paper_height)
    shift_x = block_width - pixel_overlap
    shift_y = block_height - pixel_overlap

    if block_width <= 0 or block_height <= 0 or shift_x <= 0 or shift_y <= 0:
        raise GeometryError(
            f"Image {image_width}x{image_height}px is too small for a {columns}x{rows} grid "
            f"({dpi:.2f}dpi gives {block_width}x{block_height}px tiles "
            f"with {pixel_overlap}px overlap)")

    # The last column and row end exactly at the image edge.  On the binding
    # axis this only absorbs a pixel or two of rounding: a regular-width last
    # tile would stop at 1490 + 1509 = 2999 on a 3000px image over 2x2 Letter.
    last_width = image_width - shift_x * (columns - 1)
    last_height = image_height - shift_y * (rows - 1)
    if last_width <= 0 or last_height <= 0:
        raise GeometryError(
            f"Image {image_width}x{image_height}px is too small for a {columns}x{rows} grid "
            f"(last tile would be {last_width}x{last_height}px)")

    tiles = []
    for y in range(rows):
        for x in range(columns):
            tiles.append(Tile(
                name=tile_name(image_name, y, x),
                left=shift_x * x,
                top=shift_y * y,
                width=block_width if x < columns - 1 else last_width,
                height=block_height if y < rows - 1 else last_height,
                row=y,
                column=x,
            ))

    return TileLayout(
        image_width=image_width,
        image_height=image_height,
        columns=columns,
        rows=rows,
        paper=paper,
        landscape=landscape,
        overlap=overlap,
        paper_width=paper_width,
        paper_height=paper_height,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        image_ratio=image_height / image_width,
        canvas_ratio=canvas_height / canvas_width,
        dpi=dpi,
        width_binds=width_binds,
        pixel_overlap=pixel_overlap,
        block_width=block_width,
        block_height=block_height,
        shift_x=shift_x,
        shift_y=shift_y,
        last_width=last_width,
        last_height=last_height,
        tiles=tuple(tiles),
    )


def describe(layout, image_name):
    """Human readable report of a layout, one line per fact."""
    orientation = 'landscape' if layout.landscape else 'portrait'
    paper = layout.paper
    lines = [
        f"Image {image_name} has dimensions {layout.image_width}x{layout.image_height}px "
        f"(1:{layout.image_ratio:.3f})",
        f"Using paper format {paper.title} with print area dimensions {paper.width:g}x{paper.height:g}in "
        f"(1:{layout.paper_height / layout.paper_width:.3f}) in {orientation} orientation",
        f"Canvas size is {layout.canvas_width:g}x{layout.canvas_height:g}in (1:{layout.canvas_ratio:.3f})",
        f"Print dimensions are {layout.print_width:.1f}x{layout.print_height:.1f}in, {layout.dpi:.0f}dpi",
        f"Grid of {layout.columns}x{layout.rows} = {len(layout)} tiles, "
        f"{layout.block_width}x{layout.block_height}px each with {layout.pixel_overlap}px overlap",
    ]
    if layout.rounding_slack:
        axis = 'column' if layout.width_binds else 'row'
        lines.append(f"Last {axis} adjusted by {layout.rounding_slack:+d}px to reach the image edge")
    return lines
