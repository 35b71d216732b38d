"""Reading image sizes and cutting tiles out of the source image.

Two interchangeable backends:

  pillow  -- everything in-process with PIL (default)
  magick  -- shells out to ImageMagick's identify/convert, one process per tile

Each backend is a pair of callables:

  size(image_path) -> (width, height)
  crop(image_path, tile, output_path, dpi) -> output_path

Both raise ImageToolError on any failure.
"""

import functools
import os
import shutil
import subprocess

from PIL import Image, UnidentifiedImageError


class ImageToolError(RuntimeError):
    """Raised when an image can't be measured or a tile can't be written."""


def _open(image_path):
    # Posters start from huge rasters on purpose, and the file is the user's own.
    Image.MAX_IMAGE_PIXELS = None
    return Image.open(image_path)


@functools.lru_cache(maxsize=1)
def _decoded(image_path, mtime_ns, file_size):
    with _open(image_path) as im:
        im.load()
    return im


def _source(image_path):
    """Decoded source image, shared by consecutive tiles of the same file."""
    st = os.stat(image_path)
    return _decoded(image_path, st.st_mtime_ns, st.st_size)


def pillow_size(image_path):
    try:
        with _open(image_path) as im:
            return im.size
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise ImageToolError(f"Cannot read dimensions of {image_path}: {e}") from e


def pillow_crop(image_path, tile, output_path, dpi=None):
    """Write tile's region of image_path to output_path, anchored at (0, 0)."""
    try:
        source = _source(image_path)
        segment = source.crop(tile.box)
        params = {}
        if dpi:
            # so the sheet prints at poster scale without further resizing
            params['dpi'] = (dpi, dpi)
        ext = os.path.splitext(output_path)[1].lower()
        if ext not in Image.registered_extensions():
            # extensionless source, so keep its format
            params['format'] = source.format
        if segment.mode in ('RGBA', 'LA', 'P') and ext in ('.jpg', '.jpeg'):
            segment = segment.convert('RGB')
        segment.save(output_path, **params)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageToolError(f"Cannot write tile {output_path}: {e}") from e
    return output_path


def _magick_command(tool):
    """Command prefix for an ImageMagick tool, IM7 'magick' first."""
    if shutil.which('magick'):
        return ['magick', tool] if tool == 'identify' else ['magick']
    if shutil.which(tool):
        return [tool]
    raise ImageToolError(f"ImageMagick not found: neither 'magick' nor '{tool}' is on PATH")


def _run(commands):
    try:
        result = subprocess.run(commands, capture_output=True, text=True, check=False,
                                encoding='utf-8', errors='replace')
    except OSError as e:
        raise ImageToolError(f"Cannot run {commands[0]}: {e}") from e
    if result.returncode != 0:
        raise ImageToolError(
            f"{' '.join(commands)} failed with code {result.returncode}: {result.stderr.strip()}")
    return result.stdout


def magick_size(image_path):
    # [0] so multi-frame files report one size
    out = _run(_magick_command('identify') + ['-format', '%w %h', f"{image_path}[0]"])
    try:
        width, height = (int(v) for v in out.split()[:2])
    except ValueError:
        raise ImageToolError(f"Unexpected identify output for {image_path}: {out!r}") from None
    return width, height


def magick_crop(image_path, tile, output_path, dpi=None):
    commands = _magick_command('convert') + [image_path, '-crop', tile.geometry, '+repage']
    if dpi:
        commands += ['-units', 'PixelsPerInch', '-density', f"{dpi:.2f}"]
    commands.append(output_path)
    _run(commands)
    return output_path


BACKENDS = {
    'pillow': (pillow_size, pillow_crop),
    'magick': (magick_size, magick_crop),
}
DEFAULT_BACKEND = 'pillow'
