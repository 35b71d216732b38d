"""Shared pytest fixtures for poster tests."""
import pytest
from PIL import Image, ImageDraw


@pytest.fixture
def make_image(tmp_path):
    """Factory fixture: make_image(width, height, name) -> path of a PNG on disk."""
    def _make(width, height, name='poster.png', color='white'):
        path = tmp_path / name
        Image.new('RGB', (width, height), color).save(path, format='PNG')
        return str(path)
    return _make


@pytest.fixture
def marked_image(tmp_path):
    """A 300x200 white image with a red block covering (100, 50)-(179, 109)."""
    img = Image.new('RGB', (300, 200), 'white')
    draw = ImageDraw.Draw(img)
    draw.rectangle([100, 50, 179, 109], fill='red')
    path = tmp_path / 'marked.png'
    img.save(path)
    return str(path)


@pytest.fixture
def fake_backend(monkeypatch):
    """Replace the pillow backend with recorders. Returns the recorder state."""
    state = {'size': (3000, 2400), 'size_calls': [], 'crops': [], 'fail_on': None}

    def size(image_path):
        state['size_calls'].append(image_path)
        return state['size']

    def crop(image_path, tile, output_path, dpi=None):
        if state['fail_on'] is not None and len(state['crops']) == state['fail_on']:
            from imagetools import ImageToolError
            raise ImageToolError(f"Cannot write tile {output_path}: disk full")
        state['crops'].append((tile, output_path))
        return output_path

    import imagetools
    monkeypatch.setitem(imagetools.BACKENDS, 'pillow', (size, crop))
    return state
