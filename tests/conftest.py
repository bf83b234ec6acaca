"""
Shared fixtures for snapdiff tests.
"""

import io

import pytest
from PIL import Image


def encode_image(img: Image.Image, fmt: str = 'PNG') -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def solid_png(width: int, height: int, color=(255, 255, 255, 255)) -> bytes:
    """Encode a single-color RGBA PNG."""
    return encode_image(Image.new('RGBA', (width, height), color))


def decode_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img.convert('RGBA')


@pytest.fixture
def make_png():
    """Factory for solid-color PNGs."""
    return solid_png


@pytest.fixture
def gradient_pair():
    """Two 32x8 images whose per-pixel distance grows along the x axis."""
    baseline = Image.new('RGBA', (32, 8), (0, 0, 0, 255))
    current = Image.new('RGBA', (32, 8), (0, 0, 0, 255))
    for x in range(32):
        for y in range(8):
            current.putpixel((x, y), (x * 8, x * 4, x * 2, 255))
    return encode_image(baseline), encode_image(current)


@pytest.fixture(autouse=True)
def user_config_dir(tmp_path_factory, monkeypatch):
    """Point the user settings file at a fresh directory for every test."""
    config_dir = tmp_path_factory.mktemp('config')
    monkeypatch.setenv('XDG_CONFIG_HOME', str(config_dir))
    monkeypatch.setenv('APPDATA', str(config_dir))
    return config_dir
