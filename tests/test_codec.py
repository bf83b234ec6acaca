"""
Tests for the Pillow pixel codec and decode sessions.
"""

import logging

import pytest
from PIL import Image

from conftest import encode_image
from snapdiff.core.diff.codec import DecodeError, DecodeSession, PillowPixelCodec
from snapdiff.core.models import PixelGrid


class TestPillowPixelCodec:
    """Tests for PillowPixelCodec."""

    def test_decode_rgba(self, make_png):
        """Test decoding an RGBA PNG."""
        grid = PillowPixelCodec().decode(make_png(3, 2, (1, 2, 3, 4)))

        assert grid.dimensions == (3, 2)
        assert len(grid.data) == 3 * 2 * 4
        assert grid.pixel(2, 1) == (1, 2, 3, 4)

    def test_decode_converts_to_rgba(self):
        """Test palette and RGB images come back as RGBA."""
        img = Image.new('RGB', (2, 2), (10, 20, 30))
        grid = PillowPixelCodec().decode(encode_image(img))

        assert grid.pixel(0, 0) == (10, 20, 30, 255)

    def test_encode_decode(self):
        """Test an encoded grid decodes to the same pixels."""
        codec = PillowPixelCodec()
        grid = PixelGrid(2, 1, bytes([255, 0, 0, 255, 0, 0, 255, 128]))

        assert codec.decode(codec.encode(grid)) == grid

    def test_encode_jpeg_drops_alpha(self):
        """Test formats without alpha can still be written."""
        codec = PillowPixelCodec()
        data = codec.encode(PixelGrid(1, 1, bytes([10, 10, 10, 255])), 'JPEG')

        assert data[:2] == b'\xff\xd8'

    def test_decode_garbage(self):
        """Test undecodable data raises DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            PillowPixelCodec().decode(b'definitely not an image')

        assert exc_info.value.__cause__ is not None

    def test_decode_oversized(self, make_png, monkeypatch):
        """Test images over Pillow's pixel limit raise DecodeError."""
        data = make_png(10, 10)
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 10)

        with pytest.raises(DecodeError) as exc_info:
            PillowPixelCodec().decode(data)

        assert isinstance(exc_info.value.__cause__, Image.DecompressionBombError)

    def test_decode_empty(self):
        """Test empty data raises DecodeError."""
        with pytest.raises(DecodeError):
            PillowPixelCodec().decode(b'')

    def test_decode_with_session(self, make_png):
        """Test a caller-provided session keeps ownership of images."""
        session = DecodeSession()
        PillowPixelCodec().decode(make_png(2, 2), session=session)

        assert session.open_count == 1
        session.close()
        assert session.open_count == 0

    def test_mime_mismatch_logged(self, make_png, caplog):
        """Test a disagreeing MIME hint is logged, not fatal."""
        with caplog.at_level(logging.DEBUG):
            grid = PillowPixelCodec().decode(make_png(2, 2), mime='image/jpeg')

        assert grid.dimensions == (2, 2)
        assert 'Declared image/jpeg but data is PNG' in caplog.text


class TestDecodeSession:
    """Tests for DecodeSession cleanup."""

    class Resource:
        def __init__(self, fail=False):
            self.fail = fail
            self.closed = False

        def close(self):
            self.closed = True
            if self.fail:
                raise OSError('close failed')

    def test_closes_all_on_exit(self):
        """Test every tracked resource is closed."""
        resources = [self.Resource(), self.Resource()]
        with DecodeSession() as session:
            for resource in resources:
                session.track(resource)

        assert all(r.closed for r in resources)

    def test_close_failure_is_logged(self, caplog):
        """Test a failing close does not stop the others."""
        bad = self.Resource(fail=True)
        good = self.Resource()

        with caplog.at_level(logging.WARNING):
            with DecodeSession() as session:
                session.track(bad)
                session.track(good)

        assert good.closed
        assert 'Failed to release image' in caplog.text

    def test_original_error_wins(self):
        """Test a close failure never masks the error in flight."""
        with pytest.raises(ValueError, match='original'):
            with DecodeSession() as session:
                session.track(self.Resource(fail=True))
                raise ValueError('original')


class TestPixelGrid:
    """Tests for PixelGrid validation."""

    def test_wrong_buffer_length(self):
        """Test buffers must hold width * height * 4 bytes."""
        with pytest.raises(ValueError):
            PixelGrid(2, 2, bytes(15))

    def test_negative_dimensions(self):
        """Test negative sizes are rejected."""
        with pytest.raises(ValueError):
            PixelGrid(-1, 2, b'')

    def test_pixel_out_of_bounds(self):
        """Test reading outside the grid."""
        with pytest.raises(IndexError):
            PixelGrid(1, 1, bytes(4)).pixel(1, 0)
