"""
Raster codec for image comparison.

Decodes encoded image bytes into RGBA pixel grids and encodes grids back
into image bytes. The engine only depends on the abstract PixelCodec; the
Pillow implementation is the default.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from typing import Optional

from PIL import Image, UnidentifiedImageError

from snapdiff.core.models import PixelGrid


# Declared MIME type -> Pillow format name
MIME_FORMATS = {
    'image/png': 'PNG',
    'image/jpeg': 'JPEG',
    'image/jpg': 'JPEG',
    'image/gif': 'GIF',
    'image/webp': 'WEBP',
    'image/bmp': 'BMP',
    'image/tiff': 'TIFF',
}

# Formats without an alpha channel
OPAQUE_FORMATS = {'JPEG', 'JPG', 'BMP'}


class DecodeError(Exception):
    """Raised when image bytes cannot be decoded into a pixel grid."""


class PixelCodec(ABC):
    """Base class for raster codecs."""

    @abstractmethod
    def decode(
        self,
        data: bytes,
        mime: Optional[str] = None,
        session: Optional[DecodeSession] = None
    ) -> PixelGrid:
        """Decode image bytes into an RGBA grid.

        Args:
            data: Encoded image bytes
            mime: Declared MIME type, used as a format hint
            session: Session that takes ownership of opened resources

        Returns:
            Decoded PixelGrid

        Raises:
            DecodeError: If the data is not a decodable image
        """

    @abstractmethod
    def encode(self, grid: PixelGrid, fmt: str = 'PNG') -> bytes:
        """Encode an RGBA grid into image bytes."""


class DecodeSession:
    """
    Owner of every image opened while decoding one comparison.

    All tracked images are closed on exit, whatever the exit path. A close
    failure is logged and never replaces an exception already in flight.
    """

    def __init__(self):
        self._images: list[Image.Image] = []

    def track(self, img: Image.Image) -> Image.Image:
        self._images.append(img)
        return img

    @property
    def open_count(self) -> int:
        return len(self._images)

    def close(self) -> None:
        """Close all tracked images."""
        for img in self._images:
            try:
                img.close()
            except Exception as e:
                logging.warning(f"DecodeSession - Failed to release image: {e}")
        self._images.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False


class PillowPixelCodec(PixelCodec):
    """Codec backed by Pillow."""

    def decode(
        self,
        data: bytes,
        mime: Optional[str] = None,
        session: Optional[DecodeSession] = None
    ) -> PixelGrid:
        if not data:
            raise DecodeError("Failed to load image: no data")

        owns_session = session is None
        if owns_session:
            session = DecodeSession()

        try:
            try:
                img = session.track(Image.open(io.BytesIO(data)))
                img.load()
            except (UnidentifiedImageError, Image.DecompressionBombError,
                    OSError, ValueError) as e:
                raise DecodeError(f"Failed to load image: {e}") from e

            self._check_mime(img, mime)

            rgba = img if img.mode == 'RGBA' else session.track(img.convert('RGBA'))
            return PixelGrid(
                width=rgba.width,
                height=rgba.height,
                data=rgba.tobytes(),
            )
        finally:
            if owns_session:
                session.close()

    def encode(self, grid: PixelGrid, fmt: str = 'PNG') -> bytes:
        img = Image.frombytes('RGBA', grid.dimensions, grid.data)
        try:
            buffer = io.BytesIO()
            if fmt.upper() in OPAQUE_FORMATS:
                with img.convert('RGB') as rgb:
                    rgb.save(buffer, format=fmt)
            else:
                img.save(buffer, format=fmt)
            return buffer.getvalue()
        finally:
            img.close()

    def _check_mime(self, img: Image.Image, mime: Optional[str]) -> None:
        """Log when the declared MIME type disagrees with the sniffed format."""
        if not mime:
            return
        expected = MIME_FORMATS.get(mime.lower())
        if expected and img.format and img.format != expected:
            logging.debug(
                f"PillowPixelCodec - Declared {mime} but data is {img.format}; "
                f"using detected format"
            )
