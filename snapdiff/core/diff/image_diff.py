"""
Image snapshot diff engine.

Provides pixel-level comparison of screenshots with:
- Euclidean RGB color distance against a threshold
- Difference visualization (red mismatches over a darkened baseline)
- Dimension mismatch detection
- Strip-by-strip processing with progress reporting
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from PIL import Image, ImageChops, ImageMath

from snapdiff.core.diff.codec import DecodeSession, PillowPixelCodec, PixelCodec
from snapdiff.core.models import ImageDiffResult, PixelGrid


MISMATCH_COLOR = (255, 0, 0, 255)
DIM_FACTOR = 0.3

# Baseline channel value -> darkened value, rounded half up
_DIMMED = [math.floor(value * DIM_FACTOR + 0.5) for value in range(256)]
_DIMMED_RGB = _DIMMED * 3

# Largest possible squared RGB distance (3 * 255^2)
_MAX_SQUARED_DISTANCE = 3 * 255 * 255

# Pillow format name -> file suffix, where they differ
_FORMAT_SUFFIXES = {
    'jpeg': '.jpg',
    'tiff': '.tif',
}


@dataclass
class ImageCompareOptions:
    """Options for image comparison."""
    threshold: float = 0.1            # Fraction of the maximum color distance
    chunk_rows: int = 128             # Rows per comparison strip
    visualization_format: str = 'PNG'

    def validate(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {self.threshold}")
        if self.chunk_rows < 1:
            raise ValueError(f"chunk_rows must be at least 1, got {self.chunk_rows}")

    @property
    def max_color_distance(self) -> float:
        return self.threshold * 255 * math.sqrt(3)

    @property
    def visualization_suffix(self) -> str:
        fmt = self.visualization_format.lower()
        return _FORMAT_SUFFIXES.get(fmt, f'.{fmt}')


def squared_distance_limit(max_color_distance: float) -> int:
    """
    Largest squared RGB distance that still counts as matching.

    A pixel differs when ``sqrt(dr^2 + dg^2 + db^2) > max_color_distance``.
    Squared distances are integers, so the comparison reduces to
    ``squared > limit`` with the limit computed once per comparison.
    """
    if max_color_distance < 0:
        return -1
    limit = min(int(max_color_distance * max_color_distance), _MAX_SQUARED_DISTANCE)
    while limit < _MAX_SQUARED_DISTANCE and math.sqrt(limit + 1) <= max_color_distance:
        limit += 1
    while limit >= 0 and math.sqrt(limit) > max_color_distance:
        limit -= 1
    return limit


def mismatch_percentage(different_pixels: int, total_pixels: int) -> float:
    """Percentage of differing pixels, rounded to two decimals."""
    if total_pixels == 0:
        return 0.0
    # Round half up, as the percentage is never negative
    return math.floor(different_pixels / total_pixels * 10000 + 0.5) / 100


class ImageDiffEngine:
    """
    Engine for comparing screenshots.

    Decoding and encoding go through a PixelCodec; the comparison itself
    works on RGBA pixel grids and keeps no state between calls.
    """

    def __init__(
        self,
        options: Optional[ImageCompareOptions] = None,
        codec: Optional[PixelCodec] = None
    ):
        self.options = options or ImageCompareOptions()
        self.options.validate()
        self.codec = codec or PillowPixelCodec()

    def compare_bytes(
        self,
        baseline_data: bytes,
        current_data: bytes,
        baseline_mime: Optional[str] = None,
        current_mime: Optional[str] = 'image/png',
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> ImageDiffResult:
        """
        Compare two encoded images.

        Args:
            baseline_data: Encoded baseline image
            current_data: Encoded current image
            baseline_mime: Declared MIME type of the baseline
            current_mime: Declared MIME type of the current image
            progress_callback: Progress callback (rows_done, total_rows)

        Returns:
            ImageDiffResult with counts and encoded visualization

        Raises:
            DecodeError: If either image cannot be decoded
        """
        with DecodeSession() as session:
            baseline = self.codec.decode(baseline_data, baseline_mime, session=session)
            current = self.codec.decode(current_data, current_mime, session=session)

        return self.compare(baseline, current, progress_callback)

    def compare(
        self,
        baseline: PixelGrid,
        current: PixelGrid,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> ImageDiffResult:
        """
        Compare two decoded pixel grids.

        Args:
            baseline: Reference grid
            current: Grid to check against the reference
            progress_callback: Progress callback (rows_done, total_rows)

        Returns:
            ImageDiffResult with counts and encoded visualization
        """
        if baseline.dimensions != current.dimensions:
            return self._dimension_mismatch(baseline, current)

        total_pixels = baseline.pixel_count
        if total_pixels == 0:
            return ImageDiffResult(
                total_pixels=0,
                different_pixels=0,
                mismatch_percentage=0.0,
                visualization=self._placeholder(),
                dimension_mismatch=False,
                match=True,
            )

        visualization, different_pixels = self._compare_pixels(
            baseline, current, progress_callback
        )

        logging.debug(
            f"ImageDiffEngine - {different_pixels}/{total_pixels} pixels differ "
            f"at threshold {self.options.threshold}"
        )

        return ImageDiffResult(
            total_pixels=total_pixels,
            different_pixels=different_pixels,
            mismatch_percentage=mismatch_percentage(different_pixels, total_pixels),
            visualization=self.codec.encode(visualization, self.options.visualization_format),
            dimension_mismatch=False,
            match=different_pixels == 0,
        )

    def _compare_pixels(
        self,
        baseline: PixelGrid,
        current: PixelGrid,
        progress_callback: Optional[Callable[[int, int], None]]
    ) -> tuple[PixelGrid, int]:
        """
        Perform the per-pixel comparison.

        Returns:
            Tuple of (visualization_grid, different_pixel_count)
        """
        width = baseline.width
        height = baseline.height
        limit = squared_distance_limit(self.options.max_color_distance)

        # Alpha is ignored by the distance, so compare in RGB
        left_img = Image.frombytes('RGBA', baseline.dimensions, baseline.data).convert('RGB')
        right_img = Image.frombytes('RGBA', current.dimensions, current.data).convert('RGB')

        diff_img = Image.new('RGB', (width, height))
        different_pixels = 0

        # Process in strips to support progress reporting on large images
        for y in range(0, height, self.options.chunk_rows):
            y_end = min(y + self.options.chunk_rows, height)

            left_crop = left_img.crop((0, y, width, y_end))
            right_crop = right_img.crop((0, y, width, y_end))

            mask = self._mismatch_mask(left_crop, right_crop, limit)
            different_pixels += mask.histogram()[255]

            red = Image.new('RGB', left_crop.size, MISMATCH_COLOR[:3])
            strip = Image.composite(red, left_crop.point(_DIMMED_RGB), mask)
            diff_img.paste(strip, (0, y))

            if progress_callback:
                progress_callback(y_end, height)

        visualization = diff_img.convert('RGBA')
        return PixelGrid(width, height, visualization.tobytes()), different_pixels

    @staticmethod
    def _mismatch_mask(left: Image.Image, right: Image.Image, limit: int) -> Image.Image:
        """
        Build an 'L' mask that is 255 where two RGB strips differ.

        Squared distances peak at 3 * 255^2, well inside the 32-bit
        integer images ImageMath works on.
        """
        r, g, b = ImageChops.difference(left, right).split()
        mask = ImageMath.lambda_eval(
            lambda args: (
                (args['r'] * args['r'] + args['g'] * args['g'] + args['b'] * args['b'])
                > args['limit']
            ) * 255,
            r=r,
            g=g,
            b=b,
            limit=limit,
        )
        return mask.convert('L')

    def _dimension_mismatch(self, baseline: PixelGrid, current: PixelGrid) -> ImageDiffResult:
        """Build the total-mismatch result for grids of different sizes."""
        total_pixels = max(baseline.pixel_count, current.pixel_count)

        logging.debug(
            f"ImageDiffEngine - Dimension mismatch: {baseline} vs {current}"
        )

        return ImageDiffResult(
            total_pixels=total_pixels,
            different_pixels=total_pixels,
            mismatch_percentage=100.0,
            visualization=self._placeholder(),
            dimension_mismatch=True,
            match=False,
        )

    def _placeholder(self) -> bytes:
        """Encode a transparent 1x1 image."""
        return self.codec.encode(
            PixelGrid(1, 1, bytes(4)), self.options.visualization_format
        )
