"""
Core data models for snapshot comparison.

This module defines all data structures shared by the diff engines:
- Text diff models (edit scripts and aggregated results)
- Image diff models (pixel grids and comparison results)
- Artifact reporting models

All models are designed to be:
- Created fresh per comparison call
- Immutable once produced
- Free of engine state (safe to hand to any caller)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path


# =============================================================================
# Enumerations
# =============================================================================

class EditType(Enum):
    """Kind of element in an edit script."""
    EQUAL = auto()   # Line present in both sequences
    INSERT = auto()  # Line present only in the after sequence
    DELETE = auto()  # Line present only in the before sequence


# =============================================================================
# Text Diff Models
# =============================================================================

@dataclass(frozen=True)
class Edit:
    """A single element of an edit script."""
    edit_type: EditType
    line: str

    @property
    def prefix(self) -> str:
        """Get the rendering prefix for this edit."""
        if self.edit_type == EditType.INSERT:
            return "+ "
        elif self.edit_type == EditType.DELETE:
            return "- "
        return "  "

    def render(self) -> str:
        return f"{self.prefix}{self.line}"


@dataclass(frozen=True)
class TextDiffResult:
    """Result of a line-level text comparison."""
    diff: str
    additions: int
    removals: int
    unchanged: int
    changed: bool
    edits: tuple[Edit, ...] = ()

    @property
    def total_edits(self) -> int:
        return self.additions + self.removals + self.unchanged

    @property
    def summary(self) -> str:
        """Get a one-line summary of the counts."""
        def plural(count: int, word: str) -> str:
            return f"{count} {word}" if count == 1 else f"{count} {word}s"

        return (
            f"{plural(self.additions, 'addition')}, "
            f"{plural(self.removals, 'removal')}, "
            f"{self.unchanged} unchanged"
        )


# =============================================================================
# Image Diff Models
# =============================================================================

@dataclass(frozen=True)
class PixelGrid:
    """
    Decoded raster image.

    Pixels are stored as a flat RGBA buffer, row-major, origin top-left.
    """
    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Invalid grid dimensions: {self.width}x{self.height}"
            )
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"Pixel buffer has {len(self.data)} bytes, "
                f"expected {expected} for {self.width}x{self.height} RGBA"
            )

    @property
    def dimensions(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Get the RGBA value at (x, y)."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            raise IndexError(f"Pixel ({x}, {y}) out of bounds")
        offset = (y * self.width + x) * 4
        return tuple(self.data[offset:offset + 4])

    def __str__(self) -> str:
        return f"{self.width}x{self.height} RGBA"


@dataclass(frozen=True)
class ImageDiffResult:
    """Result of a pixel-level image comparison."""
    total_pixels: int
    different_pixels: int
    mismatch_percentage: float           # 0.0 to 100.0, two decimals
    visualization: bytes                 # Encoded raster image
    dimension_mismatch: bool
    match: bool

    @property
    def identical_pixels(self) -> int:
        return self.total_pixels - self.different_pixels


@dataclass(frozen=True)
class ScreenshotDiffReport:
    """Image comparison result together with the written visualization."""
    diff_path: Path
    result: ImageDiffResult

    @property
    def match(self) -> bool:
        return self.result.match

    @property
    def mismatch_percentage(self) -> float:
        return self.result.mismatch_percentage

    def __str__(self) -> str:
        status = "match" if self.result.match else "mismatch"
        return (
            f"{status}: {self.result.different_pixels}/"
            f"{self.result.total_pixels} pixels differ "
            f"({self.result.mismatch_percentage}%) -> {self.diff_path}"
        )
