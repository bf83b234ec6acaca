"""
snapdiff - Text and screenshot diffing for page snapshots.

Compares a "before" artifact against an "after" artifact and reports a
quantified difference used to decide whether a snapshot regressed.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional

from snapdiff.core.diff import (
    DecodeError,
    ImageCompareOptions,
    ImageDiffEngine,
    TextCompareOptions,
    TextDiffEngine,
)
from snapdiff.core.models import (
    Edit,
    EditType,
    ImageDiffResult,
    PixelGrid,
    ScreenshotDiffReport,
    TextDiffResult,
)
from snapdiff.services.file_io import ArtifactWriter
from snapdiff.services.settings import DiffSettings, SettingsManager

__version__ = "0.1.0"


def _load_settings() -> DiffSettings:
    return SettingsManager().settings


def diff_text(
    before: str,
    after: str,
    options: Optional[TextCompareOptions] = None
) -> TextDiffResult:
    """
    Diff two text snapshots line by line.

    Without options, comparison options come from the user settings.
    """
    options = options or _load_settings().to_text_options()
    return TextDiffEngine(options).compare(before, after)


def diff_images(
    baseline: bytes,
    current: bytes,
    threshold: Optional[float] = None,
    baseline_mime: Optional[str] = None,
    options: Optional[ImageCompareOptions] = None
) -> ImageDiffResult:
    """
    Diff two encoded screenshots pixel by pixel.

    Without options, comparison options come from the user settings
    (threshold 0.1 by default). ``threshold`` overrides the one in the
    options either way.

    Raises:
        DecodeError: If either image cannot be decoded
        ValueError: If the threshold is outside [0, 1]
    """
    options = _image_options(options, threshold, None)
    return ImageDiffEngine(options).compare_bytes(baseline, current, baseline_mime)


def diff_screenshots(
    baseline: bytes,
    current: bytes,
    output_path: Optional[Path | str] = None,
    threshold: Optional[float] = None,
    baseline_mime: Optional[str] = None,
    writer: Optional[ArtifactWriter] = None,
    options: Optional[ImageCompareOptions] = None
) -> ScreenshotDiffReport:
    """
    Diff two screenshots and write the visualization to disk.

    Options and the artifact directory default to the user settings. Default
    artifact names carry the suffix of the visualization format.
    """
    settings = None
    if writer is None or options is None:
        settings = _load_settings()

    options = _image_options(options, threshold, settings)
    result = diff_images(baseline, current, baseline_mime=baseline_mime, options=options)

    writer = writer or settings.artifact_writer()
    diff_path = writer.write(result.visualization, output_path, options.visualization_suffix)
    return ScreenshotDiffReport(diff_path=diff_path, result=result)


def _image_options(
    options: Optional[ImageCompareOptions],
    threshold: Optional[float],
    settings: Optional[DiffSettings]
) -> ImageCompareOptions:
    """Resolve explicit options, then settings, then apply a threshold override."""
    if options is None:
        options = (settings or _load_settings()).to_image_options()
    if threshold is not None:
        options = replace(options, threshold=threshold)
    return options


__all__ = [
    # Version
    "__version__",
    # Entry points
    "diff_text",
    "diff_images",
    "diff_screenshots",
    # Engines and options
    "TextDiffEngine",
    "TextCompareOptions",
    "ImageDiffEngine",
    "ImageCompareOptions",
    "ArtifactWriter",
    # Data models
    "Edit",
    "EditType",
    "TextDiffResult",
    "PixelGrid",
    "ImageDiffResult",
    "ScreenshotDiffReport",
    # Errors
    "DecodeError",
]
