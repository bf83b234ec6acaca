"""
Diff module for snapshot comparison operations.

Provides engines for comparing:
- Text snapshots (line-level shortest edit script)
- Screenshots (pixel-level color distance)
"""

from snapdiff.core.diff.text_diff import (
    TextDiffEngine,
    TextCompareOptions,
    WhitespaceMode,
    myers_diff,
    render_edits,
)
from snapdiff.core.diff.image_diff import (
    ImageDiffEngine,
    ImageCompareOptions,
)
from snapdiff.core.diff.codec import (
    DecodeError,
    DecodeSession,
    PixelCodec,
    PillowPixelCodec,
)

__all__ = [
    # Text diff
    'TextDiffEngine',
    'TextCompareOptions',
    'WhitespaceMode',
    'myers_diff',
    'render_edits',
    # Image diff
    'ImageDiffEngine',
    'ImageCompareOptions',
    # Codec
    'DecodeError',
    'DecodeSession',
    'PixelCodec',
    'PillowPixelCodec',
]
