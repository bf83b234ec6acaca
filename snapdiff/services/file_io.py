"""
File I/O service for reading snapshots and writing diff artifacts.

Handles:
- Encoding detection
- Atomic writes
- Default artifact paths for diff visualizations
"""

from __future__ import annotations

import itertools
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import chardet
import xxhash


DEFAULT_ARTIFACT_DIR = Path('~/.snapdiff/tmp/diffs')


@dataclass
class WriteResult:
    """Result of a file write operation."""
    success: bool
    path: Optional[Path] = None
    bytes_written: int = 0
    error: Optional[str] = None


class FileIOService:
    """Service for safe file I/O operations."""

    def __init__(
        self,
        default_encoding: str = 'utf-8',
        fallback_encoding: str = 'latin-1'
    ):
        self.default_encoding = default_encoding
        self.fallback_encoding = fallback_encoding

    def read_text(self, path: Path | str, encoding: Optional[str] = None) -> str:
        """
        Read a text file with automatic encoding detection.

        Args:
            path: Path to the file
            encoding: Force specific encoding (auto-detect if None)

        Returns:
            Decoded file content

        Raises:
            OSError: If the file cannot be read
        """
        raw_content = Path(path).read_bytes()

        detected_encoding = encoding or self._detect_encoding(raw_content)

        # BOM overrides detection
        if raw_content.startswith(b'\xef\xbb\xbf'):
            detected_encoding = 'utf-8-sig'
        elif raw_content.startswith(b'\xff\xfe'):
            detected_encoding = 'utf-16-le'
        elif raw_content.startswith(b'\xfe\xff'):
            detected_encoding = 'utf-16-be'

        try:
            content = raw_content.decode(detected_encoding)
        except (UnicodeDecodeError, LookupError):
            logging.debug(
                f"FileIOService - {path} is not valid {detected_encoding}, "
                f"falling back to {self.fallback_encoding}"
            )
            content = raw_content.decode(self.fallback_encoding, errors='replace')

        if detected_encoding.startswith('utf-16'):
            content = content.lstrip('\ufeff')

        return content

    def write_bytes(
        self,
        path: Path | str,
        data: bytes,
        atomic: bool = True
    ) -> WriteResult:
        """
        Write bytes to a file, creating parent directories.

        Args:
            path: Path to write to
            data: Content to write
            atomic: Use atomic write (write to temp then move)

        Returns:
            WriteResult with success status
        """
        path = Path(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            if atomic:
                fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix='.snapdiff-')
                try:
                    with os.fdopen(fd, 'wb') as f:
                        f.write(data)
                    shutil.move(temp_path, path)
                except Exception:
                    if os.path.exists(temp_path):
                        os.unlink(temp_path)
                    raise
            else:
                path.write_bytes(data)

            return WriteResult(success=True, path=path, bytes_written=len(data))

        except PermissionError:
            return WriteResult(success=False, path=path, error=f"Permission denied: {path}")
        except OSError as e:
            return WriteResult(success=False, path=path, error=f"OS error: {e}")

    def _detect_encoding(self, content: bytes) -> str:
        """Detect encoding of content."""
        if not content:
            return self.default_encoding

        result = chardet.detect(content)

        if result['confidence'] > 0.7 and result['encoding']:
            encoding = result['encoding'].lower()
            if encoding == 'ascii':
                return 'utf-8'  # ASCII is subset of UTF-8
            return encoding

        return self.default_encoding


class ArtifactWriter:
    """
    Writer for diff visualization artifacts.

    Without an explicit path, artifacts are named after the xxHash64 digest
    of their content plus a per-writer sequence number, under the artifact
    directory.
    """

    def __init__(
        self,
        artifact_dir: Optional[Path | str] = None,
        file_io: Optional[FileIOService] = None
    ):
        self.artifact_dir = Path(artifact_dir or DEFAULT_ARTIFACT_DIR).expanduser()
        self.file_io = file_io or FileIOService()
        self._sequence = itertools.count(1)

    def default_path(self, data: bytes, suffix: str = '.png') -> Path:
        """Compute the default artifact path for some content."""
        token = f"{xxhash.xxh64(data).hexdigest()}-{next(self._sequence)}"
        return self.artifact_dir / f"diff-{token}{suffix}"

    def write(
        self,
        data: bytes,
        output_path: Optional[Path | str] = None,
        suffix: str = '.png'
    ) -> Path:
        """
        Persist visualization bytes.

        Args:
            data: Encoded visualization
            output_path: Destination (default path if None)
            suffix: File suffix for the default path

        Returns:
            The path written

        Raises:
            OSError: If the artifact cannot be written
        """
        path = Path(output_path) if output_path else self.default_path(data, suffix)

        result = self.file_io.write_bytes(path, data)
        if not result.success:
            raise OSError(f"Failed to write diff artifact: {result.error}")

        logging.debug(f"ArtifactWriter - Wrote {result.bytes_written} bytes to {path}")
        return path
