"""
Text snapshot diff engine.

Provides line-level comparison with support for:
- Shortest edit script computation (Myers)
- Whitespace handling options
- Case sensitivity
- Carriage return normalization
- Unified-style rendering with +/- prefixes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Optional, Sequence

from snapdiff.core.models import Edit, EditType, TextDiffResult
from snapdiff.services.file_io import FileIOService


class WhitespaceMode(Enum):
    """Whitespace handling modes."""
    EXACT = auto()            # Compare whitespace exactly
    IGNORE_TRAILING = auto()  # Ignore trailing whitespace
    IGNORE_LEADING = auto()   # Ignore leading whitespace
    IGNORE_ALL = auto()       # Ignore all whitespace
    NORMALIZE = auto()        # Normalize whitespace (collapse multiple to single)


@dataclass
class TextCompareOptions:
    """Options for text comparison."""
    ignore_case: bool = False
    whitespace_mode: WhitespaceMode = WhitespaceMode.EXACT
    ignore_line_endings: bool = False

    @property
    def is_exact(self) -> bool:
        return (
            not self.ignore_case
            and self.whitespace_mode == WhitespaceMode.EXACT
            and not self.ignore_line_endings
        )

    def normalize_line(self, line: str) -> str:
        """Normalize a line according to options."""
        result = line

        # Lines are split on \n, so only a trailing \r can remain
        if self.ignore_line_endings:
            result = result.rstrip('\r')

        if self.whitespace_mode == WhitespaceMode.IGNORE_TRAILING:
            result = result.rstrip()
        elif self.whitespace_mode == WhitespaceMode.IGNORE_LEADING:
            result = result.lstrip()
        elif self.whitespace_mode == WhitespaceMode.IGNORE_ALL:
            result = ''.join(result.split())
        elif self.whitespace_mode == WhitespaceMode.NORMALIZE:
            result = ' '.join(result.split())

        if self.ignore_case:
            result = result.lower()

        return result


class _TraceArena:
    """
    Append-only store of search frontiers, one per edit distance.

    Entry ``d`` is the furthest-reaching x per diagonal as it stood at the
    start of step ``d``. Entries are tuples, so later search steps can never
    alias or mutate a recorded frontier.
    """

    def __init__(self, offset: int):
        self.offset = offset
        self._frontiers: list[tuple[int, ...]] = []

    def push(self, frontier: Sequence[int]) -> None:
        self._frontiers.append(tuple(frontier))

    def x_at(self, depth: int, k: int) -> int:
        return self._frontiers[depth][k + self.offset]

    def __len__(self) -> int:
        return len(self._frontiers)


def _follows_insertion(k: int, d: int, x_of: Callable[[int], int]) -> bool:
    """
    Decide whether diagonal ``k`` at distance ``d`` is reached from ``k + 1``.

    Shared by the forward search and the backtrace so both always agree on
    the predecessor diagonal.
    """
    return k == -d or (k != d and x_of(k - 1) < x_of(k + 1))


def myers_diff(a: Sequence[str], b: Sequence[str]) -> list[Edit]:
    """
    Compute a shortest edit script turning ``a`` into ``b``.

    Returns the script in forward order. Deletions are preferred over
    insertions when both reach the same point, so a replaced block renders
    its removed lines before its added lines.
    """
    n = len(a)
    m = len(b)
    max_d = n + m

    if max_d == 0:
        return []

    if n == m and all(left == right for left, right in zip(a, b)):
        return [Edit(EditType.EQUAL, line) for line in a]

    offset = max_d + 1
    v = [-1] * (2 * max_d + 3)
    v[1 + offset] = 0
    arena = _TraceArena(offset)

    for d in range(max_d + 1):
        arena.push(v)

        for k in range(-d, d + 1, 2):
            if _follows_insertion(k, d, lambda diag: v[diag + offset]):
                x = v[k + 1 + offset]
            else:
                x = v[k - 1 + offset] + 1
            y = x - k

            # Follow the snake
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1

            v[k + offset] = x

            if x >= n and y >= m:
                logging.debug(f"myers_diff - edit distance {d} for {n}x{m} lines")
                return _backtrace(arena, a, b)

    # The d == n + m step always reaches the end
    raise AssertionError("myers_diff - search exhausted without reaching the end")


def _backtrace(arena: _TraceArena, a: Sequence[str], b: Sequence[str]) -> list[Edit]:
    """Rebuild the edit script by walking the recorded frontiers backwards."""
    edits: list[Edit] = []
    x = len(a)
    y = len(b)

    for d in range(len(arena) - 1, 0, -1):
        k = x - y
        if _follows_insertion(k, d, lambda diag: arena.x_at(d, diag)):
            prev_k = k + 1
        else:
            prev_k = k - 1

        prev_x = arena.x_at(d, prev_k)
        prev_y = prev_x - prev_k

        # Snake back to the end of the previous move
        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            edits.append(Edit(EditType.EQUAL, a[x]))

        if prev_k == k + 1:
            y -= 1
            edits.append(Edit(EditType.INSERT, b[y]))
        else:
            x -= 1
            edits.append(Edit(EditType.DELETE, a[x]))

    # d == 0 contributes only the leading run of equal lines
    while x > 0 and y > 0:
        x -= 1
        y -= 1
        edits.append(Edit(EditType.EQUAL, a[x]))

    edits.reverse()
    return edits


def render_edits(edits: Sequence[Edit]) -> str:
    """Render an edit script as newline-joined prefixed lines."""
    return '\n'.join(edit.render() for edit in edits)


class TextDiffEngine:
    """
    Engine for comparing text snapshots.

    Inputs are split on newline boundaries; an empty input is a single
    empty line, never zero lines.
    """

    def __init__(self, options: Optional[TextCompareOptions] = None):
        self.options = options or TextCompareOptions()

    def compare(self, before: str, after: str) -> TextDiffResult:
        """
        Compare two texts line by line.

        Args:
            before: Original text
            after: Modified text

        Returns:
            TextDiffResult with rendered diff and counts
        """
        left = before.split('\n')
        right = after.split('\n')

        edits = self._compute_edits(left, right)
        return self._build_result(edits)

    def compare_lines(
        self,
        left_lines: Sequence[str],
        right_lines: Sequence[str]
    ) -> TextDiffResult:
        """Compare two already-split line sequences."""
        edits = self._compute_edits(list(left_lines), list(right_lines))
        return self._build_result(edits)

    def compare_files(
        self,
        left_path: Path | str,
        right_path: Path | str,
        file_io: Optional[FileIOService] = None
    ) -> TextDiffResult:
        """
        Compare two text files by path.

        Encodings are detected per file. Raises OSError if either file
        cannot be read.
        """
        file_io = file_io or FileIOService()
        before = file_io.read_text(left_path)
        after = file_io.read_text(right_path)
        return self.compare(before, after)

    def _compute_edits(self, left: list[str], right: list[str]) -> list[Edit]:
        """Run the edit script search, honouring normalization options."""
        if self.options.is_exact:
            return myers_diff(left, right)

        left_normalized = [self.options.normalize_line(line) for line in left]
        right_normalized = [self.options.normalize_line(line) for line in right]
        normalized_edits = myers_diff(left_normalized, right_normalized)

        # Map normalized lines back to the original text
        edits: list[Edit] = []
        i = 0
        j = 0
        for edit in normalized_edits:
            if edit.edit_type == EditType.EQUAL:
                edits.append(Edit(EditType.EQUAL, left[i]))
                i += 1
                j += 1
            elif edit.edit_type == EditType.DELETE:
                edits.append(Edit(EditType.DELETE, left[i]))
                i += 1
            else:
                edits.append(Edit(EditType.INSERT, right[j]))
                j += 1
        return edits

    def _build_result(self, edits: list[Edit]) -> TextDiffResult:
        """Aggregate counts and render the diff."""
        additions = 0
        removals = 0
        unchanged = 0

        for edit in edits:
            if edit.edit_type == EditType.EQUAL:
                unchanged += 1
            elif edit.edit_type == EditType.INSERT:
                additions += 1
            elif edit.edit_type == EditType.DELETE:
                removals += 1

        return TextDiffResult(
            diff=render_edits(edits),
            additions=additions,
            removals=removals,
            unchanged=unchanged,
            changed=additions > 0 or removals > 0,
            edits=tuple(edits),
        )
