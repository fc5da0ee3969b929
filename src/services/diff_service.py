r"""
Line-level diff between two versions of note content.

Lines follow the editor convention used for note content: content is split on
'\n', so "" is a single empty line and a trailing newline yields a final
empty line.

The diff is a Longest Common Subsequence alignment of the two line lists:

- Lines on the alignment are "unchanged"
- Old lines off the alignment are "remove" (no line number, they no longer exist)
- New lines off the alignment are "add"
- line_number is the 1-indexed position in the new content
- Within a changed region, removals come before additions

Identical leading and trailing lines are matched directly. The remaining middle
region is aligned with an O(n*m) table; when either side of it exceeds
max_lines the region is reported as a coarse replace block instead.
"""
import logging
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

# Default cap on lines per side of the changed region aligned exactly
DEFAULT_DIFF_MAX_LINES = 5000

DiffChangeType = Literal["add", "remove", "unchanged"]


@dataclass
class DiffChange:
    """One line of an edit script."""

    type: DiffChangeType
    value: str
    line_number: int | None = None


@dataclass
class VersionDiffResult:
    """Result of comparing two versions of content."""

    additions: int = 0
    deletions: int = 0
    changes: list[DiffChange] = field(default_factory=list)
    exact: bool = True  # False when the coarse fallback was used


class _EditScript:
    """Accumulates changes, counts and the current new-content line number."""

    def __init__(self) -> None:
        self.result = VersionDiffResult()
        self._new_line = 0

    def unchanged(self, line: str) -> None:
        self._new_line += 1
        self.result.changes.append(DiffChange("unchanged", line, self._new_line))

    def add(self, line: str) -> None:
        self._new_line += 1
        self.result.changes.append(DiffChange("add", line, self._new_line))
        self.result.additions += 1

    def remove(self, line: str) -> None:
        self.result.changes.append(DiffChange("remove", line))
        self.result.deletions += 1


def split_lines(content: str) -> list[str]:
    """Split content into lines (an empty string is one empty line)."""
    return content.split("\n")


def _align(old_lines: list[str], new_lines: list[str], script: _EditScript) -> None:
    """
    Emit the LCS edit script for two line lists.

    table[i][j] holds the LCS length of old_lines[i:] and new_lines[j:], so the
    script can be produced by a single forward walk.
    """
    n, m = len(old_lines), len(new_lines)
    table = [[0] * (m + 1) for _ in range(n + 1)]

    for i in range(n - 1, -1, -1):
        row = table[i]
        below = table[i + 1]
        old_line = old_lines[i]
        for j in range(m - 1, -1, -1):
            if old_line == new_lines[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    i = j = 0
    while i < n and j < m:
        if old_lines[i] == new_lines[j]:
            script.unchanged(new_lines[j])
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            script.remove(old_lines[i])
            i += 1
        else:
            script.add(new_lines[j])
            j += 1

    for line in old_lines[i:]:
        script.remove(line)
    for line in new_lines[j:]:
        script.add(line)


def compare_versions(
    old_content: str,
    new_content: str,
    max_lines: int = DEFAULT_DIFF_MAX_LINES,
) -> VersionDiffResult:
    """
    Compute a line-level diff from old_content to new_content.

    Args:
        old_content: Content of the earlier version.
        new_content: Content of the later version.
        max_lines: Largest number of changed lines per side aligned exactly.
            Bigger regions are emitted as all-removed then all-added lines.

    Returns:
        VersionDiffResult with additions/deletions counts and the ordered
        changes. Replaying the "add" and "unchanged" values in order, joined
        with '\n', reproduces new_content.
    """
    old_lines = split_lines(old_content)
    new_lines = split_lines(new_content)

    shortest = min(len(old_lines), len(new_lines))
    prefix = 0
    while prefix < shortest and old_lines[prefix] == new_lines[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < shortest - prefix
        and old_lines[-1 - suffix] == new_lines[-1 - suffix]
    ):
        suffix += 1

    old_middle = old_lines[prefix:len(old_lines) - suffix]
    new_middle = new_lines[prefix:len(new_lines) - suffix]

    script = _EditScript()
    for line in new_lines[:prefix]:
        script.unchanged(line)

    if len(old_middle) > max_lines or len(new_middle) > max_lines:
        logger.warning(
            "Changed region too large for exact diff (%d old / %d new lines, max %d); "
            "using block diff",
            len(old_middle),
            len(new_middle),
            max_lines,
        )
        script.result.exact = False
        for line in old_middle:
            script.remove(line)
        for line in new_middle:
            script.add(line)
    else:
        _align(old_middle, new_middle, script)

    for line in new_lines[len(new_lines) - suffix:]:
        script.unchanged(line)

    return script.result
