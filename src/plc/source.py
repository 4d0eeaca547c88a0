"""Source text representation and span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range of character offsets within a source file."""

    file: str
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.file}@{self.start}"


class SourceFile:
    """Source text with line/column lookup for diagnostics."""

    def __init__(self, content: str, name: str = "<stdin>") -> None:
        self.name = name
        self.content = content
        self.lines = content.split("\n")
        self._line_starts = [0]
        for i, ch in enumerate(content):
            if ch == "\n":
                self._line_starts.append(i + 1)

    @classmethod
    def from_path(cls, path: Path) -> SourceFile:
        return cls(path.read_text(encoding="utf-8"), str(path))

    def location(self, offset: int) -> tuple[int, int]:
        """Return the 1-indexed (line, column) of a character offset."""
        offset = max(0, min(offset, len(self.content)))
        lo, hi = 0, len(self._line_starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._line_starts[mid] <= offset:
                lo = mid
            else:
                hi = mid - 1
        return lo + 1, offset - self._line_starts[lo] + 1

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""

    def span_text(self, span: Span) -> str:
        """Extract the text covered by a span."""
        return self.content[span.start:span.end]
