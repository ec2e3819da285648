"""Source text and span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Span:
    """A range within a source file. Lines and columns are 1-indexed, inclusive."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def point(cls, file: str, line: int, col: int) -> Span:
        return cls(file, line, col, line, col)

    def through(self, end: Span) -> Span:
        """Return the span running from the start of self to the end of `end`."""
        return Span(self.file, self.start_line, self.start_col, end.end_line, end.end_col)

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"


class SourceFile:
    """Source text with line access, either loaded from disk or given directly."""

    def __init__(self, content: str, name: str = "<stdin>") -> None:
        self.name = name
        self.content = content
        self.lines = content.splitlines()

    @classmethod
    def load(cls, path: Path) -> SourceFile:
        return cls(path.read_text(encoding="utf-8"), str(path))

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""

