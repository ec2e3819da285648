"""Diagnostics, their Rust-style colored rendering, and compile errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from iku.source import SourceFile, Span
    from iku.tokens import Token


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"

# Error codes
LEX_ERROR = "E100"
UNEXPECTED_TOKEN = "E200"
UNEXPECTED_EOF = "E201"
CHAINED_COMPARISON = "E202"
NESTING_TOO_DEEP = "E203"

# Warning codes
NO_SOURCES = "W001"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str = ""


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors.

    Source lines are looked up in the registered ``SourceFile`` objects, keyed
    by the file name recorded in each span. Spans whose file was never
    registered are rendered without the source excerpt.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, SourceFile] = {}

    def add_source(self, source: SourceFile) -> None:
        self._sources[source.name] = source

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        source = self._sources.get(filename)
        if source is None or not 1 <= line_num <= len(source.lines):
            return None
        return source.line_at(line_num)

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        color = _COLORS[diag.severity]
        bar = f"  {self._c(_BLUE)}   |{self._c(_RESET)}"

        # Header: error[E200]: message
        lines.append(
            f"{self._c(color)}{diag.severity.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
            lines.append(bar)

            source_line = self._get_source_line(span.file, span.start_line)
            if source_line is not None:
                gutter = f"{span.start_line:>4}"
                lines.append(f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}")
                if span.start_line == span.end_line:
                    caret_len = max(1, span.end_col - span.start_col + 1)
                else:
                    caret_len = max(1, len(source_line) - span.start_col + 1)
                padding = " " * (span.start_col - 1)
                lines.append(
                    f"{bar} {padding}{self._c(color)}{'^' * caret_len}{self._c(_RESET)}"
                )

            if label.message:
                lines.append(f"{bar}   {self._c(color)}{label.message}{self._c(_RESET)}")

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class CompileError(Exception):
    """Compilation error carrying one or more diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")


class LexError(CompileError):
    """Raised by the lexer at the first unrecognized or malformed input."""

    def __init__(self, message: str, span: Span) -> None:
        self.span = span
        super().__init__([
            Diagnostic(Severity.ERROR, LEX_ERROR, message, [DiagnosticLabel(span)]),
        ])


class ParseError(CompileError):
    """Raised by the parser at the first token that fits no grammar alternative."""

    def __init__(
        self,
        message: str,
        token: Token,
        code: str = UNEXPECTED_TOKEN,
        notes: list[str] | None = None,
    ) -> None:
        self.token = token
        self.span = token.span
        super().__init__([
            Diagnostic(
                Severity.ERROR, code, message,
                labels=[DiagnosticLabel(token.span)],
                notes=notes or [],
            ),
        ])
