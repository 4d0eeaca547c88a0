"""Stage errors and Rust-style colored diagnostic rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from plc.source import SourceFile, Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str
    style: str = "primary"  # "primary" or "secondary"


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, SourceFile | None] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def register(self, source: SourceFile) -> None:
        """Make in-memory source text available for line excerpts."""
        self._sources[source.name] = source

    def _get_source(self, filename: str) -> SourceFile | None:
        """Load and cache a source file by name."""
        if filename not in self._sources:
            try:
                path = Path(filename)
                self._sources[filename] = (
                    SourceFile.from_path(path) if path.is_file() else None
                )
            except (OSError, UnicodeDecodeError):
                self._sources[filename] = None
        return self._sources[filename]

    def render(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E042]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        for label in diag.labels:
            span = label.span
            source = self._get_source(span.file)
            if source is None:
                lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
                continue

            line_num, col = source.location(span.start)
            lines.append(
                f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span.file}:{line_num}:{col}"
            )
            gutter = f"{line_num:>4}"
            lines.append(f"  {self._c(_BLUE)}     |{self._c(_RESET)}")
            lines.append(
                f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source.line_at(line_num)}"
            )

            # Carets stop at the end of the first line of the span
            end_line, end_col = source.location(max(span.start, span.end - 1))
            if end_line != line_num:
                end_col = max(col, len(source.line_at(line_num)))
            caret_len = max(1, end_col - col + 1)
            padding = " " * (col - 1)
            lines.append(
                f"  {self._c(_BLUE)}     |{self._c(_RESET)} "
                f"{padding}{self._c(color)}{'^' * caret_len}{self._c(_RESET)}"
            )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}     |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


# ── Stage errors ─────────────────────────────────────────────────


class PlcError(Exception):
    """Base class for the fail-fast error of a single pipeline stage."""

    code = "E000"

    def __init__(
        self,
        message: str,
        offset: int | None = None,
        *,
        filename: str = "<stdin>",
        code: str | None = None,
        length: int = 1,
    ) -> None:
        self.message = message
        self.offset = offset
        self.filename = filename
        if code is not None:
            self.code = code
        labels = []
        if offset is not None:
            span = Span(filename, offset, offset + max(1, length))
            labels.append(DiagnosticLabel(span=span, message=""))
        self.diagnostic = Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=message,
            labels=labels,
        )
        super().__init__(message if offset is None else f"{message} (offset {offset})")


class LexError(PlcError):
    """Invalid character sequence; offset points at the offending character."""

    code = "E100"


class ParseError(PlcError):
    """Grammar violation; offset points at the token actually found."""

    code = "E200"


class AnalysisError(PlcError):
    """Scope or type rule violation found by the analyzer."""

    code = "E300"


class FaultKind(Enum):
    TYPE_MISMATCH = "E400"
    UNDEFINED_BINDING = "E401"
    DIVISION_BY_ZERO = "E402"
    INVALID_ASSIGNMENT_TARGET = "E403"
    MISSING_MAIN = "E404"


class RuntimeFault(PlcError):
    """Unrecoverable failure while executing a program."""

    def __init__(
        self,
        kind: FaultKind,
        message: str,
        offset: int | None = None,
        *,
        filename: str = "<stdin>",
    ) -> None:
        self.kind = kind
        super().__init__(message, offset, filename=filename, code=kind.value)
