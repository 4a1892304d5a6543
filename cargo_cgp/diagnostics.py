"""Typed view of the rustc JSON diagnostic schema emitted by ``cargo --message-format=json``."""

from __future__ import annotations

from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict

LEVEL_ERROR = "error"
LEVEL_WARNING = "warning"
LEVEL_NOTE = "note"
LEVEL_HELP = "help"
LEVEL_FAILURE_NOTE = "failure-note"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class DiagnosticCode(_WireModel):
    """Error code attached to a diagnostic (e.g. ``E0277``)."""

    code: str
    explanation: Optional[str] = None


class SpanLine(_WireModel):
    """One line of source text covered by a span, with its highlighted columns."""

    text: str
    highlight_start: int
    highlight_end: int


class SpanExpansion(_WireModel):
    """Macro backtrace entry for spans produced by macro expansion."""

    span: "Span"
    macro_decl_name: str
    def_site_span: Optional["Span"] = None


class Span(_WireModel):
    """Source location referenced by a diagnostic."""

    file_name: str
    byte_start: int
    byte_end: int
    line_start: int
    line_end: int
    column_start: int
    column_end: int
    is_primary: bool
    text: List[SpanLine] = []
    label: Optional[str] = None
    suggested_replacement: Optional[str] = None
    suggestion_applicability: Optional[str] = None
    expansion: Optional[SpanExpansion] = None

    @property
    def location(self) -> str:
        return f"{self.file_name}:{self.line_start}:{self.column_start}"


class Diagnostic(_WireModel):
    """A compiler diagnostic with its nested help/note children."""

    message: str
    code: Optional[DiagnosticCode] = None
    level: str
    spans: List[Span] = []
    children: List["Diagnostic"] = []
    rendered: Optional[str] = None

    @property
    def code_name(self) -> Optional[str]:
        return self.code.code if self.code is not None else None

    @property
    def primary_span(self) -> Optional[Span]:
        for span in self.spans:
            if span.is_primary:
                return span
        return None

    def iter_messages(self) -> Iterator[str]:
        """Yield this diagnostic's message followed by every descendant message."""
        yield self.message
        for child in self.children:
            yield from child.iter_messages()


SpanExpansion.model_rebuild()
Span.model_rebuild()
Diagnostic.model_rebuild()


__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "LEVEL_ERROR",
    "LEVEL_FAILURE_NOTE",
    "LEVEL_HELP",
    "LEVEL_NOTE",
    "LEVEL_WARNING",
    "Span",
    "SpanExpansion",
    "SpanLine",
]
