"""Rendering of analyzed CGP diagnostics as text or structured records."""

from .records import RenderedDiagnostic, RenderedSpan, build_record, json_envelope
from .text import format_record, original_text, render_entry

__all__ = [
    "RenderedDiagnostic",
    "RenderedSpan",
    "build_record",
    "format_record",
    "json_envelope",
    "original_text",
    "render_entry",
]
