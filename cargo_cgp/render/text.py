"""Plain-text rendering of analyzed entries in a rustc-like layout."""

from __future__ import annotations

from typing import List, Optional

from ..diagnostics import Span
from ..models import DiagnosticEntry, FieldFact
from .records import RenderedDiagnostic, build_record
from .snippet import gutter_width, render_span


def original_text(entry: DiagnosticEntry) -> str:
    """The compiler's own rendering of every diagnostic folded into ``entry``."""
    parts = [diagnostic.rendered or diagnostic.message + "\n" for diagnostic in entry.diagnostics]
    return "".join(parts)


def format_record(entry: DiagnosticEntry, record: RenderedDiagnostic, *, show_original: bool = False) -> str:
    primary = entry.primary.primary_span
    definition = _definition_span(entry)
    width = max([gutter_width(span) for span in (primary, definition) if span is not None] or [1])
    pad = " " * width

    lines: List[str] = [record.header]
    if primary is not None:
        lines.extend(render_span(primary, width=width))
    if definition is not None:
        type_name = _definition_type(entry)
        lines.extend(render_span(definition, label=f"`{type_name}` defined here", width=width))

    note_prefix = f"{pad} = note: "
    indent = " " * len(note_prefix)
    if record.tree:
        lines.append(f"{note_prefix}dependency chain:")
        lines.extend(f"{indent}{line}" for line in record.tree)
    for note in record.notes:
        lines.append(f"{note_prefix}{note}")
    for disclaimer in record.disclaimers:
        lines.append(f"{note_prefix}{disclaimer}")
    for suggestion in record.suggestions:
        lines.append(f"{pad} = help: {suggestion}")

    text = "\n".join(lines) + "\n"
    if show_original:
        text += "\noriginal compiler output:\n" + original_text(entry)
    return text


def render_entry(entry: DiagnosticEntry, *, show_original: bool = False) -> str:
    """Return the synthesized block, or the original text when the entry is undetermined."""
    record = build_record(entry)
    if record is None:
        return original_text(entry)
    return format_record(entry, record, show_original=show_original)


def _definition_fact(entry: DiagnosticEntry) -> Optional[FieldFact]:
    for fact in entry.facts_of(FieldFact):
        if fact.definition is not None and not fact.other_fields_present:
            return fact
    return None


def _definition_span(entry: DiagnosticEntry) -> Optional[Span]:
    fact = _definition_fact(entry)
    return fact.definition if fact is not None else None


def _definition_type(entry: DiagnosticEntry) -> str:
    fact = _definition_fact(entry)
    return fact.type_name if fact is not None else "type"


__all__ = ["format_record", "original_text", "render_entry"]
