"""Plain-text rendering of labeled source spans in rustc's layout."""

from __future__ import annotations

from typing import List, Optional

from ..diagnostics import Span


def gutter_width(span: Span) -> int:
    last_line = span.line_start + max(len(span.text), 1) - 1
    return len(str(last_line))


def render_span(span: Span, *, label: Optional[str] = None, width: Optional[int] = None) -> List[str]:
    """Return the ``-->`` header, source lines and caret markers for ``span``.

    ``label`` overrides the span's own label. Spans without source text render
    only their location line.
    """
    width = width or gutter_width(span)
    pad = " " * width
    lines = [f"{pad}--> {span.file_name}:{span.line_start}:{span.column_start}"]
    if not span.text:
        return lines
    text_label = span.label if label is None else label
    lines.append(f"{pad} |")
    last = len(span.text) - 1
    for offset, source in enumerate(span.text):
        number = str(span.line_start + offset).rjust(width)
        lines.append(f"{number} | {source.text}".rstrip())
        start = max(source.highlight_start, 1)
        end = max(source.highlight_end, start + 1)
        marker = " " * (start - 1) + "^" * (end - start)
        if offset == last and text_label:
            marker += f" {text_label}"
        lines.append(f"{pad} | {marker}")
    lines.append(f"{pad} |")
    return lines


__all__ = ["gutter_width", "render_span"]
