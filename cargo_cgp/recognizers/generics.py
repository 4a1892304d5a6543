"""Bracket-aware helpers for the Rust type expressions that appear in diagnostic text.

These helpers are deliberately shallow: they understand angle/paren/square
nesting well enough to split generic argument lists, but they are not a Rust
type grammar. Identity normalization built on them is best-effort.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

WILDCARD = "*"

_MODULE_PATH = re.compile(r"\b(?:[A-Za-z_][A-Za-z0-9_]*::)+(?=[A-Za-z_])")
_WHITESPACE = re.compile(r"\s+")
_OPENERS = {"<": ">", "(": ")", "[": "]"}
_CLOSERS = {">", ")", "]"}


def _is_arrow(text: str, index: int) -> bool:
    return text[index] == ">" and index > 0 and text[index - 1] == "-"


def find_matching_angle(text: str, open_index: int) -> Optional[int]:
    """Return the index of the ``>`` closing the ``<`` at ``open_index``."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "<":
            depth += 1
        elif char == ">" and not _is_arrow(text, index):
            depth -= 1
            if depth == 0:
                return index
    return None


def generic_body(text: str, marker: str) -> Optional[str]:
    """Return the bracketed argument text following ``marker`` (which must end in ``<``).

    An unbalanced tail, as produced when rustc truncates a long type, yields the
    remainder of the text with trailing closers and backticks trimmed.
    """
    start = text.find(marker)
    if start == -1 or not marker.endswith("<"):
        return None
    open_index = start + len(marker) - 1
    close_index = find_matching_angle(text, open_index)
    if close_index is None:
        tail = text[open_index + 1 :]
        return tail.split("`", 1)[0].rstrip(">").strip()
    return text[open_index + 1 : close_index].strip()


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split ``text`` on ``separator`` occurrences that are not nested in brackets."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    in_char = False
    for index, char in enumerate(text):
        if char == "'" and _is_char_literal_start(text, index):
            in_char = not in_char
        elif in_char and char == "'":
            in_char = False
        if not in_char:
            if char in _OPENERS:
                depth += 1
            elif char in _CLOSERS and not _is_arrow(text, index):
                depth = max(depth - 1, 0)
            elif char == separator and depth == 0:
                parts.append("".join(current).strip())
                current = []
                continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def _is_char_literal_start(text: str, index: int) -> bool:
    # A char literal looks like 'x' or '\n'; a lifetime ('a) has no closing quote nearby.
    if index + 2 < len(text) and text[index + 2] == "'":
        return True
    return index + 3 < len(text) and text[index + 1] == "\\" and text[index + 3] == "'"


def split_generic(type_text: str) -> Tuple[str, List[str], str]:
    """Split ``Head<A, B>rest`` into ``("Head", ["A", "B"], "rest")``.

    Types without a generic argument list return an empty argument list.
    """
    text = type_text.strip()
    open_index = text.find("<")
    if open_index == -1:
        return text, [], ""
    close_index = find_matching_angle(text, open_index)
    if close_index is None:
        inner = text[open_index + 1 :].rstrip(">")
        return text[:open_index].strip(), split_top_level(inner), ""
    head = text[:open_index].strip()
    args = split_top_level(text[open_index + 1 : close_index])
    return head, args, text[close_index + 1 :]


def strip_module_paths(text: str) -> str:
    """Remove module qualifiers (``cgp::prelude::HasField`` -> ``HasField``)."""
    return _MODULE_PATH.sub("", text)


def normalize_type(text: str) -> str:
    """Return the identity form of a type or trait mention.

    Module paths are stripped, whitespace is canonicalized and any generic
    argument list abbreviated with ``...`` collapses to ``<*>``. Two mentions
    refer to the same entity iff their normalized forms are equal, which keeps
    unification conservative: ``Foo<...>`` never matches ``Foo<A, B>``.
    """
    cleaned = _WHITESPACE.sub(" ", strip_module_paths(text)).strip().strip("`")
    return _normalize(cleaned)


def _normalize(text: str) -> str:
    if not text:
        return text
    head, args, rest = split_generic(text)
    if not args and "<" not in text:
        return text
    if any(arg.strip() in {"...", "…"} for arg in args):
        body = WILDCARD
    else:
        body = ", ".join(_normalize(arg.strip()) for arg in args)
    suffix = _normalize(rest.strip()) if rest.strip() else ""
    if suffix and not suffix.startswith(("::", ">")):
        suffix = " " + suffix
    return f"{head}<{body}>{suffix}"


def contains_generic_argument(outer: str, inner: str) -> bool:
    """Return True when ``inner`` appears as a bracket-delimited argument anywhere in ``outer``.

    ``RectangleArea`` is contained in ``ScaledArea<RectangleArea>`` and in
    ``Wrap<Foo, Scaled<RectangleArea>>`` but not in ``RectangleAreaExt`` or in
    ``RectangleArea`` itself.
    """
    target = normalize_type(inner)
    if not target:
        return False
    _, args, _ = split_generic(normalize_type(outer))
    pending = list(args)
    while pending:
        arg = pending.pop()
        if normalize_type(arg) == target:
            return True
        _, nested, _ = split_generic(arg)
        pending.extend(nested)
    return False


def backticked(text: str) -> List[str]:
    """Return every ``...`` quoted segment in message order."""
    return re.findall(r"`([^`]*)`", text)


__all__ = [
    "WILDCARD",
    "backticked",
    "contains_generic_argument",
    "find_matching_angle",
    "generic_body",
    "normalize_type",
    "split_generic",
    "split_top_level",
    "strip_module_paths",
]
