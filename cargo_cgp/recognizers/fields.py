"""Missing-field recognition from ``HasField<Symbol<N, Chars<...>>>`` requirements."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from ..diagnostics import Diagnostic
from ..models import FieldFact
from .base import Extractor
from .generics import generic_body, split_top_level, strip_module_paths

PLACEHOLDER = "�"

_OTHER_IMPLS_MARKERS = (
    "but trait `HasField",
    "the following other types implement trait",
)
_TARGET_PATTERNS = (
    re.compile(r"is not implemented for `(?P<type>[^`]+)`"),
    re.compile(r"the trait bound `(?P<type>[^`]+?):\s*HasField"),
    re.compile(r"required for `(?P<type>[^`]+)` to implement `HasField"),
    re.compile(r"is implemented for `(?P<type>[^`]+)`"),
)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class DecodedSymbol:
    """Characters recovered from a type-level ``Symbol`` encoding."""

    chars: List[str]
    expected_length: Optional[int]
    has_placeholder: bool
    truncated: bool

    @property
    def name(self) -> str:
        return "".join(self.chars)

    @property
    def is_complete(self) -> bool:
        return (
            not self.has_placeholder
            and not self.truncated
            and self.expected_length is not None
            and len(self.chars) == self.expected_length
        )


def decode_symbol(text: str) -> Optional[DecodedSymbol]:
    """Decode the first ``Symbol<N, Chars<...>>`` found in ``text``.

    Each ``Chars<'c', rest>`` contributes ``c``; ``Chars<_, rest>`` contributes
    a placeholder; ``Nil`` ends the list and ``...`` marks a compiler-shortened
    tail. Nothing is padded or guessed.
    """
    body = generic_body(strip_module_paths(text), "Symbol<")
    if body is None:
        return None
    args = split_top_level(body)
    if not args:
        return None
    try:
        expected: Optional[int] = int(args[0])
    except ValueError:
        expected = None

    chars: List[str] = []
    has_placeholder = False
    truncated = True
    rest = args[1] if len(args) > 1 else "..."
    while True:
        rest = rest.strip()
        if rest == "Nil":
            truncated = False
            break
        if not rest.startswith("Chars<"):
            break
        inner = generic_body(rest, "Chars<")
        parts = split_top_level(inner or "")
        if not parts:
            break
        char = _decode_char(parts[0])
        if char is None:
            has_placeholder = True
            chars.append(PLACEHOLDER)
        else:
            chars.append(char)
        if len(parts) < 2:
            break
        rest = parts[1]
    return DecodedSymbol(
        chars=chars,
        expected_length=expected,
        has_placeholder=has_placeholder,
        truncated=truncated,
    )


def _decode_char(token: str) -> Optional[str]:
    token = token.strip()
    if len(token) >= 3 and token[0] == "'" and token[-1] == "'":
        inner = token[1:-1]
        if inner.startswith("\\") and len(inner) == 2:
            return _ESCAPES.get(inner[1], inner[1])
        if len(inner) == 1:
            return inner
    return None


def find_target_type(text: str) -> Optional[str]:
    text = strip_module_paths(text)
    for pattern in _TARGET_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group("type").strip()
    return None


class FieldExtractor(Extractor):
    """Emits a ``FieldFact`` for an unsatisfied ``HasField`` requirement."""

    name = "field"

    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[FieldFact]:
        # Only the text before "but trait ..." describes the missing field.
        text = message.message.split("but trait", 1)[0]
        if "HasField<" not in text or "Symbol<" not in text:
            return None
        symbol = decode_symbol(text[text.find("HasField<") :])
        if symbol is None:
            return None
        type_name = find_target_type(text)
        if type_name is None:
            return None
        other_fields = any(
            marker in line for line in root.iter_messages() for marker in _OTHER_IMPLS_MARKERS
        )
        definition = message.spans[0] if message is not root and message.spans else None
        return FieldFact(
            type_name=type_name,
            field_name=symbol.name,
            is_complete=symbol.is_complete,
            has_placeholder=symbol.has_placeholder,
            expected_length=symbol.expected_length,
            other_fields_present=other_fields,
            definition=definition,
        )


__all__ = ["DecodedSymbol", "FieldExtractor", "PLACEHOLDER", "decode_symbol", "find_target_type"]
