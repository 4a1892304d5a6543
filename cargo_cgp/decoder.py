"""Line-by-line decoder for cargo's JSON message stream."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .diagnostics import Diagnostic

REASON_COMPILER_MESSAGE = "compiler-message"
REASON_COMPILER_ARTIFACT = "compiler-artifact"
REASON_BUILD_SCRIPT = "build-script-executed"
REASON_BUILD_FINISHED = "build-finished"

# Bare rustc output (``rustc --error-format=json``) carries no cargo envelope.
REASON_BARE_DIAGNOSTIC = "diagnostic"


class DecodeError(ValueError):
    """Raised when a line is not valid JSON or does not match the diagnostic schema."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


@dataclass(frozen=True)
class DecodedMessage:
    """One decoded line of cargo output.

    ``diagnostic`` is populated for compiler messages only; every other reason
    keeps just the raw payload so it can be forwarded untouched.
    """

    reason: str
    raw: str
    payload: Dict[str, Any]
    diagnostic: Optional[Diagnostic] = None

    @property
    def is_diagnostic(self) -> bool:
        return self.diagnostic is not None


def decode_line(line: str) -> DecodedMessage:
    """Decode a single newline-delimited JSON message."""
    raw = line.rstrip("\r\n")
    if not raw.strip():
        raise DecodeError("empty line", line)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc.msg}", line) from exc
    if not isinstance(payload, dict):
        raise DecodeError("expected a JSON object", line)

    reason = payload.get("reason")
    if reason is None:
        if "message" in payload and "level" in payload:
            diagnostic = _validate_diagnostic(payload, line)
            return DecodedMessage(
                reason=REASON_BARE_DIAGNOSTIC, raw=raw, payload=payload, diagnostic=diagnostic
            )
        raise DecodeError("object has neither a cargo reason nor a diagnostic shape", line)
    if not isinstance(reason, str):
        raise DecodeError("cargo reason must be a string", line)

    if reason == REASON_COMPILER_MESSAGE:
        body = payload.get("message")
        if not isinstance(body, dict):
            raise DecodeError("compiler-message is missing its diagnostic body", line)
        diagnostic = _validate_diagnostic(body, line)
        return DecodedMessage(reason=reason, raw=raw, payload=payload, diagnostic=diagnostic)

    return DecodedMessage(reason=reason, raw=raw, payload=payload)


def _validate_diagnostic(data: Dict[str, Any], line: str) -> Diagnostic:
    try:
        return Diagnostic.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"unexpected diagnostic schema: {exc.error_count()} error(s)", line) from exc


__all__ = [
    "DecodeError",
    "DecodedMessage",
    "REASON_BARE_DIAGNOSTIC",
    "REASON_BUILD_FINISHED",
    "REASON_BUILD_SCRIPT",
    "REASON_COMPILER_ARTIFACT",
    "REASON_COMPILER_MESSAGE",
    "decode_line",
]
