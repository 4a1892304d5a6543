"""Streaming orchestration of decode, recognition, merging and rendering for one run."""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional, TextIO

from .config import CgpConfig
from .db import DiagnosticDB
from .decoder import DecodedMessage, DecodeError, decode_line
from .dedup import Deduplicator
from .diagnostics import Diagnostic
from .graph import GraphBuilder
from .logging import get_logger
from .models import DiagnosticEntry, EntryMember
from .recognizers import Recognizer
from .render import build_record, format_record, json_envelope, original_text
from .root_cause import RootCauseAnalyzer


class CheckSession:
    """Consumes one ``cargo check`` JSON stream and writes the post-processed output.

    Lines are handled one at a time as they arrive. Diagnostics without CGP
    facts are forwarded at once; CGP entries are held until :meth:`finish`,
    because merging needs every diagnostic of the compilation.
    """

    def __init__(
        self,
        config: CgpConfig,
        *,
        stream: TextIO | None = None,
        recognizer: Recognizer | None = None,
        builder: GraphBuilder | None = None,
        deduplicator: Deduplicator | None = None,
        analyzer: RootCauseAnalyzer | None = None,
    ) -> None:
        self.config = config
        self.stream = stream if stream is not None else sys.stdout
        self.recognizer = recognizer or Recognizer()
        self.builder = builder or GraphBuilder()
        self.deduplicator = deduplicator or Deduplicator()
        self.analyzer = analyzer or RootCauseAnalyzer()
        self.db = DiagnosticDB(column_tolerance=config.column_tolerance)
        self.logger = get_logger("pipeline")
        self._payloads: Dict[int, DecodedMessage] = {}
        self._seq = 0
        self._finished = False
        self.passed_through = 0
        self.skipped_lines = 0

    @property
    def json_mode(self) -> bool:
        return self.config.message_format == "json"

    def feed(self, line: str) -> None:
        """Process one line of cargo output."""
        if self._finished:
            raise RuntimeError("CheckSession.feed() called after finish()")
        try:
            decoded = decode_line(line)
        except DecodeError as exc:
            self.skipped_lines += 1
            if line.strip():
                self.logger.warning("Skipping undecodable line: %s", exc)
            if self.json_mode and line.strip():
                self._emit(line.rstrip("\r\n") + "\n")
            return

        diagnostic = decoded.diagnostic
        if diagnostic is None:
            if self.json_mode:
                self._emit(decoded.raw + "\n")
            else:
                self.logger.debug("Ignoring cargo message '%s'", decoded.reason)
            return

        seq = self._seq
        self._seq += 1
        facts = self.recognizer.recognize(diagnostic) if self.config.enabled else []
        if not facts:
            self._pass_through(decoded, diagnostic)
            return

        graph = self.builder.build(diagnostic, facts, seq)
        entry = DiagnosticEntry(
            members=[EntryMember(seq=seq, diagnostic=diagnostic, facts=tuple(facts))],
            graph=graph,
        )
        self.db.add(entry)
        self._payloads[seq] = decoded
        self.logger.debug("Collected CGP diagnostic #%d with %d fact(s)", seq, len(facts))

    def finish(self) -> List[DiagnosticEntry]:
        """Merge, analyze and write every collected entry; returns the surfaced entries."""
        if self._finished:
            return []
        self._finished = True
        surfaced = self.deduplicator.run(self.db)
        self.logger.debug(
            "%d CGP diagnostic(s) collected, %d surfaced after merging", len(self.db), len(surfaced)
        )
        for entry in sorted(surfaced, key=lambda item: item.seq):
            self.analyzer.apply(entry)
            self._emit(self._render(entry))
        self.db.clear()
        return surfaced

    def _render(self, entry: DiagnosticEntry) -> str:
        try:
            record = build_record(entry)
            if record is None:
                return self._fallback(entry)
            text = format_record(entry, record, show_original=self.config.show_original)
            if self.json_mode:
                return json_envelope(self._payload(entry), record, text) + "\n"
            return text
        except Exception as exc:
            self.logger.warning("Rendering diagnostic #%d failed, using compiler output: %s", entry.seq, exc)
            return self._fallback(entry)

    def _fallback(self, entry: DiagnosticEntry) -> str:
        if self.json_mode:
            return "".join(self._payloads[member.seq].raw + "\n" for member in entry.members)
        return original_text(entry)

    def _payload(self, entry: DiagnosticEntry) -> Dict[str, Any]:
        return self._payloads[entry.seq].payload

    def _pass_through(self, decoded: DecodedMessage, diagnostic: Diagnostic) -> None:
        self.passed_through += 1
        if self.json_mode:
            self._emit(decoded.raw + "\n")
        elif diagnostic.rendered is not None:
            self._emit(diagnostic.rendered)

    def _emit(self, text: Optional[str]) -> None:
        if not text:
            return
        self.stream.write(text)
        self.stream.flush()


__all__ = ["CheckSession"]
