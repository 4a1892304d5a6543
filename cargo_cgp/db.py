"""Process-scoped store of analyzed CGP diagnostic entries."""

from __future__ import annotations

from typing import Iterator, List, Optional

from .models import DiagnosticEntry, Fingerprint


class DiagnosticDB:
    """Holds the entries produced by one ``cargo check`` run.

    A fresh instance is created per invocation and dropped after rendering;
    nothing is persisted.
    """

    def __init__(self, column_tolerance: int = 2) -> None:
        self.column_tolerance = column_tolerance
        self._entries: List[DiagnosticEntry] = []

    def add(self, entry: DiagnosticEntry) -> DiagnosticEntry:
        self._entries.append(entry)
        self._entries.sort(key=lambda item: item.seq)
        return entry

    def find(self, fingerprint: Fingerprint, *, exclude: Optional[DiagnosticEntry] = None) -> List[DiagnosticEntry]:
        """Return surfaced entries whose fingerprint matches within the column tolerance."""
        return [
            entry
            for entry in self._entries
            if entry is not exclude
            and not entry.suppressed
            and entry.fingerprint.matches(fingerprint, self.column_tolerance)
        ]

    def all_entries(self) -> List[DiagnosticEntry]:
        return list(self._entries)

    def active_entries(self) -> List[DiagnosticEntry]:
        return [entry for entry in self._entries if not entry.suppressed]

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[DiagnosticEntry]:
        return iter(self.all_entries())

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["DiagnosticDB"]
