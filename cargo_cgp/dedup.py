"""Deduplication and merging of related CGP diagnostic entries."""

from __future__ import annotations

from typing import List, Optional, Tuple

from .db import DiagnosticDB
from .logging import get_logger
from .models import DiagnosticEntry, FieldFact, NodeKind, ProviderFact, RequirementNode
from .recognizers.generics import contains_generic_argument, normalize_type
from .recognizers.traits import FORM_REQUIRED_FOR, is_can_use, parse_requirement

logger = get_logger("dedup")


def inner_provider_note(provider: str) -> str:
    return f"caused by inner provider `{provider}`"


def is_nested_provider(outer: ProviderFact, inner: ProviderFact) -> bool:
    """True when ``inner`` is a generic argument of ``outer`` for the same component and context."""
    return (
        normalize_type(outer.component) == normalize_type(inner.component)
        and normalize_type(outer.context) == normalize_type(inner.context)
        and contains_generic_argument(outer.provider, inner.provider)
    )


class Deduplicator:
    """Folds redundant entries into the entries that explain them.

    Running it again over its own output changes nothing.
    """

    def run(self, db: DiagnosticDB) -> List[DiagnosticEntry]:
        self._merge_fingerprints(db)
        self._suppress_transitive(db)
        self._merge_nested_providers(db)
        for entry in db.active_entries():
            self._collapse_nested_nodes(entry)
        return db.active_entries()

    def _merge_fingerprints(self, db: DiagnosticDB) -> None:
        for entry in db.all_entries():
            if entry.suppressed:
                continue
            for other in db.find(entry.fingerprint, exclude=entry):
                if other.seq < entry.seq:
                    continue
                logger.debug("Merging diagnostic #%d into #%d by fingerprint", other.seq, entry.seq)
                entry.absorb(other)
                other.suppressed = True

    def _suppress_transitive(self, db: DiagnosticDB) -> None:
        """Hide entries that only restate a field failure reported at the same span.

        An entry is transitive when it has no field fact, no provider fact and
        no "required for" note of its own, and another entry with a field fact
        sits at exactly the same file, line and column.
        """
        field_entries = [entry for entry in db.active_entries() if entry.facts_of(FieldFact)]
        for entry in db.active_entries():
            if entry.facts_of(FieldFact) or _has_delegation_info(entry):
                continue
            for other in field_entries:
                if other is not entry and _same_site(entry, other):
                    logger.debug(
                        "Suppressing diagnostic #%d; explained by the field failure in #%d",
                        entry.seq,
                        other.seq,
                    )
                    entry.suppressed = True
                    break

    def _merge_nested_providers(self, db: DiagnosticDB) -> None:
        changed = True
        while changed:
            changed = False
            active = db.active_entries()
            for outer in active:
                for inner in active:
                    if inner is outer or inner.suppressed or outer.suppressed:
                        continue
                    pair = _nested_pair(outer, inner)
                    if pair is None:
                        continue
                    logger.debug(
                        "Provider `%s` nests `%s`; folding diagnostic #%d into #%d",
                        pair[0].provider,
                        pair[1].provider,
                        inner.seq,
                        outer.seq,
                    )
                    outer.absorb(inner)
                    outer.annotate(inner_provider_note(pair[1].provider))
                    inner.suppressed = True
                    changed = True

    def _collapse_nested_nodes(self, entry: DiagnosticEntry) -> None:
        graph = entry.graph
        changed = True
        while changed:
            changed = False
            providers = [node for node in graph.nodes.values() if _provider_fact(node) is not None]
            for outer in providers:
                for inner in providers:
                    if inner is outer:
                        continue
                    outer_fact, inner_fact = _provider_fact(outer), _provider_fact(inner)
                    if not is_nested_provider(outer_fact, inner_fact):
                        continue
                    note = inner_provider_note(inner_fact.provider)
                    graph.collapse(inner.key, outer.key)
                    outer.annotate(note)
                    entry.annotate(note)
                    changed = True
                    break
                if changed:
                    break


def _provider_fact(node: RequirementNode) -> Optional[ProviderFact]:
    if node.kind == NodeKind.PROVIDER and isinstance(node.fact, ProviderFact):
        return node.fact
    return None


def _has_delegation_info(entry: DiagnosticEntry) -> bool:
    if entry.facts_of(ProviderFact):
        return True
    for diagnostic in entry.diagnostics:
        for child in diagnostic.children:
            requirement = parse_requirement(child.message)
            if (
                requirement is not None
                and requirement.form == FORM_REQUIRED_FOR
                and not is_can_use(requirement.trait_name)
            ):
                return True
    return False


def _same_site(entry: DiagnosticEntry, other: DiagnosticEntry) -> bool:
    mine, theirs = entry.fingerprint, other.fingerprint
    if mine.file is None or theirs.file is None:
        return False
    return (mine.file, mine.line, mine.column) == (theirs.file, theirs.line, theirs.column)


def _nested_pair(outer: DiagnosticEntry, inner: DiagnosticEntry) -> Optional[Tuple[ProviderFact, ProviderFact]]:
    for outer_fact in outer.facts_of(ProviderFact):
        for inner_fact in inner.facts_of(ProviderFact):
            if is_nested_provider(outer_fact, inner_fact):
                return outer_fact, inner_fact
    return None


def deduplicate(db: DiagnosticDB) -> List[DiagnosticEntry]:
    return Deduplicator().run(db)


__all__ = ["Deduplicator", "deduplicate", "inner_provider_note", "is_nested_provider"]
