"""Structured render records for analyzed CGP diagnostic entries."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..models import (
    ComponentFact,
    DiagnosticEntry,
    FieldFact,
    NodeKind,
    ProviderFact,
    RequirementNode,
)
from ..recognizers.traits import provider_trait_for
from .vocabulary import HIDDEN_NAME, describe_node, plain_trait, scrub_plumbing, summarize

ROOT_CAUSE_MARK = "✗"
REPEAT_MARK = "(*)"


@dataclass
class RenderedSpan:
    """Span coordinates a presentation layer can use to add styling."""

    file: str
    line: int
    column: int
    label: Optional[str] = None
    role: str = "primary"


@dataclass
class RenderedDiagnostic:
    """Everything the text renderer prints for one entry, in structured form."""

    level: str
    code: Optional[str]
    summary: str
    root_causes: List[str] = field(default_factory=list)
    tree: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    disclaimers: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    spans: List[RenderedSpan] = field(default_factory=list)
    merged: int = 1

    @property
    def header(self) -> str:
        code = f"[{self.code}]" if self.code else ""
        return f"{self.level}{code}: {self.summary}"

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["header"] = self.header
        return payload


def build_record(entry: DiagnosticEntry) -> Optional[RenderedDiagnostic]:
    """Return the record for ``entry``, or ``None`` when it must fall back to original text."""
    if entry.undetermined or not entry.root_causes:
        return None
    summary = summarize(entry.root_causes[0])
    if summary is None:
        return None
    primary = entry.primary
    record = RenderedDiagnostic(
        level=primary.level,
        code=primary.code_name,
        summary=summary,
        root_causes=[describe_node(node) for node in entry.root_causes],
        tree=dependency_tree(entry),
        merged=len(entry.members),
    )
    record.notes = _entry_notes(entry)
    record.disclaimers = disclaimers(entry)
    record.suggestions = suggestions(entry)
    record.spans = _spans(entry)
    return record


def dependency_tree(entry: DiagnosticEntry) -> List[str]:
    """Walk the graph from its roots down to the leaves as box-drawn tree lines."""
    graph = entry.graph
    causes = {node.key for node in entry.root_causes}
    lines: List[str] = []
    visited: Set[str] = set()

    def label(node: RequirementNode) -> str:
        text = describe_node(node)
        if node.key in causes:
            text = f"{ROOT_CAUSE_MARK} {text}"
        if node.annotations:
            text += " (" + "; ".join(node.annotations) + ")"
        return scrub_plumbing(text)

    def walk(node: RequirementNode, prefix: str, connector: str, child_prefix: str) -> None:
        if node.key in visited:
            lines.append(f"{prefix}{connector}{label(node)} {REPEAT_MARK}")
            return
        visited.add(node.key)
        lines.append(f"{prefix}{connector}{label(node)}")
        children = graph.successors(node.key)
        for index, child in enumerate(children):
            last = index == len(children) - 1
            walk(child, prefix + child_prefix, "└─ " if last else "├─ ", "   " if last else "│  ")

    starts = graph.roots()
    # Nodes on a cycle have no root; start from the earliest unvisited one.
    pending = sorted(graph.nodes.values(), key=lambda node: node.order)
    for node in starts + pending:
        if node.key not in visited:
            walk(node, "", "", "")
    return lines


def disclaimers(entry: DiagnosticEntry) -> List[str]:
    lines: List[str] = []
    hidden = sorted(
        (node for node in entry.graph.nodes.values() if node.kind == NodeKind.HIDDEN),
        key=lambda node: node.order,
    )
    for node in hidden:
        count = node.hidden_count or 0
        noun = "requirement" if count == 1 else "requirements"
        lines.append(f"the compiler hid {count} redundant {noun} in this chain; they are not shown")
    for fact in entry.facts_of(FieldFact):
        if fact.has_placeholder:
            lines.append(
                f"some characters of the field name `{fact.field_name}` were hidden by the compiler "
                "and are shown as `�`"
            )
        elif not fact.field_name:
            lines.append(f"the compiler did not reveal the field name; it is shown as `{HIDDEN_NAME}`")
        elif not fact.is_complete:
            lines.append(f"the compiler shortened the field name `{fact.field_name}`; it may be incomplete")
    for conflict in entry.conflicts:
        values = ", ".join(f"`{value}`" for value in conflict.values)
        lines.append(
            f"diagnostics at this location disagree about the missing field of "
            f"`{conflict.type_name}` ({values}); all candidates are shown"
        )
    return _unique(lines)


def suggestions(entry: DiagnosticEntry) -> List[str]:
    lines: List[str] = []
    components = entry.facts_of(ComponentFact)
    concrete = any(
        node.kind in (NodeKind.FIELD_ACCESS, NodeKind.PROVIDER) for node in entry.root_causes
    )
    for node in entry.root_causes:
        if node.kind == NodeKind.FIELD_ACCESS and isinstance(node.fact, FieldFact):
            fact = node.fact
            if fact.field_name:
                lines.append(f"add field `{fact.field_name}` to `{fact.type_name}`")
            else:
                lines.append(f"add the missing field to `{fact.type_name}`")
            if not fact.other_fields_present:
                lines.append(f"or add `#[derive(HasField)]` to `{fact.type_name}` if it is missing")
        elif node.kind == NodeKind.PROVIDER and isinstance(node.fact, ProviderFact):
            fact = node.fact
            trait = _provider_trait(fact, components)
            lines.append(f"ensure `{fact.provider}` implements {trait} for `{fact.context}`")
        elif not concrete and node.type_name:
            lines.append(scrub_plumbing(f"ensure `{node.type_name}` implements {plain_trait(node.trait_name)}"))
    return _unique(lines)


def _provider_trait(fact: ProviderFact, components: List[ComponentFact]) -> str:
    for component in components:
        if component.component == fact.component and component.provider_trait:
            return f"`{component.provider_trait}`"
    derived = provider_trait_for(fact.component)
    if derived:
        return f"`{derived}`"
    return f"the provider trait for `{fact.component}`"


def _entry_notes(entry: DiagnosticEntry) -> List[str]:
    shown = {note for node in entry.graph.nodes.values() for note in node.annotations}
    return [note for note in entry.annotations if note not in shown]


def _spans(entry: DiagnosticEntry) -> List[RenderedSpan]:
    spans: List[RenderedSpan] = []
    primary = entry.primary.primary_span
    if primary is not None:
        spans.append(
            RenderedSpan(
                file=primary.file_name,
                line=primary.line_start,
                column=primary.column_start,
                label=primary.label,
            )
        )
    for fact in entry.facts_of(FieldFact):
        if fact.definition is not None and not fact.other_fields_present:
            spans.append(
                RenderedSpan(
                    file=fact.definition.file_name,
                    line=fact.definition.line_start,
                    column=fact.definition.column_start,
                    label=f"`{fact.type_name}` defined here",
                    role="definition",
                )
            )
            break
    return spans


def json_envelope(raw_payload: Dict[str, Any], record: RenderedDiagnostic, text: str) -> str:
    """Re-emit a cargo compiler-message with synthesized text and the structured record attached."""
    payload = dict(raw_payload)
    if isinstance(payload.get("message"), dict):
        message = dict(payload["message"])
        message["rendered"] = text
        payload["message"] = message
    else:
        payload["rendered"] = text
    payload["cgp"] = record.to_dict()
    return json.dumps(payload, ensure_ascii=False)


def _unique(lines: List[str]) -> List[str]:
    seen: List[str] = []
    for line in lines:
        if line not in seen:
            seen.append(line)
    return seen


__all__ = [
    "REPEAT_MARK",
    "ROOT_CAUSE_MARK",
    "RenderedDiagnostic",
    "RenderedSpan",
    "build_record",
    "dependency_tree",
    "disclaimers",
    "json_envelope",
    "suggestions",
]
