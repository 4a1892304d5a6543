"""Core data models shared across the cargo-cgp analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .diagnostics import Diagnostic, Span

UNSATISFIED_BOUND_LABEL = "unsatisfied trait bound introduced here"


@dataclass(frozen=True)
class SourceLocation:
    """File position of a span, plus the label rustc attached to it."""

    file: str
    line: int
    column: int
    label: Optional[str] = None

    @classmethod
    def from_span(cls, span: Span) -> "SourceLocation":
        return cls(
            file=span.file_name,
            line=span.line_start,
            column=span.column_start,
            label=span.label,
        )

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class FieldFact:
    """A ``HasField`` requirement that the target type does not satisfy."""

    type_name: str
    field_name: str
    is_complete: bool
    has_placeholder: bool
    expected_length: Optional[int] = None
    other_fields_present: bool = False
    definition: Optional[Span] = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class ProviderFact:
    """``provider`` was required to implement ``IsProviderFor<component, context>``."""

    provider: str
    component: str
    context: str
    location: Optional[SourceLocation] = field(default=None, compare=False, hash=False)


@dataclass(frozen=True)
class CheckTraitFact:
    """Name of the compiler-facing check trait from "required by a bound in `T`"."""

    name: str


@dataclass(frozen=True)
class ComponentFact:
    """Component named by ``CanUseComponent<C>``, with its derived provider trait."""

    component: str
    provider_trait: Optional[str] = None


Fact = Union[FieldFact, ProviderFact, CheckTraitFact, ComponentFact]


class NodeKind(str, Enum):
    """Role a requirement plays in a delegation chain."""

    CONSUMER = "consumer"
    PROVIDER = "provider"
    FIELD_ACCESS = "field-access"
    GENERIC = "generic"
    HIDDEN = "hidden"
    CHECK = "check"


CONCRETE_KINDS = frozenset(
    {NodeKind.CONSUMER, NodeKind.PROVIDER, NodeKind.FIELD_ACCESS, NodeKind.GENERIC}
)


@dataclass
class RequirementNode:
    """One ``type: trait`` requirement in a dependency graph.

    ``key`` is the normalized identity for concrete nodes. Hidden nodes have no
    identity; their key only records where in the chain they were spliced.
    ``introduced`` is set when any span of the originating note carries rustc's
    "unsatisfied trait bound introduced here" label.
    """

    key: str
    kind: NodeKind
    type_name: Optional[str]
    trait_name: Optional[str]
    order: Tuple[int, int]
    location: Optional[SourceLocation] = None
    fact: Optional[Fact] = None
    hidden_count: Optional[int] = None
    introduced: bool = False
    annotations: List[str] = field(default_factory=list)

    @property
    def is_concrete(self) -> bool:
        return self.kind in CONCRETE_KINDS

    def annotate(self, text: str) -> None:
        if text not in self.annotations:
            self.annotations.append(text)


@dataclass(frozen=True)
class Edge:
    """``source`` requires ``target``."""

    source: str
    target: str


@dataclass
class DependencyGraph:
    """Requirement nodes and "requires" edges reconstructed for one diagnostic group."""

    nodes: Dict[str, RequirementNode] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    undetermined: bool = False

    def add_node(self, node: RequirementNode) -> RequirementNode:
        existing = self.nodes.get(node.key)
        if existing is None:
            self.nodes[node.key] = node
            return node
        if node.order < existing.order:
            existing.order = node.order
        if existing.location is None and node.location is not None:
            existing.location = node.location
        if existing.fact is None and node.fact is not None:
            existing.fact = node.fact
        existing.introduced = existing.introduced or node.introduced
        for note in node.annotations:
            existing.annotate(note)
        return existing

    def add_edge(self, source: str, target: str) -> None:
        if source == target:
            return
        edge = Edge(source=source, target=target)
        if edge not in self.edges:
            self.edges.append(edge)

    def successors(self, key: str) -> List[RequirementNode]:
        found = [self.nodes[edge.target] for edge in self.edges if edge.source == key]
        return sorted(found, key=lambda node: node.order)

    def predecessors(self, key: str) -> List[RequirementNode]:
        found = [self.nodes[edge.source] for edge in self.edges if edge.target == key]
        return sorted(found, key=lambda node: node.order)

    def leaves(self) -> List[RequirementNode]:
        sources = {edge.source for edge in self.edges}
        return sorted(
            (node for key, node in self.nodes.items() if key not in sources),
            key=lambda node: node.order,
        )

    def roots(self) -> List[RequirementNode]:
        targets = {edge.target for edge in self.edges}
        return sorted(
            (node for key, node in self.nodes.items() if key not in targets),
            key=lambda node: node.order,
        )

    def component_of(self, key: str) -> Set[str]:
        """Return the keys weakly connected to ``key``."""
        neighbours: Dict[str, Set[str]] = {name: set() for name in self.nodes}
        for edge in self.edges:
            neighbours[edge.source].add(edge.target)
            neighbours[edge.target].add(edge.source)
        seen = {key}
        pending = [key]
        while pending:
            current = pending.pop()
            for other in neighbours.get(current, ()):
                if other not in seen:
                    seen.add(other)
                    pending.append(other)
        return seen

    def merge(self, other: "DependencyGraph") -> None:
        for node in sorted(other.nodes.values(), key=lambda item: item.order):
            self.add_node(
                RequirementNode(
                    key=node.key,
                    kind=node.kind,
                    type_name=node.type_name,
                    trait_name=node.trait_name,
                    order=node.order,
                    location=node.location,
                    fact=node.fact,
                    hidden_count=node.hidden_count,
                    introduced=node.introduced,
                    annotations=list(node.annotations),
                )
            )
        for edge in other.edges:
            self.add_edge(edge.source, edge.target)
        self.refresh()

    def collapse(self, inner: str, outer: str) -> None:
        """Fold node ``inner`` into ``outer``, redirecting every edge that touched it."""
        if inner == outer or inner not in self.nodes or outer not in self.nodes:
            return
        rewired: List[Edge] = []
        for edge in self.edges:
            source = outer if edge.source == inner else edge.source
            target = outer if edge.target == inner else edge.target
            rewired.append(Edge(source=source, target=target))
        self.edges = []
        for edge in rewired:
            self.add_edge(edge.source, edge.target)
        removed = self.nodes.pop(inner)
        survivor = self.nodes[outer]
        survivor.introduced = survivor.introduced or removed.introduced
        for note in removed.annotations:
            survivor.annotate(note)
        if removed.order < survivor.order:
            survivor.order = removed.order
        self.refresh()

    def refresh(self) -> None:
        """Recompute ``undetermined``: a graph needs at least one concrete leaf."""
        self.undetermined = not any(node.is_concrete for node in self.leaves())


@dataclass(frozen=True)
class Fingerprint:
    """Location/component identity used to group related diagnostics."""

    file: Optional[str]
    line: Optional[int]
    column: Optional[int]
    component: Optional[str]

    def matches(self, other: "Fingerprint", tolerance: int = 0) -> bool:
        if (self.file, self.line, self.component) != (other.file, other.line, other.component):
            return False
        if self.column is None or other.column is None:
            return self.column == other.column
        return abs(self.column - other.column) <= tolerance


@dataclass(frozen=True)
class FactConflict:
    """Incompatible facts reported for the same location; both are kept."""

    kind: str
    type_name: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class EntryMember:
    """One raw diagnostic folded into an entry, with what was extracted from it."""

    seq: int
    diagnostic: Diagnostic = field(compare=False, hash=False)
    facts: Tuple[Fact, ...] = field(compare=False, hash=False)


@dataclass
class DiagnosticEntry:
    """A merged, analyzed unit of one or more CGP diagnostics."""

    members: List[EntryMember]
    graph: DependencyGraph
    root_causes: List[RequirementNode] = field(default_factory=list)
    suppressed: bool = False
    annotations: List[str] = field(default_factory=list)

    @property
    def seq(self) -> int:
        return self.members[0].seq

    @property
    def primary(self) -> Diagnostic:
        return self.members[0].diagnostic

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [member.diagnostic for member in self.members]

    @property
    def facts(self) -> List[Fact]:
        return _unique(fact for member in self.members for fact in member.facts)

    @property
    def notes(self) -> List[str]:
        return _unique(
            child.message
            for member in self.members
            for child in member.diagnostic.children
            if child.level == "note"
        )

    def facts_of(self, kind: type) -> List[Fact]:
        return [fact for fact in self.facts if isinstance(fact, kind)]

    @property
    def component(self) -> Optional[str]:
        for fact in self.facts:
            if isinstance(fact, ComponentFact):
                return fact.component
        for fact in self.facts:
            if isinstance(fact, ProviderFact):
                return fact.component
        return None

    @property
    def fingerprint(self) -> Fingerprint:
        span = self.primary.primary_span
        if span is None:
            return Fingerprint(file=None, line=None, column=None, component=self.component)
        return Fingerprint(
            file=span.file_name,
            line=span.line_start,
            column=span.column_start,
            component=self.component,
        )

    @property
    def undetermined(self) -> bool:
        return not self.facts or self.graph.undetermined

    @property
    def conflicts(self) -> List[FactConflict]:
        by_type: Dict[str, List[str]] = {}
        for fact in self.facts_of(FieldFact):
            names = by_type.setdefault(fact.type_name, [])
            if fact.field_name not in names:
                names.append(fact.field_name)
        conflicts: List[FactConflict] = []
        for type_name, names in by_type.items():
            if len(names) > 1 and not _all_compatible(names):
                conflicts.append(FactConflict(kind="field", type_name=type_name, values=tuple(names)))
        return conflicts

    def annotate(self, text: str) -> None:
        if text not in self.annotations:
            self.annotations.append(text)

    def absorb(self, other: "DiagnosticEntry") -> None:
        """Merge ``other`` into this entry; merging is idempotent and order-insensitive."""
        known = {member.seq for member in self.members}
        combined = list(self.members)
        combined.extend(member for member in other.members if member.seq not in known)
        self.members = sorted(combined, key=lambda member: member.seq)
        self.graph.merge(other.graph)
        for note in other.annotations:
            self.annotate(note)


def _unique(items: Iterable) -> List:
    seen: List = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _all_compatible(names: List[str]) -> bool:
    # Names differing only where the compiler hid a character describe the same field.
    first = names[0]
    for other in names[1:]:
        if len(other) != len(first):
            return False
        for left, right in zip(first, other):
            if left != right and "�" not in (left, right):
                return False
    return True


__all__ = [
    "CONCRETE_KINDS",
    "CheckTraitFact",
    "ComponentFact",
    "DependencyGraph",
    "DiagnosticEntry",
    "Edge",
    "EntryMember",
    "Fact",
    "FactConflict",
    "FieldFact",
    "Fingerprint",
    "NodeKind",
    "ProviderFact",
    "RequirementNode",
    "SourceLocation",
    "UNSATISFIED_BOUND_LABEL",
]
