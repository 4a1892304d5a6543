"""Reconstructs the delegation chain of one diagnostic as a "requires" graph."""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

from ..diagnostics import LEVEL_HELP, Diagnostic
from ..logging import get_logger
from ..models import (
    UNSATISFIED_BOUND_LABEL,
    DependencyGraph,
    Fact,
    FieldFact,
    NodeKind,
    ProviderFact,
    RequirementNode,
    SourceLocation,
)
from ..recognizers.fields import decode_symbol
from ..recognizers.generics import WILDCARD, normalize_type, split_generic
from ..recognizers.providers import parse_provider_trait
from ..recognizers.traits import (
    FORM_NOT_IMPLEMENTED,
    FORM_REQUIRED_FOR,
    FORM_TRAIT_BOUND,
    Requirement,
    is_can_use,
    parse_check_trait,
    parse_hidden_count,
    parse_requirement,
)

logger = get_logger("graph")

HAS_FIELD = "HasField"


def requirement_key(type_name: Optional[str], trait_name: str) -> str:
    return f"{normalize_type(type_name or '?')}: {normalize_type(trait_name)}"


def field_key(fact: FieldFact) -> str:
    return f"{normalize_type(fact.type_name)}: field {fact.field_name}"


class GraphBuilder:
    """Builds a ``DependencyGraph`` from a top-level diagnostic and its facts.

    Children are read in compiler order, closest-to-failure first, and each
    recognized requirement is linked to the one before it when the two
    mention a common type; otherwise it starts a new chain. Elided
    ``CanUseComponent`` requirements are skipped over; "N redundant
    requirement(s) hidden" notes splice in an anonymous hidden node.
    """

    def build(self, diagnostic: Diagnostic, facts: Sequence[Fact], seq: int = 0) -> DependencyGraph:
        graph = _ChainWalk(diagnostic, facts, seq, elide_can_use=True).run()
        if not any(node.is_concrete for node in graph.nodes.values()):
            logger.debug("Only infrastructure requirements found; keeping CanUseComponent nodes")
            graph = _ChainWalk(diagnostic, facts, seq, elide_can_use=False).run()
        _mark_consumers(graph)
        graph.refresh()
        return graph


class _ChainWalk:
    def __init__(self, diagnostic: Diagnostic, facts: Sequence[Fact], seq: int, *, elide_can_use: bool) -> None:
        self.diagnostic = diagnostic
        self.seq = seq
        self.elide_can_use = elide_can_use
        self.fields = [fact for fact in facts if isinstance(fact, FieldFact)]
        self.providers = [fact for fact in facts if isinstance(fact, ProviderFact)]
        self.graph = DependencyGraph()
        # Keys at the current end of the chain; several when one diagnostic names several fields.
        self.frontier: List[str] = []
        self.pending_hidden: Optional[tuple] = None
        self.elided_type: Optional[str] = None

    def run(self) -> DependencyGraph:
        self._seed()
        for index, child in enumerate(self.diagnostic.children, start=1):
            self._visit(child, index)
        if self.pending_hidden is not None:
            count, order = self.pending_hidden
            self._splice_hidden(f"hidden:{self._tail_name()}->end:{count}", count, order, successor=None)
        return self.graph

    def _seed(self) -> None:
        order = (self.seq, 0)
        if self.fields:
            seeds = []
            for fact in self.fields:
                node = self.graph.add_node(
                    RequirementNode(
                        key=field_key(fact),
                        kind=NodeKind.FIELD_ACCESS,
                        type_name=fact.type_name,
                        trait_name=None,
                        order=order,
                        location=_location(self.diagnostic),
                        fact=fact,
                    )
                )
                if node.key not in seeds:
                    seeds.append(node.key)
            self.frontier = seeds
            return
        for child in self.diagnostic.children:
            if child.level != LEVEL_HELP:
                continue
            requirement = parse_requirement(child.message)
            if requirement is not None and requirement.form == FORM_NOT_IMPLEMENTED:
                location = _location(child) or _location(self.diagnostic)
                self._link(self._node(requirement, order, location, _introduced(child)))
                return
        requirement = parse_requirement(self.diagnostic.message)
        if requirement is not None and requirement.form == FORM_TRAIT_BOUND:
            if is_can_use(requirement.trait_name):
                self.elided_type = requirement.type_name
                if self.elide_can_use:
                    return
            self._link(self._node(requirement, order, _location(self.diagnostic), False))

    def _visit(self, child: Diagnostic, index: int) -> None:
        order = (self.seq, index)
        hidden = parse_hidden_count(child.message)
        if hidden is not None:
            self.pending_hidden = (hidden, order)
            return
        check = parse_check_trait(child.message)
        if check is not None:
            type_name = self.elided_type
            key = f"check:{normalize_type(type_name or '?')}:{check}"
            self._link(
                RequirementNode(
                    key=key,
                    kind=NodeKind.CHECK,
                    type_name=type_name,
                    trait_name=check,
                    order=order,
                    location=_location(child),
                )
            )
            return
        requirement = parse_requirement(child.message)
        if requirement is None or requirement.form != FORM_REQUIRED_FOR:
            return
        if is_can_use(requirement.trait_name):
            self.elided_type = requirement.type_name
            if self.elide_can_use:
                return
        self._link(self._node(requirement, order, _location(child), _introduced(child)))

    def _node(
        self,
        requirement: Requirement,
        order: tuple,
        location: Optional[SourceLocation],
        introduced: bool,
    ) -> RequirementNode:
        field = self._field_for(requirement)
        if field is not None:
            return RequirementNode(
                key=field_key(field),
                kind=NodeKind.FIELD_ACCESS,
                type_name=field.type_name,
                trait_name=None,
                order=order,
                location=location,
                fact=field,
                introduced=introduced,
            )
        provider = self._provider_for(requirement)
        kind = NodeKind.PROVIDER if provider is not None else NodeKind.GENERIC
        if provider is not None and provider.location is not None and location is None:
            location = provider.location
        return RequirementNode(
            key=requirement_key(requirement.type_name, requirement.trait_name),
            kind=kind,
            type_name=requirement.type_name,
            trait_name=requirement.trait_name,
            order=order,
            location=location,
            fact=provider,
            introduced=introduced,
        )

    def _field_for(self, requirement: Requirement) -> Optional[FieldFact]:
        if not normalize_type(requirement.trait_name).startswith(HAS_FIELD + "<"):
            return None
        target = normalize_type(requirement.type_name)
        candidates = [fact for fact in self.fields if normalize_type(fact.type_name) == target]
        symbol = decode_symbol(requirement.trait_name)
        if symbol is not None:
            for fact in candidates:
                if fact.field_name == symbol.name:
                    return fact
        return candidates[0] if candidates else None

    def _provider_for(self, requirement: Requirement) -> Optional[ProviderFact]:
        parsed = parse_provider_trait(requirement.trait_name)
        if parsed is None:
            return None
        component, context = parsed
        provider = normalize_type(requirement.type_name)
        for fact in self.providers:
            if (
                normalize_type(fact.provider) == provider
                and normalize_type(fact.component) == normalize_type(component)
                and normalize_type(fact.context) == normalize_type(context)
            ):
                return fact
        return ProviderFact(provider=requirement.type_name, component=component, context=context)

    def _link(self, node: RequirementNode) -> None:
        node = self.graph.add_node(node)
        if self.pending_hidden is not None:
            # Whatever was hidden sits between the two notes, so their entities need not match.
            count, order = self.pending_hidden
            self._splice_hidden(f"hidden:{self._tail_name()}->{node.key}:{count}", count, order, successor=node.key)
        else:
            linked = [key for key in self.frontier if _continues(self.graph.nodes[key], node)]
            if self.frontier and not linked:
                logger.debug("`%s` shares no type with the chain so far; starting a new chain", node.key)
            for key in linked:
                self.graph.add_edge(node.key, key)
        self.frontier = [node.key]

    def _tail_name(self) -> str:
        return "+".join(self.frontier) if self.frontier else "None"

    def _splice_hidden(self, key: str, count: int, order: tuple, successor: Optional[str]) -> None:
        self.graph.add_node(
            RequirementNode(
                key=key,
                kind=NodeKind.HIDDEN,
                type_name=None,
                trait_name=None,
                order=order,
                hidden_count=count,
            )
        )
        for previous in self.frontier:
            self.graph.add_edge(key, previous)
        if successor is not None:
            self.graph.add_edge(successor, key)
        self.pending_hidden = None


def requirement_entities(type_name: Optional[str], trait_name: Optional[str]) -> Set[str]:
    """Normalized types a requirement mentions: its subject and every generic argument.

    ``HasField`` arguments are type-level strings, not types, and are skipped.
    """
    found: Set[str] = set()
    if type_name:
        subject = normalize_type(type_name)
        found.add(subject)
        found |= _generic_arguments(subject)
    if trait_name:
        trait = normalize_type(trait_name)
        if not trait.startswith(HAS_FIELD + "<"):
            found |= _generic_arguments(trait)
    found -= {WILDCARD, "_", "?"}
    return found


def _generic_arguments(text: str) -> Set[str]:
    found: Set[str] = set()
    _, args, _ = split_generic(text)
    for arg in args:
        normalized = normalize_type(arg)
        if normalized:
            found.add(normalized)
            found |= _generic_arguments(normalized)
    return found


def _continues(previous: RequirementNode, node: RequirementNode) -> bool:
    # A check trait whose subject was never named closes whatever chain precedes it.
    if node.kind == NodeKind.CHECK and node.type_name is None:
        return True
    mine = requirement_entities(node.type_name, node.trait_name)
    theirs = requirement_entities(previous.type_name, previous.trait_name)
    return bool(mine & theirs)


def _mark_consumers(graph: DependencyGraph) -> None:
    # A plain requirement on ``Ctx`` that directly needs a provider for ``Ctx`` is a consumer trait.
    for node in list(graph.nodes.values()):
        if node.kind != NodeKind.GENERIC or node.type_name is None:
            continue
        if node.trait_name is not None and is_can_use(node.trait_name):
            continue
        for successor in graph.successors(node.key):
            fact = successor.fact
            if (
                successor.kind == NodeKind.PROVIDER
                and isinstance(fact, ProviderFact)
                and normalize_type(fact.context) == normalize_type(node.type_name)
            ):
                node.kind = NodeKind.CONSUMER
                break


def _location(diagnostic: Diagnostic) -> Optional[SourceLocation]:
    span = diagnostic.primary_span or (diagnostic.spans[0] if diagnostic.spans else None)
    return SourceLocation.from_span(span) if span is not None else None


def _introduced(diagnostic: Diagnostic) -> bool:
    return any(span.label == UNSATISFIED_BOUND_LABEL for span in diagnostic.spans)


def build_graph(diagnostic: Diagnostic, facts: Sequence[Fact], seq: int = 0) -> DependencyGraph:
    return GraphBuilder().build(diagnostic, facts, seq)


__all__: List[str] = ["GraphBuilder", "build_graph", "field_key", "requirement_entities", "requirement_key"]
