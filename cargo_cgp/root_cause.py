"""Root cause ranking over dependency graph leaves."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .logging import get_logger
from .models import (
    DependencyGraph,
    DiagnosticEntry,
    NodeKind,
    RequirementNode,
)

logger = get_logger("root_cause")


def rank_key(node: RequirementNode) -> Tuple[int, Tuple[int, int]]:
    """Return the sort key for a root cause candidate.

    Field access ranks first, then providers whose bound was introduced here,
    then other providers, then everything else. Ties keep compiler order.
    """
    if node.kind == NodeKind.FIELD_ACCESS:
        tier = 0
    elif node.kind == NodeKind.PROVIDER:
        tier = 1 if node.introduced else 2
    else:
        tier = 3
    return tier, node.order


@dataclass
class RootCauseReport:
    """Ranked leaf candidates and the best candidate of each disconnected group."""

    ranked: List[RequirementNode]
    independent: List[RequirementNode]

    @property
    def primary(self) -> RequirementNode | None:
        return self.ranked[0] if self.ranked else None


class RootCauseAnalyzer:
    """Finds unresolved concrete requirements at the bottom of each chain."""

    def candidates(self, graph: DependencyGraph) -> List[RequirementNode]:
        leaves = [node for node in graph.leaves() if node.is_concrete]
        return sorted(leaves, key=rank_key)

    def analyze(self, graph: DependencyGraph) -> RootCauseReport:
        ranked = self.candidates(graph)
        independent: List[RequirementNode] = []
        covered: set = set()
        for node in ranked:
            if node.key in covered:
                continue
            independent.append(node)
            covered |= graph.component_of(node.key)
        return RootCauseReport(ranked=ranked, independent=independent)

    def apply(self, entry: DiagnosticEntry) -> RootCauseReport:
        report = self.analyze(entry.graph)
        entry.root_causes = report.independent
        if entry.undetermined:
            logger.debug("Diagnostic #%d is undetermined; original text will be kept", entry.seq)
        return report


__all__ = ["RootCauseAnalyzer", "RootCauseReport", "rank_key"]
