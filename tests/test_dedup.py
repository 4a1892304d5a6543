"""Tests for merging and suppressing redundant CGP diagnostics."""

from __future__ import annotations

from cargo_cgp.dedup import Deduplicator, deduplicate, inner_provider_note, is_nested_provider
from cargo_cgp.models import NodeKind, ProviderFact
from tests._fixtures.diagnostics import child
from tests._fixtures.entries import make_db, summarize_db
from tests._fixtures.scenarios import base_area, check_trait_failure, density, scaled_area

SCALED = "ScaledArea<RectangleArea>: IsProviderFor<AreaCalculatorComponent, Rectangle>"
INNER = "RectangleArea: IsProviderFor<AreaCalculatorComponent, Rectangle>"


def _snapshot(db):
    return [
        (
            entry.seq,
            [member.seq for member in entry.members],
            sorted(entry.graph.nodes),
            sorted((edge.source, edge.target) for edge in entry.graph.edges),
            list(entry.annotations),
        )
        for entry in db.active_entries()
    ]


def test_is_nested_provider_requires_generic_argument_and_same_component() -> None:
    outer = ProviderFact("ScaledArea<RectangleArea>", "AreaCalculatorComponent", "Rectangle")

    assert is_nested_provider(outer, ProviderFact("RectangleArea", "AreaCalculatorComponent", "Rectangle"))
    assert not is_nested_provider(outer, ProviderFact("RectangleArea", "AreaCalculatorComponent", "Square"))
    assert not is_nested_provider(outer, ProviderFact("RectangleArea", "PerimeterCalculatorComponent", "Rectangle"))
    assert not is_nested_provider(outer, ProviderFact("ScaledArea", "AreaCalculatorComponent", "Rectangle"))
    assert not is_nested_provider(
        ProviderFact("RectangleAreaExt", "AreaCalculatorComponent", "Rectangle"),
        ProviderFact("RectangleArea", "AreaCalculatorComponent", "Rectangle"),
    )


def test_diagnostics_sharing_a_fingerprint_merge_into_the_earliest() -> None:
    outer, inner = scaled_area()
    db = make_db(outer, inner)

    surfaced = deduplicate(db)

    assert len(surfaced) == 1
    entry = surfaced[0]
    assert entry.seq == 0
    assert [member.seq for member in entry.members] == [0, 1]
    assert db.all_entries()[1].suppressed


def test_nested_provider_nodes_collapse_into_the_outer_provider() -> None:
    db = make_db(*scaled_area())

    entry = deduplicate(db)[0]
    graph = entry.graph

    assert INNER not in graph.nodes
    outer = graph.nodes[SCALED]
    assert outer.kind == NodeKind.PROVIDER
    assert inner_provider_note("RectangleArea") in outer.annotations
    assert inner_provider_note("RectangleArea") in entry.annotations
    assert [edge.target for edge in graph.edges if edge.source == SCALED] == [
        "RectangleArea: AreaCalculator<Rectangle>",
        "Rectangle: HasRectangleFields",
    ]


def test_nested_provider_entries_at_different_locations_are_folded() -> None:
    outer, inner = scaled_area()
    inner["spans"][0]["line_start"] = 90
    db = make_db(outer, inner)

    surfaced = deduplicate(db)

    assert summarize_db(db) == [0]
    entry = surfaced[0]
    assert [member.seq for member in entry.members] == [0, 1]
    assert inner_provider_note("RectangleArea") in entry.annotations
    assert INNER not in entry.graph.nodes


def test_unrelated_diagnostics_stay_separate() -> None:
    db = make_db(base_area(), density())

    surfaced = deduplicate(db)

    assert [entry.seq for entry in surfaced] == [0, 1]
    assert all(len(entry.members) == 1 for entry in surfaced)


def test_restated_failure_at_a_field_error_site_is_suppressed() -> None:
    db = make_db(base_area(), check_trait_failure())

    surfaced = deduplicate(db)

    assert [entry.seq for entry in surfaced] == [0]
    assert len(surfaced[0].members) == 1
    assert db.all_entries()[1].suppressed


def test_failure_with_its_own_requirement_chain_is_kept() -> None:
    db = make_db(base_area(), check_trait_failure(child("required for `Rectangle` to implement `HasRectangleFields`")))

    assert summarize_db(db) == [0, 1]
    assert [entry.seq for entry in deduplicate(db)] == [0, 1]


def test_failure_at_another_site_is_kept() -> None:
    db = make_db(density(), check_trait_failure())

    assert [entry.seq for entry in deduplicate(db)] == [0, 1]


def test_identical_diagnostics_collapse_to_one() -> None:
    db = make_db(base_area(), base_area(), base_area())

    surfaced = deduplicate(db)

    assert len(surfaced) == 1
    assert len(surfaced[0].members) == 3
    assert len(surfaced[0].facts) == len(make_db(base_area()).all_entries()[0].facts)


def test_deduplication_is_idempotent() -> None:
    outer, inner = scaled_area()
    db = make_db(outer, inner, density())
    deduplicator = Deduplicator()

    deduplicator.run(db)
    first = _snapshot(db)
    deduplicator.run(db)

    assert _snapshot(db) == first
