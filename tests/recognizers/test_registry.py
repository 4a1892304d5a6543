"""Tests for extractor discovery, the CGP gate and fact collection."""

from __future__ import annotations

from typing import Optional

import pytest

from cargo_cgp.diagnostics import Diagnostic
from cargo_cgp.models import CheckTraitFact, ComponentFact, Fact, FieldFact, ProviderFact
from cargo_cgp.recognizers import (
    Extractor,
    Recognizer,
    discover_extractors,
    is_cgp_diagnostic,
    recognize,
)
from tests._fixtures.diagnostics import to_diagnostic
from tests._fixtures.scenarios import base_area, type_mismatch


class _ExplodingExtractor(Extractor):
    name = "exploding"

    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[Fact]:
        raise ValueError("boom")


def test_discover_extractors_returns_builtins_in_order() -> None:
    names = [extractor.name for extractor in discover_extractors()]

    assert names[:4] == ["field", "provider", "component", "check-trait"]


def test_discover_extractors_honors_enabled_names() -> None:
    extractors = discover_extractors(["Provider"])

    assert [extractor.name for extractor in extractors] == ["provider"]


def test_discover_extractors_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="nonexistent"):
        discover_extractors(["field", "nonexistent"])


def test_is_cgp_diagnostic_checks_every_message() -> None:
    assert is_cgp_diagnostic(to_diagnostic(base_area()))
    assert not is_cgp_diagnostic(to_diagnostic(type_mismatch()))


def test_recognize_collects_unique_facts_in_message_order() -> None:
    facts = recognize(to_diagnostic(base_area()))

    assert facts == [
        ComponentFact(component="AreaCalculatorComponent", provider_trait="AreaCalculator"),
        FieldFact(
            type_name="Rectangle",
            field_name="height",
            is_complete=True,
            has_placeholder=False,
            expected_length=6,
            other_fields_present=True,
        ),
        ProviderFact(provider="RectangleArea", component="AreaCalculatorComponent", context="Rectangle"),
        CheckTraitFact(name="CanUseRectangle"),
    ]


def test_recognize_returns_nothing_for_plain_diagnostics() -> None:
    assert recognize(to_diagnostic(type_mismatch())) == []


def test_failing_extractor_is_treated_as_a_miss(caplog: pytest.LogCaptureFixture) -> None:
    recognizer = Recognizer([_ExplodingExtractor(), *discover_extractors(["check-trait"])])

    with caplog.at_level("WARNING", logger="cargo_cgp"):
        facts = recognizer.recognize(to_diagnostic(base_area()))

    assert facts == [CheckTraitFact(name="CanUseRectangle")]
    assert "exploding" in caplog.text
