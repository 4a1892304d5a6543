"""CGP construct recognizers and extractor discovery."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Sequence, Set

from ..diagnostics import Diagnostic
from ..logging import get_logger
from ..models import Fact
from .base import Extractor
from .fields import FieldExtractor
from .providers import ProviderExtractor
from .traits import CheckTraitExtractor, ComponentExtractor

_ENTRY_POINT_GROUP = "cargo_cgp.extractors"

CGP_MARKERS = (
    "CanUseComponent",
    "IsProviderFor",
    "HasField",
    "cgp_impl",
    "cgp_component",
    "cgp_auto_getter",
    "delegate_components",
    "check_components",
)

_BUILTIN_FACTORIES: Dict[str, Callable[[], Extractor]] = {
    "field": FieldExtractor,
    "provider": ProviderExtractor,
    "component": ComponentExtractor,
    "check-trait": CheckTraitExtractor,
}

logger = get_logger("recognizers")


def is_cgp_diagnostic(diagnostic: Diagnostic) -> bool:
    """Return True when any message in the diagnostic tree mentions a CGP construct."""
    return any(marker in text for text in diagnostic.iter_messages() for marker in CGP_MARKERS)


def discover_extractors(enabled: Sequence[str] | None = None) -> List[Extractor]:
    """Return instantiated extractors in registry order, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    extractors: List[Extractor] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Extractor]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Extractor):
            raise TypeError(f"Extractor factory for '{name}' did not return an Extractor instance")
        extractors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failure
            raise RuntimeError(f"Failed to load extractor entry point '{entry.name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Extractor:
            return _coerce_extractor(obj)

        _add(entry.name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown extractors requested: {missing}")

    return extractors


def _coerce_extractor(obj: object) -> Extractor:
    if isinstance(obj, Extractor):
        return obj
    if isinstance(obj, type) and issubclass(obj, Extractor):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Extractor):
            return instance
    raise TypeError("Extractor entry point must be an Extractor subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


class Recognizer:
    """Runs the ordered extractor list over a diagnostic and its children."""

    def __init__(self, extractors: Sequence[Extractor] | None = None) -> None:
        self._extractors = list(extractors) if extractors is not None else discover_extractors()

    def recognize(self, diagnostic: Diagnostic) -> List[Fact]:
        if not is_cgp_diagnostic(diagnostic):
            return []
        facts: List[Fact] = []
        for message in _walk(diagnostic):
            for extractor in self._extractors:
                fact = self._run(extractor, message, diagnostic)
                if fact is not None and fact not in facts:
                    facts.append(fact)
        logger.debug("Recognized %d fact(s) in %r", len(facts), diagnostic.message[:80])
        return facts

    @staticmethod
    def _run(extractor: Extractor, message: Diagnostic, root: Diagnostic) -> Fact | None:
        try:
            return extractor.extract(message, root)
        except Exception as exc:
            logger.warning("Extractor '%s' failed: %s", extractor.name, exc)
            return None


def _walk(diagnostic: Diagnostic) -> Iterable[Diagnostic]:
    yield diagnostic
    for child in diagnostic.children:
        yield from _walk(child)


def recognize(diagnostic: Diagnostic) -> List[Fact]:
    """Extract CGP facts from ``diagnostic`` with the built-in extractors."""
    return Recognizer(discover_extractors()).recognize(diagnostic)


__all__ = [
    "CGP_MARKERS",
    "Extractor",
    "Recognizer",
    "discover_extractors",
    "is_cgp_diagnostic",
    "recognize",
]
