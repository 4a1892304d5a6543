"""Provider relationship recognition from ``IsProviderFor<Component, Context>`` requirements."""

from __future__ import annotations

from typing import Optional, Tuple

from ..diagnostics import Diagnostic
from ..models import ProviderFact, SourceLocation
from .base import Extractor
from .generics import split_generic, strip_module_paths
from .traits import parse_requirement

IS_PROVIDER_FOR = "IsProviderFor"


def parse_provider_trait(trait_name: str) -> Optional[Tuple[str, str]]:
    """Return ``(component, context)`` for an ``IsProviderFor<C, Ctx, ...>`` trait."""
    head, args, _ = split_generic(strip_module_paths(trait_name))
    if head != IS_PROVIDER_FOR or len(args) < 2:
        return None
    component, context = args[0].strip(), args[1].strip()
    if not component or not context:
        return None
    return component, context


class ProviderExtractor(Extractor):
    """Emits a ``ProviderFact`` when a message requires a provider to implement ``IsProviderFor``.

    Accepts the "required for `P` to implement", "the trait bound `P: ...` is
    not satisfied" and "the trait `...` is not implemented for `P`" phrasings.
    """

    name = "provider"

    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[ProviderFact]:
        if IS_PROVIDER_FOR not in message.message:
            return None
        requirement = parse_requirement(message.message)
        if requirement is None:
            return None
        parsed = parse_provider_trait(requirement.trait_name)
        if parsed is None:
            return None
        component, context = parsed
        span = message.primary_span or (message.spans[0] if message.spans else None)
        return ProviderFact(
            provider=strip_module_paths(requirement.type_name),
            component=component,
            context=context,
            location=SourceLocation.from_span(span) if span is not None else None,
        )


__all__ = ["IS_PROVIDER_FOR", "ProviderExtractor", "parse_provider_trait"]
