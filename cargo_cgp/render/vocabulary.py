"""CGP-aware phrasing for requirements, with plumbing trait names translated away."""

from __future__ import annotations

from typing import List, Optional

from ..models import FieldFact, NodeKind, ProviderFact, RequirementNode
from ..recognizers.generics import find_matching_angle, split_top_level, strip_module_paths

HIDDEN_NAME = "hidden name"

_PLUMBING = ("IsProviderFor", "CanUseComponent", "HasField")


def _plain_plumbing(name: str, args: List[str]) -> str:
    if name == "HasField":
        return "a field accessor"
    role = "provider" if name == "IsProviderFor" else "consumer"
    first = args[0].strip() if args else ""
    return f"the {role} trait for `{first}`" if first else f"the {role} trait"


def scrub_plumbing(text: str) -> str:
    """Replace every ``IsProviderFor<..>``/``CanUseComponent<..>``/``HasField<..>`` mention."""
    text = strip_module_paths(text)
    for name in _PLUMBING:
        marker = name + "<"
        start = text.find(marker)
        while start != -1:
            open_index = start + len(name)
            close_index = find_matching_angle(text, open_index)
            end = len(text) if close_index is None else close_index + 1
            args = split_top_level(text[open_index + 1 : end - 1] if close_index is not None else text[open_index + 1 :])
            phrase = _plain_plumbing(name, args)
            # Drop surrounding backticks when the mention was quoted on its own.
            if start > 0 and text[start - 1] == "`" and end < len(text) and text[end] == "`":
                start, end = start - 1, end + 1
            text = text[:start] + phrase + text[end:]
            start = text.find(marker, start + len(phrase))
    return text


def plain_trait(trait_name: Optional[str]) -> str:
    """Render a trait mention for humans: plumbing traits become prose, others stay quoted."""
    if not trait_name:
        return "an unknown trait"
    cleaned = strip_module_paths(trait_name).strip()
    for name in _PLUMBING:
        if cleaned == name:
            return _plain_plumbing(name, [])
        if cleaned.startswith(name + "<"):
            return scrub_plumbing(cleaned)
    return f"`{cleaned}`"


def field_label(fact: FieldFact) -> str:
    name = fact.field_name if fact.field_name else HIDDEN_NAME
    label = f"`{name}`"
    if not fact.is_complete:
        label += " (possibly incomplete)"
    return label


def describe_node(node: RequirementNode) -> str:
    """One dependency-tree line for ``node``, stating its kind and concrete names."""
    if node.kind == NodeKind.FIELD_ACCESS and isinstance(node.fact, FieldFact):
        return f"field access: `{node.fact.type_name}` has no field {field_label(node.fact)}"
    if node.kind == NodeKind.PROVIDER and isinstance(node.fact, ProviderFact):
        fact = node.fact
        return f"provider `{fact.provider}` for component `{fact.component}` with context `{fact.context}`"
    if node.kind == NodeKind.CONSUMER:
        return f"consumer trait {plain_trait(node.trait_name)} for `{node.type_name}`"
    if node.kind == NodeKind.CHECK:
        owner = f" on `{node.type_name}`" if node.type_name else ""
        return f"check `{node.trait_name}` (check trait){owner}"
    if node.kind == NodeKind.HIDDEN:
        count = node.hidden_count or 0
        noun = "requirement" if count == 1 else "requirements"
        return f"... {count} {noun} not shown by the compiler"
    subject = f"`{node.type_name}`" if node.type_name else "a type"
    return scrub_plumbing(f"constraint: {subject} must implement {plain_trait(node.trait_name)}")


def summarize(node: Optional[RequirementNode]) -> Optional[str]:
    """Plain-language summary of a root cause, or ``None`` when nothing concrete is known."""
    if node is None:
        return None
    if node.kind == NodeKind.FIELD_ACCESS and isinstance(node.fact, FieldFact):
        fact = node.fact
        summary = f"missing field {field_label(fact)} in `{fact.type_name}`"
        if not fact.other_fields_present:
            summary += ", or `#[derive(HasField)]` is absent"
        return summary
    if node.kind == NodeKind.PROVIDER and isinstance(node.fact, ProviderFact):
        fact = node.fact
        return (
            f"provider `{fact.provider}` cannot implement component `{fact.component}` "
            f"for `{fact.context}`"
        )
    if node.kind == NodeKind.CONSUMER:
        return f"`{node.type_name}` does not implement consumer trait {plain_trait(node.trait_name)}"
    subject = f"`{node.type_name}`" if node.type_name else "a type"
    return scrub_plumbing(f"unsatisfied requirement: {subject} does not implement {plain_trait(node.trait_name)}")


__all__ = ["HIDDEN_NAME", "describe_node", "field_label", "plain_trait", "scrub_plumbing", "summarize"]
