"""Parsers for the trait-requirement phrasings rustc uses in E0277 diagnostics."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from ..diagnostics import Diagnostic
from ..models import CheckTraitFact, ComponentFact
from .base import Extractor
from .generics import generic_body, split_top_level, strip_module_paths

FORM_REQUIRED_FOR = "required-for"
FORM_TRAIT_BOUND = "trait-bound"
FORM_NOT_IMPLEMENTED = "not-implemented"

CAN_USE_COMPONENT = "CanUseComponent"

_REQUIRED_FOR = re.compile(r"required for `(?P<type>[^`]+)` to implement `(?P<trait>[^`]+)`")
_TRAIT_BOUND = re.compile(r"the trait bound `(?P<bound>[^`]+)` is not satisfied")
_NOT_IMPLEMENTED = re.compile(r"the trait `(?P<trait>[^`]+)` is not implemented for `(?P<type>[^`]+)`")
_REQUIRED_BY_BOUND = re.compile(r"required by a bound in `(?P<name>[^`]+)`")
_HIDDEN = re.compile(r"(?P<count>\d+) redundant requirements? hidden")


@dataclass(frozen=True)
class Requirement:
    """A ``type: trait`` pair read out of one message, with the phrasing it came from."""

    type_name: str
    trait_name: str
    form: str


def parse_requirement(message: str) -> Optional[Requirement]:
    """Return the requirement stated by ``message``, if it uses a known phrasing."""
    match = _REQUIRED_FOR.search(message)
    if match:
        return Requirement(match.group("type").strip(), match.group("trait").strip(), FORM_REQUIRED_FOR)
    match = _TRAIT_BOUND.search(message)
    if match:
        bound = _split_bound(match.group("bound"))
        if bound is not None:
            return Requirement(bound[0], bound[1], FORM_TRAIT_BOUND)
    match = _NOT_IMPLEMENTED.search(message)
    if match:
        return Requirement(match.group("type").strip(), match.group("trait").strip(), FORM_NOT_IMPLEMENTED)
    return None


def _split_bound(bound: str) -> Optional[Tuple[str, str]]:
    # The separating colon is the first top-level one that is not half of a ``::`` path.
    depth = 0
    for index, char in enumerate(bound):
        if char == "<":
            depth += 1
        elif char == ">" and (index == 0 or bound[index - 1] != "-"):
            depth -= 1
        elif char == ":" and depth == 0:
            doubled = bound[index + 1 : index + 2] == ":" or bound[index - 1 : index] == ":"
            if not doubled:
                type_name, trait_name = bound[:index].strip(), bound[index + 1 :].strip()
                if type_name and trait_name:
                    return type_name, trait_name
                return None
    return None


def parse_check_trait(message: str) -> Optional[str]:
    match = _REQUIRED_BY_BOUND.search(message)
    if not match:
        return None
    return strip_module_paths(match.group("name").strip())


def parse_hidden_count(message: str) -> Optional[int]:
    match = _HIDDEN.search(message)
    return int(match.group("count")) if match else None


def is_can_use(trait_name: str) -> bool:
    return strip_module_paths(trait_name).startswith(CAN_USE_COMPONENT + "<")


def component_of(text: str) -> Optional[str]:
    """Return ``C`` from the first ``CanUseComponent<C>`` mention in ``text``."""
    body = generic_body(strip_module_paths(text), CAN_USE_COMPONENT + "<")
    if not body:
        return None
    args = split_top_level(body)
    return args[0] if args and args[0] else None


def provider_trait_for(component: str) -> Optional[str]:
    """``AreaCalculatorComponent`` -> ``AreaCalculator``; ``None`` when nothing is left."""
    head = component.split("<", 1)[0].strip()
    if head.endswith("Component") and len(head) > len("Component"):
        return head[: -len("Component")]
    return None


class CheckTraitExtractor(Extractor):
    """Records the compiler-facing check trait named by "required by a bound in"."""

    name = "check-trait"

    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[CheckTraitFact]:
        trait = parse_check_trait(message.message)
        return CheckTraitFact(name=trait) if trait else None


class ComponentExtractor(Extractor):
    """Records the component named by ``CanUseComponent<C>``."""

    name = "component"

    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[ComponentFact]:
        if CAN_USE_COMPONENT not in message.message:
            return None
        component = component_of(message.message)
        if component is None:
            return None
        return ComponentFact(component=component, provider_trait=provider_trait_for(component))


__all__ = [
    "CAN_USE_COMPONENT",
    "CheckTraitExtractor",
    "ComponentExtractor",
    "FORM_NOT_IMPLEMENTED",
    "FORM_REQUIRED_FOR",
    "FORM_TRAIT_BOUND",
    "Requirement",
    "component_of",
    "is_can_use",
    "parse_check_trait",
    "parse_hidden_count",
    "parse_requirement",
    "provider_trait_for",
]
