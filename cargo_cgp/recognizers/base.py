"""Base classes for CGP fact extractors."""

from abc import ABC, abstractmethod
from typing import Optional

from ..diagnostics import Diagnostic
from ..models import Fact


class Extractor(ABC):
    """Contract for extractors that read one fact out of a diagnostic message.

    ``message`` is the top-level diagnostic or one of its children; ``root`` is
    always the top-level diagnostic so an extractor can consult sibling text.
    """

    name: str = "extractor"

    @abstractmethod
    def extract(self, message: Diagnostic, root: Diagnostic) -> Optional[Fact]:
        """Return a fact when ``message`` matches, otherwise ``None``. Must not raise."""
