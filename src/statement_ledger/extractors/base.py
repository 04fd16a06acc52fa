"""
Base extractor interface and common types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..schemas.entity_document import EntityDocument
from ..schemas.transaction import CanonicalTransaction


@dataclass
class ExtractionSource:
    """Raw inputs available for one statement."""

    # Extracted statement text (OCR / text layer, produced elsewhere)
    text: str = ""
    # Structured entity extraction output, if the document was processed
    document: Optional[EntityDocument] = None


class BaseExtractor(ABC):
    """
    Base class for all extractors.

    Each extractor implements a specific strategy:
    - Structured entity extraction output
    - Statement text heuristics
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging and provenance."""
        pass

    @property
    @abstractmethod
    def priority(self) -> int:
        """
        Priority for extractor selection.
        Higher = more trusted, tried first.
        """
        pass

    @abstractmethod
    def can_extract(self, source: ExtractionSource) -> bool:
        """Check if this extractor should be attempted for the source."""
        pass

    @abstractmethod
    def extract(self, source: ExtractionSource) -> list[CanonicalTransaction]:
        """
        Extract canonical transactions from the source.

        Returns:
            Transactions in source order (possibly empty)
        """
        pass
