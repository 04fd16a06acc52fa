"""
Extractor router - chooses and applies extraction strategies.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from ..schemas.transaction import CanonicalTransaction, assign_ending_balance, is_exportable
from .base import BaseExtractor, ExtractionSource
from .entity_normalizer import EntityNormalizer
from .statement_parser import StatementTextParser

logger = logging.getLogger(__name__)

NO_TRANSACTIONS_WARNING = "No transactions found"


@dataclass
class ExtractionOutcome:
    """Normalized transactions for one statement plus how they were obtained."""

    document_type: str
    transactions: list[CanonicalTransaction] = field(default_factory=list)
    strategy: str = "none"
    warnings: list[str] = field(default_factory=list)


class ExtractorRouter:
    """
    Routes extraction to the appropriate strategy.

    Tries extractors in priority order:
    1. Structured entity extraction output - highest confidence
    2. Statement text heuristics - lowest confidence

    A strategy that yields no transactions falls through to the next one.
    """

    def __init__(
        self,
        extractors: Optional[list[BaseExtractor]] = None,
        year: Optional[int] = None,
    ):
        """
        Args:
            extractors: Strategies to use (default: entity normalizer + text parser)
            year: Year for bare MM/DD dates, passed to the default strategies
        """
        self.extractors: list[BaseExtractor] = extractors or [
            EntityNormalizer(year=year),
            StatementTextParser(year=year),
        ]
        # Sort by priority (highest first)
        self.extractors.sort(key=lambda e: -e.priority)

    def extract(self, source: ExtractionSource) -> ExtractionOutcome:
        """
        Extract canonical transactions from a statement.

        Args:
            source: Statement text and/or entity extraction output

        Returns:
            ExtractionOutcome; an empty result carries a warning, not an error
        """
        if not source.text and source.document is not None and source.document.text:
            source = replace(source, text=source.document.text)

        document_type = source.document.document_type if source.document else "bank_statement"
        outcome = ExtractionOutcome(document_type=document_type)

        for extractor in self.extractors:
            if not extractor.can_extract(source):
                continue

            transactions = extractor.extract(source)
            logger.info(f"Extractor {extractor.name} produced {len(transactions)} transaction(s)")
            if transactions:
                outcome.transactions = transactions
                outcome.strategy = extractor.name
                break

        if not outcome.transactions:
            outcome.warnings.append(NO_TRANSACTIONS_WARNING)
            return outcome

        exportable = [tx for tx in outcome.transactions if is_exportable(tx)]
        dropped = len(outcome.transactions) - len(exportable)
        if dropped:
            logger.warning(f"Dropped {dropped} transaction(s) without a date")
            outcome.warnings.append(f"Dropped {dropped} transaction(s) without a date")

        if not exportable:
            outcome.warnings.append(NO_TRANSACTIONS_WARNING)
        outcome.transactions = assign_ending_balance(exportable)
        return outcome
