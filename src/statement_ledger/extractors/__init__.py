"""
Statement extractors.

Provides:
- ExtractorRouter: Chooses extraction strategy
- Entity normalizer (structured document-understanding output)
- Statement text heuristics parser
- Base classes for custom extractors

Strategies are pluggable and testable.
"""

from .base import BaseExtractor, ExtractionSource
from .entity_normalizer import EntityNormalizer
from .router import ExtractionOutcome, ExtractorRouter
from .statement_parser import (
    SectionState,
    StatementLine,
    StatementTextParser,
    clean_payee,
    determine_transaction_type,
    parse_statement_text,
    statement_lines_to_canonical,
)

__all__ = [
    "ExtractorRouter",
    "ExtractionOutcome",
    "EntityNormalizer",
    "StatementTextParser",
    "StatementLine",
    "SectionState",
    "clean_payee",
    "determine_transaction_type",
    "parse_statement_text",
    "statement_lines_to_canonical",
    "BaseExtractor",
    "ExtractionSource",
]
