"""
SSOT (Single Source of Truth) schemas for the pipeline.

CanonicalTransaction is the only transaction model used across modules.
Normalizers map into it; the CSV formatter and ledger exporter read it.
"""

from .dedupe import (
    HASH_LENGTH,
    DedupeResult,
    filter_duplicates,
    hash_transaction,
)
from .entity_document import DOCUMENT_TYPES, Entity, EntityDocument
from .transaction import (
    DESCRIPTION_PLACEHOLDER,
    CanonicalTransaction,
    StatementPeriod,
    TransactionMetadata,
    assign_ending_balance,
    is_edited,
    is_exportable,
    mark_edited,
)

__all__ = [
    # Canonical transaction
    "CanonicalTransaction",
    "StatementPeriod",
    "TransactionMetadata",
    "DESCRIPTION_PLACEHOLDER",
    "is_exportable",
    "mark_edited",
    "is_edited",
    "assign_ending_balance",
    # Entity extraction input
    "DOCUMENT_TYPES",
    "Entity",
    "EntityDocument",
    # Dedupe
    "HASH_LENGTH",
    "DedupeResult",
    "hash_transaction",
    "filter_duplicates",
]
