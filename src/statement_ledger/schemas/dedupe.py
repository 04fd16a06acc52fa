"""
Transaction identity hashing and duplicate filtering (CRITICAL).

This module defines THE deterministic transaction hash. It is the only way
identity hashes are produced, both for the ledger's "Hashes" sheet and for
in-batch duplicate detection.

Hash input (pipe separated, in order):
- effective date: ISO date of `date`, else `posted_date`, else ""
- signed amount: credit positive / debit negative, truncated to 2 decimals
- description: whitespace-collapsed, lower-cased

The hash must be:
- Stable: same fields, same digest, across processes and machines
- Fixed length: 64 lowercase hex characters (SHA-256)
"""

import hashlib
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Iterable

from .transaction import CanonicalTransaction

# Length of a transaction hash (SHA-256 hex digest)
HASH_LENGTH = 64

# Fractional digits kept before hashing
AMOUNT_QUANTUM = Decimal("0.01")

HASH_FIELD_SEPARATOR = "|"


@dataclass
class DedupeResult:
    """Outcome of filtering a batch against the known hash set."""

    unique_transactions: list[CanonicalTransaction] = field(default_factory=list)
    duplicate_count: int = 0
    # Hash of every retained transaction, same order as unique_transactions
    new_hashes: list[str] = field(default_factory=list)


def _normalize_amount(amount: Decimal) -> str:
    truncated = amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)
    if truncated == 0:
        # Avoid "-0.00" for tiny debits truncated to zero
        truncated = Decimal("0.00")
    return f"{truncated:.2f}"


def _normalize_string(value: str | None) -> str:
    """Normalize a string for hashing (collapse whitespace, lowercase)."""
    if not value:
        return ""
    return " ".join(value.split()).lower()


def hash_transaction(tx: CanonicalTransaction) -> str:
    """
    Compute the identity hash of a transaction.

    Args:
        tx: Canonical transaction

    Returns:
        64-character lowercase hex SHA256 digest
    """
    effective = tx.effective_date
    normalized_date = effective.isoformat() if effective else ""
    normalized_amount = _normalize_amount(tx.signed_amount)
    normalized_desc = _normalize_string(tx.description)

    canonical = HASH_FIELD_SEPARATOR.join([normalized_date, normalized_amount, normalized_desc])
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def filter_duplicates(
    transactions: Iterable[CanonicalTransaction],
    existing_hashes: Iterable[str],
) -> DedupeResult:
    """
    Drop transactions whose hash is already known.

    A transaction is a duplicate if its hash is in `existing_hashes` or was
    produced by an earlier transaction of the same batch. Input order is
    preserved.

    Args:
        transactions: Incoming batch
        existing_hashes: Hashes already present in the ledger

    Returns:
        DedupeResult with retained transactions, duplicate count and the
        hashes of the retained transactions
    """
    seen = set(existing_hashes)
    result = DedupeResult()

    for tx in transactions:
        tx_hash = hash_transaction(tx)
        if tx_hash in seen:
            result.duplicate_count += 1
            continue
        seen.add(tx_hash)
        result.unique_transactions.append(tx)
        result.new_hashes.append(tx_hash)

    return result
