"""
Export formatters for canonical transactions.
"""

from .csv_export import (
    DEBIT_CREDIT_HEADERS,
    SIGNED_HEADERS,
    CsvMode,
    format_amount,
    serialize_memo,
    to_csv,
)

__all__ = [
    "CsvMode",
    "DEBIT_CREDIT_HEADERS",
    "SIGNED_HEADERS",
    "format_amount",
    "serialize_memo",
    "to_csv",
]
