"""
Spreadsheet ledger export (Create / Append with hash deduplication).
"""

from .orchestrator import (
    HASH_HEADER,
    SHEET_HEADERS,
    AppendResult,
    ExportPreconditionError,
    ExportResult,
    ExportState,
    HashLedgerSnapshot,
    LedgerExportError,
    LedgerExportOrchestrator,
    SheetsExportError,
    SheetsExportErrorKind,
    build_format_requests,
    exportable_transactions,
    build_sheet_values,
    fetch_existing_hashes,
)

__all__ = [
    "LedgerExportOrchestrator",
    "ExportState",
    "ExportResult",
    "AppendResult",
    "HashLedgerSnapshot",
    "LedgerExportError",
    "ExportPreconditionError",
    "SheetsExportError",
    "SheetsExportErrorKind",
    "SHEET_HEADERS",
    "HASH_HEADER",
    "build_sheet_values",
    "build_format_requests",
    "exportable_transactions",
    "fetch_existing_hashes",
]
