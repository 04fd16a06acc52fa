"""
statement-ledger: bank statement normalization and spreadsheet ledger export.

Turns statement text or structured entity extraction output into canonical
transactions, renders them as CSV, and exports them to a Google Sheets
ledger with content-hash deduplication.
"""

__version__ = "0.1.0"
