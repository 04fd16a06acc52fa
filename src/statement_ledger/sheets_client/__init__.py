"""
Google Sheets / Drive API Client.

Provides:
- Create spreadsheets (POST /v4/spreadsheets)
- Write, append and read values
- Add hidden sheets (batchUpdate addSheet)
- Drive file parents and deletion (shared drives supported)

Treats API errors as loud failures with the message Google returned.
"""

from .client import (
    SheetInfo,
    SheetsAPIError,
    SheetsClient,
    SheetsConnectionError,
    SheetsError,
    SheetSpec,
    SpreadsheetInfo,
    a1_range,
)

__all__ = [
    "SheetsClient",
    "SheetsError",
    "SheetsAPIError",
    "SheetsConnectionError",
    "SheetSpec",
    "SheetInfo",
    "SpreadsheetInfo",
    "a1_range",
]
