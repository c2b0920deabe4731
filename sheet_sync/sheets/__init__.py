"""
Google Sheets API module.
"""

from sheet_sync.sheets.client import (
    GoogleSheetsClient,
    SheetsClientError,
    SheetsApiError,
    SheetRow,
    parse_sheet_rows,
    resolve_service_account_info,
    ID_HEADER,
)

__all__ = [
    "GoogleSheetsClient",
    "SheetsClientError",
    "SheetsApiError",
    "SheetRow",
    "parse_sheet_rows",
    "resolve_service_account_info",
    "ID_HEADER",
]
