"""Google Sheets export for application data.

Upload rows into a new spreadsheet with batched appendCells requests.

Usage:
    from google_connect.sheets import SpreadsheetExporter

    exporter = SpreadsheetExporter(
        name="Users",
        fields={"email": "E-mail", "name": "Name"},
        client=api.get_client(),
    )
    url = exporter.export(users)

Authorization:
    1. Configure GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET (or a service account key)
    2. Send the user through /google/oauth/authorize once
    3. Build the exporter with api.get_client(token_store=...)
"""

from __future__ import annotations

from google_connect.sheets.batcher import ROWS_PER_REQUEST_DEFAULT, RowBatcher
from google_connect.sheets.client import Sheet, SheetsClient, Spreadsheet
from google_connect.sheets.exceptions import SheetsExportError, UnknownDataShapeError
from google_connect.sheets.exporter import SpreadsheetExporter
from google_connect.sheets.rows import convert_data, convert_row, create_row

__all__ = [
    "ROWS_PER_REQUEST_DEFAULT",
    "RowBatcher",
    "Sheet",
    "SheetsClient",
    "Spreadsheet",
    "SpreadsheetExporter",
    "SheetsExportError",
    "UnknownDataShapeError",
    "convert_data",
    "convert_row",
    "create_row",
]
