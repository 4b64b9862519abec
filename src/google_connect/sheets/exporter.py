"""Export application data into a new Google Spreadsheet.

The exporter creates a spreadsheet, writes an optional header row and every
data row through a ``RowBatcher``, and hands back the spreadsheet URL so a
web handler can redirect the browser to it.

Usage:
    exporter = SpreadsheetExporter(
        name="Orders 2024-05",
        fields={"id": "Order", "total": "Total"},
        client=api.get_client(token_store=store),
    )

    @app.get("/orders/export")
    def export_orders():
        return exporter.to_response(order_repository.all())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi.responses import RedirectResponse

from google_connect.google import GoogleOAuth, GoogleServiceAccount
from google_connect.google.exceptions import MissingConfigurationError
from google_connect.sheets.batcher import ROWS_PER_REQUEST_DEFAULT, RowBatcher
from google_connect.sheets.client import SheetsClient, Spreadsheet
from google_connect.sheets.rows import Row, convert_data, create_row, header_row

logger = logging.getLogger(__name__)

DEFAULT_CELL_FORMAT = {
    "wrapStrategy": "WRAP",
    "hyperlinkDisplayType": "LINKED",
}


class SpreadsheetExporter:
    """Uploads rows into a Google Spreadsheet in batched requests."""

    def __init__(
        self,
        name: str,
        fields: Mapping[str, str] | None = None,
        rows_per_request: int = ROWS_PER_REQUEST_DEFAULT,
        client: GoogleOAuth | GoogleServiceAccount | None = None,
        service: Any = None,
        spreadsheet: Spreadsheet | Mapping[str, Any] | None = None,
        sheet_id: int = 1,
        locale: str | None = None,
        time_zone: str | None = None,
        cell_format: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the exporter.

        Args:
            name: Title of the spreadsheet document.
            fields: Mapping of field name to column title. Selects and orders
                the exported fields and produces a header row.
            rows_per_request: Rows sent per appendCells request.
            client: Authorized client handle used to build the Sheets service.
            service: Prebuilt Sheets v4 service.
            spreadsheet: Existing spreadsheet to append to instead of creating one.
            sheet_id: ID of the sheet receiving the rows.
            locale: Locale of a created spreadsheet.
            time_zone: Time zone of a created spreadsheet.
            cell_format: Default CellFormat of a created spreadsheet.

        Raises:
            MissingConfigurationError: If name is blank or neither client nor
                service is given.
            ValueError: If rows_per_request < 1, sheet_id < 0, or the given
                spreadsheet lacks an id or url.
        """
        self.name = (name or "").strip()
        if not self.name:
            raise MissingConfigurationError("name", "Spreadsheet name is required")

        self.rows_per_request = int(rows_per_request)
        if self.rows_per_request < 1:
            raise ValueError(f"rows_per_request must be >= 1, got {rows_per_request}")

        self.sheet_id = int(sheet_id)
        if self.sheet_id < 0:
            raise ValueError(f"sheet_id must be >= 0, got {sheet_id}")

        self.fields = dict(fields) if fields else None
        self.locale = locale
        self.time_zone = time_zone
        self.cell_format = dict(cell_format) if cell_format is not None else dict(DEFAULT_CELL_FORMAT)

        self.sheets = SheetsClient(client=client, service=service)

        if isinstance(spreadsheet, Mapping):
            if not spreadsheet.get("spreadsheetId"):
                raise ValueError("spreadsheet resource has no spreadsheetId")
            spreadsheet = SheetsClient.parse_spreadsheet(dict(spreadsheet))
        if spreadsheet is not None and not (spreadsheet.id and spreadsheet.url):
            raise ValueError("spreadsheet needs both an id and a url")
        self._spreadsheet: Spreadsheet | None = spreadsheet

    def get_spreadsheet(self, **config: Any) -> Spreadsheet:
        """Get the target spreadsheet, creating it on first use.

        Args:
            **config: Top-level Spreadsheet resource keys overriding the
                generated "properties" and "sheets".
        """
        if self._spreadsheet is None:
            properties: dict[str, Any] = {
                "title": self.name,
                "defaultFormat": self.cell_format,
            }
            if self.locale:
                properties["locale"] = self.locale
            if self.time_zone:
                properties["timeZone"] = self.time_zone

            body = {
                "properties": properties,
                "sheets": [{"properties": {"sheetId": self.sheet_id}}],
                **config,
            }
            self._spreadsheet = self.sheets.create_spreadsheet_from_body(body)

        return self._spreadsheet

    @property
    def spreadsheet(self) -> Spreadsheet:
        return self.get_spreadsheet()

    def _append(self, rows: list[Row]) -> None:
        self.sheets.append_cells(self.spreadsheet.id, self.sheet_id, rows)

    def export(self, data: Any) -> str:
        """Upload data into the spreadsheet.

        Args:
            data: Collection of rows (see ``google_connect.sheets.rows``).

        Returns:
            URL of the spreadsheet.

        Raises:
            UnknownDataShapeError: If data or one of its rows is unsupported.
        """
        rows = convert_data(data)
        batcher: RowBatcher[Row] = RowBatcher(self._append, self.rows_per_request)

        if self.fields:
            batcher.add_row(header_row(self.fields))

        for row in rows:
            batcher.add_row(create_row(row, self.fields))

        batcher.finalize()

        spreadsheet = self.spreadsheet
        logger.info(
            f"Exported {batcher.rows_flushed} rows to {spreadsheet.id} "
            f"in {batcher.flush_count} requests"
        )
        return spreadsheet.url

    def to_response(self, data: Any) -> RedirectResponse:
        """Export data and redirect the browser to the spreadsheet."""
        return RedirectResponse(self.export(data), status_code=303)
