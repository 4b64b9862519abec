"""Google Sheets API client implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from googleapiclient.errors import HttpError

from google_connect.google import GoogleOAuth, GoogleServiceAccount
from google_connect.google.exceptions import AuthorizationRequired, MissingConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Sheet:
    """Represents a sheet within a spreadsheet."""

    id: int
    title: str
    index: int
    row_count: int = 1000
    column_count: int = 26


@dataclass
class Spreadsheet:
    """Represents a Google Spreadsheet."""

    id: str
    title: str
    sheets: list[Sheet] | None = None
    url: str | None = None

    @property
    def default_sheet(self) -> Sheet | None:
        """Get the first sheet."""
        if self.sheets:
            return self.sheets[0]
        return None


def string_cell(value: str) -> dict[str, Any]:
    """Build CellData holding a plain string."""
    return {"userEnteredValue": {"stringValue": value}}


class SheetsClient:
    """Google Sheets API client.

    Works with either an authorized client handle (OAuth or service
    account) or a ready-made Sheets v4 service.

    Usage:
        client = SheetsClient(client=api.get_client())

        # Create a spreadsheet
        sheet = client.create_spreadsheet("My Spreadsheet")

        # Append rows of cells
        client.append_cells(sheet.id, 0, [["Name", "Age"], ["Alice", "30"]])

        # Read values
        values = client.read_range(sheet.id, "Sheet1!A1:C10")

    Note:
        API errors (googleapiclient.errors.HttpError) are not caught.
        Building the service may refresh an OAuth token; handles from
        GoogleApi.get_client save it through their on_token_refresh callback.
    """

    def __init__(
        self,
        client: GoogleOAuth | GoogleServiceAccount | None = None,
        service: Any = None,
    ) -> None:
        """Initialize Sheets client.

        Args:
            client: Client handle used to build the Sheets service.
            service: Prebuilt Sheets v4 service; takes precedence over client.

        Raises:
            MissingConfigurationError: If neither client nor service is given.
        """
        if client is None and service is None:
            raise MissingConfigurationError(
                "client", "SheetsClient requires a client or a service"
            )

        self._client = client
        self._service: Any = service

    def _get_service(self) -> Any:
        """Get or create Sheets API service."""
        if self._service is None:
            if isinstance(self._client, GoogleOAuth) and self._client.is_access_token_expired():
                if not self._client.refresh_token:
                    raise AuthorizationRequired(
                        self._client.get_authorization_url(),
                        "Sheets API requires OAuth authorization. "
                        "Visit the authorization URL to grant access.",
                    )
            self._service = self._client.build_service("sheets", "v4")
        return self._service

    @property
    def service(self) -> Any:
        return self._get_service()

    # =========================================================================
    # Spreadsheets
    # =========================================================================

    def get_spreadsheet(self, spreadsheet_id: str) -> Spreadsheet | None:
        """Get a spreadsheet by ID.

        Args:
            spreadsheet_id: Google Sheets spreadsheet ID.

        Returns:
            Spreadsheet or None if not found.
        """
        service = self._get_service()
        try:
            result = service.spreadsheets().get(spreadsheetId=spreadsheet_id).execute()
        except HttpError as e:
            if e.resp.status == 404:
                return None
            raise
        return self.parse_spreadsheet(result)

    def create_spreadsheet(
        self,
        title: str,
        sheet_titles: list[str] | None = None,
        locale: str | None = None,
        time_zone: str | None = None,
        default_format: dict[str, Any] | None = None,
    ) -> Spreadsheet:
        """Create a new spreadsheet.

        Args:
            title: Spreadsheet title.
            sheet_titles: List of sheet names (optional).
            locale: Spreadsheet locale, e.g. "en_US".
            time_zone: Spreadsheet time zone, e.g. "Europe/Berlin".
            default_format: Default CellFormat for all cells.

        Returns:
            Created Spreadsheet.
        """
        properties: dict[str, Any] = {"title": title}
        if locale:
            properties["locale"] = locale
        if time_zone:
            properties["timeZone"] = time_zone
        if default_format:
            properties["defaultFormat"] = default_format

        body: dict[str, Any] = {"properties": properties}
        if sheet_titles:
            body["sheets"] = [{"properties": {"title": name}} for name in sheet_titles]

        return self.create_spreadsheet_from_body(body)

    def create_spreadsheet_from_body(self, body: dict[str, Any]) -> Spreadsheet:
        """Create a spreadsheet from a raw Spreadsheet resource."""
        service = self._get_service()
        result = service.spreadsheets().create(body=body).execute()
        spreadsheet = self.parse_spreadsheet(result)
        logger.info(f"Created spreadsheet {spreadsheet.id}: {spreadsheet.title}")
        return spreadsheet

    # =========================================================================
    # Reading Data
    # =========================================================================

    def read_range(
        self,
        spreadsheet_id: str,
        range_notation: str,
        value_render_option: str = "FORMATTED_VALUE",
    ) -> list[list[Any]]:
        """Read values from a range.

        Args:
            spreadsheet_id: Spreadsheet ID.
            range_notation: A1 notation (e.g., "Sheet1!A1:C10").
            value_render_option: How to render values ("FORMATTED_VALUE", "UNFORMATTED_VALUE", "FORMULA").

        Returns:
            2D list of cell values.
        """
        service = self._get_service()
        result = (
            service.spreadsheets()
            .values()
            .get(
                spreadsheetId=spreadsheet_id,
                range=range_notation,
                valueRenderOption=value_render_option,
            )
            .execute()
        )
        return result.get("values", [])

    # =========================================================================
    # Writing Data
    # =========================================================================

    def append_cells(
        self,
        spreadsheet_id: str,
        sheet_id: int,
        rows: list[list[str]],
    ) -> dict[str, Any]:
        """Append rows of string cells after the last row of a sheet.

        Sends one batchUpdate with a single appendCells request.

        Args:
            spreadsheet_id: Spreadsheet ID.
            sheet_id: Numeric sheet ID (not title).
            rows: Rows of cell strings.

        Returns:
            The batchUpdate response.
        """
        service = self._get_service()
        body = {
            "requests": [
                {
                    "appendCells": {
                        "sheetId": sheet_id,
                        "rows": [{"values": [string_cell(value) for value in row]} for row in rows],
                        "fields": "*",
                    }
                }
            ]
        }

        result = service.spreadsheets().batchUpdate(spreadsheetId=spreadsheet_id, body=body).execute()
        logger.debug(f"Appended {len(rows)} rows to {spreadsheet_id}/{sheet_id}")
        return result

    @staticmethod
    def parse_spreadsheet(data: dict) -> Spreadsheet:
        """Parse spreadsheet from API response."""
        sheets = []
        for sheet_data in data.get("sheets", []):
            props = sheet_data.get("properties", {})
            grid_props = props.get("gridProperties", {})
            sheets.append(
                Sheet(
                    id=props.get("sheetId", 0),
                    title=props.get("title", ""),
                    index=props.get("index", 0),
                    row_count=grid_props.get("rowCount", 1000),
                    column_count=grid_props.get("columnCount", 26),
                )
            )

        return Spreadsheet(
            id=data["spreadsheetId"],
            title=data.get("properties", {}).get("title", ""),
            sheets=sheets,
            url=data.get("spreadsheetUrl"),
        )
