"""
Google Sheets / Drive REST client implementation.
"""

import json
import logging
from dataclasses import dataclass, field
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class SheetsError(Exception):
    """Base exception for Sheets/Drive client errors."""

    pass


class SheetsAPIError(SheetsError):
    """API returned an error response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        response_body: str | None = None,
    ):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Google API error {status_code}: {message}")


class SheetsConnectionError(SheetsError):
    """Failed to reach the Google APIs."""

    pass


@dataclass
class SheetSpec:
    """A tab to create along with a new spreadsheet."""

    title: str
    hidden: bool = False


@dataclass
class SheetInfo:
    sheet_id: int
    title: str


@dataclass
class SpreadsheetInfo:
    spreadsheet_id: str
    spreadsheet_url: str
    sheets: list[SheetInfo] = field(default_factory=list)


def a1_range(sheet_title: str, cells: str | None = None) -> str:
    """
    Build an A1 range for a sheet, quoting the title.

    >>> a1_range("Bob's Sheet", "A1:E")
    "'Bob''s Sheet'!A1:E"
    """
    quoted = "'" + sheet_title.replace("'", "''") + "'"
    return f"{quoted}!{cells}" if cells else quoted


def _sheet_info(properties: dict) -> SheetInfo:
    return SheetInfo(
        sheet_id=int(properties.get("sheetId", 0)),
        title=properties.get("title", ""),
    )


class SheetsClient:
    """
    Client for the Google Sheets v4 and Drive v3 REST APIs.

    Features:
    - Create spreadsheets with initial tabs
    - Write, append and read cell values
    - Add (hidden) sheets
    - Move and delete files, shared drives included

    Authentication is a pre-obtained OAuth bearer token.
    """

    DEFAULT_TIMEOUT = 30
    SHEETS_BASE_URL = "https://sheets.googleapis.com"
    DRIVE_BASE_URL = "https://www.googleapis.com"

    def __init__(
        self,
        token: str,
        sheets_base_url: str = SHEETS_BASE_URL,
        drive_base_url: str = DRIVE_BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize Sheets client.

        Args:
            token: OAuth 2.0 access token
            sheets_base_url: Sheets API root
            drive_base_url: Drive API root
            timeout: Request timeout in seconds
            max_retries: Transport retry attempts (0 = fail fast)
            backoff_factor: Backoff factor for retries
        """
        self.sheets_base_url = sheets_base_url.rstrip("/")
        self.drive_base_url = drive_base_url.rstrip("/")
        self.timeout = timeout

        # Configure session with retry
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            # Exhausted retries return the last response to _request
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> requests.Response:
        """Make an API request with error handling."""
        logger.debug(f"API Request: {method} {url}")
        if json_data:
            logger.debug(f"Request body: {json.dumps(json_data)}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error to {url}: {e}")
            raise SheetsConnectionError(f"Failed to connect to {url}: {e}") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout for {url}: {e}")
            raise SheetsConnectionError(f"Request to {url} timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise SheetsError(f"Request failed: {e}") from e

        logger.debug(f"Response status: {response.status_code}")

        if not response.ok:
            error_body = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                message = error.get("message")
            else:
                message = str(error) if error else None
            message = message or response.reason or "Unknown error"

            logger.error(f"API Error {response.status_code}: {message}")
            logger.debug(f"Full response body: {error_body}")

            raise SheetsAPIError(
                status_code=response.status_code,
                message=message,
                response_body=error_body,
            )

        return response

    def _json(self, response: requests.Response) -> dict:
        """Decode a success body; anything but a JSON object is a SheetsError."""
        try:
            data = response.json()
        except ValueError as e:
            raise SheetsError(f"Invalid JSON from {response.url}: {e}") from e
        if not isinstance(data, dict):
            raise SheetsError(f"Unexpected response body from {response.url}")
        return data

    def _values_url(self, spreadsheet_id: str, range_a1: str, suffix: str = "") -> str:
        return (
            f"{self.sheets_base_url}/v4/spreadsheets/{spreadsheet_id}"
            f"/values/{quote(range_a1, safe='')}{suffix}"
        )

    def _file_url(self, file_id: str) -> str:
        return f"{self.drive_base_url}/drive/v3/files/{file_id}"

    # Sheets

    def create_spreadsheet(self, title: str, sheets: list[SheetSpec]) -> SpreadsheetInfo:
        """
        Create a spreadsheet with the given tabs.

        Returns:
            SpreadsheetInfo with id, URL and the created tabs
        """
        body = {
            "properties": {"title": title},
            "sheets": [
                {"properties": {"title": spec.title, "hidden": spec.hidden}} for spec in sheets
            ],
        }
        response = self._request(
            "POST", f"{self.sheets_base_url}/v4/spreadsheets", json_data=body
        )
        data = self._json(response)

        spreadsheet_id = data.get("spreadsheetId")
        if not spreadsheet_id:
            raise SheetsError("Spreadsheet creation returned no spreadsheetId")

        info = SpreadsheetInfo(
            spreadsheet_id=spreadsheet_id,
            spreadsheet_url=data.get("spreadsheetUrl")
            or f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}",
            sheets=[_sheet_info(s.get("properties", {})) for s in data.get("sheets", [])],
        )
        logger.info(f"Created spreadsheet {info.spreadsheet_id} ({title})")
        return info

    def update_values(self, spreadsheet_id: str, range_a1: str, values: list[list]) -> dict:
        """Overwrite a range (USER_ENTERED)."""
        response = self._request(
            "PUT",
            self._values_url(spreadsheet_id, range_a1),
            params={"valueInputOption": "USER_ENTERED"},
            json_data={"range": range_a1, "majorDimension": "ROWS", "values": values},
        )
        return self._json(response)

    def append_values(self, spreadsheet_id: str, range_a1: str, values: list[list]) -> dict:
        """Append rows after the last row of a table (INSERT_ROWS)."""
        response = self._request(
            "POST",
            self._values_url(spreadsheet_id, range_a1, ":append"),
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json_data={"range": range_a1, "majorDimension": "ROWS", "values": values},
        )
        return self._json(response)

    def get_values(self, spreadsheet_id: str, range_a1: str) -> list[list[str]]:
        """Read a range; an empty range yields []."""
        response = self._request("GET", self._values_url(spreadsheet_id, range_a1))
        return self._json(response).get("values", [])

    def batch_update(self, spreadsheet_id: str, requests: list[dict]) -> list[dict]:
        """Apply spreadsheets.batchUpdate requests; returns the replies."""
        response = self._request(
            "POST",
            f"{self.sheets_base_url}/v4/spreadsheets/{spreadsheet_id}:batchUpdate",
            json_data={"requests": requests},
        )
        return self._json(response).get("replies", [])

    def add_sheet(self, spreadsheet_id: str, title: str, hidden: bool = False) -> SheetInfo:
        """Add a tab to an existing spreadsheet."""
        replies = self.batch_update(
            spreadsheet_id,
            [{"addSheet": {"properties": {"title": title, "hidden": hidden}}}],
        )
        properties = replies[0].get("addSheet", {}).get("properties", {}) if replies else {}
        return _sheet_info(properties or {"title": title})

    # Drive

    def get_file_parents(self, file_id: str) -> list[str]:
        response = self._request(
            "GET",
            self._file_url(file_id),
            params={"fields": "parents", "supportsAllDrives": "true"},
        )
        return self._json(response).get("parents", [])

    def update_file_parents(
        self, file_id: str, add_parents: str, remove_parents: list[str] | None = None
    ) -> dict:
        """Move a file by swapping its parent folders."""
        params = {
            "addParents": add_parents,
            "fields": "id,parents",
            "supportsAllDrives": "true",
        }
        if remove_parents:
            params["removeParents"] = ",".join(remove_parents)
        response = self._request("PATCH", self._file_url(file_id), params=params, json_data={})
        return self._json(response)

    def delete_file(self, file_id: str) -> None:
        self._request(
            "DELETE",
            self._file_url(file_id),
            params={"supportsAllDrives": "true"},
        )
        logger.info(f"Deleted file {file_id}")
