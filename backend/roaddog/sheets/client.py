# Overview: Thin wrapper around the Google Sheets v4 and Drive v3 REST clients.

"""
Google Sheets client.

All direct googleapiclient calls live here. Every public method raises a
SheetsClientError subclass on failure so the sync layer and the routes only
deal with one exception family. HttpError keeps its HTTP status on the
wrapped SheetsApiError.

The client is built per request from the caller's OAuth access token; no
credentials are stored server-side.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError


logger = logging.getLogger(__name__)

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


class SheetsClientError(RuntimeError):
    """Base error raised for Sheets API failures."""


class SheetsApiError(SheetsClientError):
    """Raised when the Google API returns an error response."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @property
    def is_missing_range(self) -> bool:
        """Reading a range on a tab that does not exist yields a 400 'Unable to parse range'."""
        return self.status == 400 and "Unable to parse range" in str(self)


class SheetNotFoundError(SheetsClientError):
    """Raised when a named tab is not present in the spreadsheet."""

    def __init__(self, title: str, message: str | None = None):
        super().__init__(message or f"{title} sheet not found")
        self.title = title


def _wrap(exc: HttpError) -> SheetsApiError:
    status = getattr(exc.resp, "status", None)
    reason = getattr(exc, "reason", None) or str(exc)
    return SheetsApiError(reason, status=int(status) if status is not None else None)


def build_services(access_token: str):
    """Return (sheets_service, drive_service) authorised with a user access token."""
    credentials = Credentials(token=access_token)
    sheets = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    drive = build("drive", "v3", credentials=credentials, cache_discovery=False)
    return sheets, drive


class SheetsClient:
    """Operations on one spreadsheet (and Drive lookups on behalf of the same user)."""

    def __init__(self, spreadsheet_id: str | None, service, drive_service=None) -> None:
        self.spreadsheet_id = spreadsheet_id
        self._service = service
        self._drive = drive_service

    @classmethod
    def for_token(cls, access_token: str, spreadsheet_id: str | None = None) -> "SheetsClient":
        sheets, drive = build_services(access_token)
        return cls(spreadsheet_id, sheets, drive)

    def _execute(self, request):
        try:
            return request.execute()
        except HttpError as exc:
            error = _wrap(exc)
            logger.warning("Sheets API call failed (status=%s): %s", error.status, error)
            raise error from exc

    def _values(self):
        return self._service.spreadsheets().values()

    # Metadata ---------------------------------------------------------

    def metadata(self) -> dict:
        return self._execute(
            self._service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="spreadsheetId,properties.title,sheets.properties",
            )
        )

    def full_spreadsheet(self) -> dict:
        """Whole spreadsheet resource including cell data."""
        return self._execute(
            self._service.spreadsheets().get(spreadsheetId=self.spreadsheet_id, includeGridData=True)
        )

    def title(self) -> str | None:
        return (self.metadata().get("properties") or {}).get("title")

    def sheet_ids(self) -> dict[str, int]:
        """{tab title: sheetId}"""
        result = {}
        for sheet in self.metadata().get("sheets", []):
            props = sheet.get("properties") or {}
            if "title" in props:
                result[props["title"]] = props.get("sheetId")
        return result

    def sheet_id(self, title: str) -> int | None:
        return self.sheet_ids().get(title)

    def require_sheet_id(self, title: str) -> int:
        sheet_id = self.sheet_id(title)
        if sheet_id is None:
            raise SheetNotFoundError(title)
        return sheet_id

    # Values -----------------------------------------------------------

    def get_values(self, range_: str, *, render: str | None = None) -> list[list]:
        kwargs = {"spreadsheetId": self.spreadsheet_id, "range": range_}
        if render:
            kwargs["valueRenderOption"] = render
        response = self._execute(self._values().get(**kwargs))
        return response.get("values", [])

    def batch_get(self, ranges: Sequence[str]) -> list[list[list]]:
        """Values for each range, in request order (missing ranges -> [])."""
        response = self._execute(
            self._values().batchGet(spreadsheetId=self.spreadsheet_id, ranges=list(ranges))
        )
        value_ranges = response.get("valueRanges", [])
        values = [vr.get("values", []) for vr in value_ranges]
        return values + [[] for _ in range(len(ranges) - len(values))]

    def update_values(self, range_: str, values: list[list], *, input_option: str = "RAW") -> dict:
        return self._execute(
            self._values().update(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption=input_option,
                body={"values": values},
            )
        )

    def batch_update_values(self, data: dict[str, list[list]], *, input_option: str = "RAW") -> dict:
        body = {
            "valueInputOption": input_option,
            "data": [{"range": range_, "values": values} for range_, values in data.items()],
        }
        return self._execute(
            self._values().batchUpdate(spreadsheetId=self.spreadsheet_id, body=body)
        )

    def append_values(self, range_: str, values: list[list], *, input_option: str = "RAW") -> dict:
        return self._execute(
            self._values().append(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption=input_option,
                insertDataOption="INSERT_ROWS",
                body={"values": values},
            )
        )

    def clear(self, range_: str) -> dict:
        return self._execute(
            self._values().clear(spreadsheetId=self.spreadsheet_id, range=range_, body={})
        )

    def batch_clear(self, ranges: Sequence[str]) -> dict:
        return self._execute(
            self._values().batchClear(spreadsheetId=self.spreadsheet_id, body={"ranges": list(ranges)})
        )

    # Structure --------------------------------------------------------

    def batch_update(self, requests: list[dict]) -> list[dict]:
        response = self._execute(
            self._service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"requests": requests},
            )
        )
        return response.get("replies", [])

    def add_sheet(self, title: str, *, frozen_rows: int = 1) -> int:
        replies = self.batch_update([{
            "addSheet": {
                "properties": {
                    "title": title,
                    "gridProperties": {"frozenRowCount": frozen_rows},
                }
            }
        }])
        try:
            return replies[0]["addSheet"]["properties"]["sheetId"]
        except (IndexError, KeyError):
            raise SheetsClientError(f"Failed to create {title} sheet") from None

    def delete_sheet(self, sheet_id: int) -> None:
        self.batch_update([{"deleteSheet": {"sheetId": sheet_id}}])

    def bold_rows(self, sheet_id: int, start_row: int = 0, end_row: int = 1) -> None:
        """Bold zero-based rows [start_row, end_row)."""
        self.batch_update([{
            "repeatCell": {
                "range": {"sheetId": sheet_id, "startRowIndex": start_row, "endRowIndex": end_row},
                "cell": {"userEnteredFormat": {"textFormat": {"bold": True}}},
                "fields": "userEnteredFormat.textFormat.bold",
            }
        }])

    def create_spreadsheet(self, title: str, tabs: Sequence[str] = (), *, sheets: list[dict] | None = None) -> dict:
        """
        Create a new spreadsheet; returns the API resource (spreadsheetId, sheets...).

        `sheets` passes full sheet resources (with grid data) through verbatim.
        """
        body: dict = {"properties": {"title": title}}
        if sheets is not None:
            body["sheets"] = sheets
        elif tabs:
            body["sheets"] = [
                {"properties": {"title": tab, "gridProperties": {"frozenRowCount": 1}}}
                for tab in tabs
            ]
        return self._execute(
            self._service.spreadsheets().create(body=body, fields="spreadsheetId,sheets.properties")
        )

    # Drive ------------------------------------------------------------

    def find_spreadsheet(self, name: str) -> str | None:
        """Most recently modified, non-trashed spreadsheet with exactly this name."""
        if self._drive is None:
            raise SheetsClientError("Drive access is not configured")
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        response = self._execute(
            self._drive.files().list(
                q=f"name='{escaped}' and mimeType='{SPREADSHEET_MIME_TYPE}' and trashed=false",
                orderBy="modifiedTime desc",
                pageSize=1,
                fields="files(id,name)",
            )
        )
        files = response.get("files", [])
        return files[0]["id"] if files else None
