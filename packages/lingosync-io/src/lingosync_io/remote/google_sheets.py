"""Google Sheets v4 REST adapter for the remote sheet store."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol
from urllib.parse import quote

import google.auth.exceptions
import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from lingosync_core.ports.remote import (
    RemoteSyncError,
    RemoteSyncErrorCode,
    SheetClientProtocol,
    build_remote_error,
)
from lingosync_schemas.config import DEFAULT_READ_RANGE, column_letter
from lingosync_schemas.primitives import JsonValue
from lingosync_schemas.sync import RowUpdate

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"


class TokenProvider(Protocol):
    """Source of OAuth bearer tokens."""

    async def token(self) -> str:
        """Return a valid access token."""
        raise NotImplementedError


class ServiceAccountTokenProvider:
    """Bearer tokens from a service account key file."""

    def __init__(self, key_file: str) -> None:
        """Initialize the provider.

        Args:
            key_file: Path to the service account JSON key.
        """
        self._key_file = key_file
        self._credentials: service_account.Credentials | None = None

    async def token(self) -> str:
        """Return a fresh access token, refreshing when expired.

        Returns:
            str: Access token.

        Raises:
            RemoteSyncError: If the key cannot be loaded or refreshed.
        """
        try:
            return await asyncio.to_thread(self._refresh)
        except (OSError, ValueError, google.auth.exceptions.GoogleAuthError) as exc:
            raise build_remote_error(
                RemoteSyncErrorCode.AUTHENTICATION_ERROR,
                f"Service account authentication failed: {exc}",
                operation="authenticate",
                reason=type(exc).__name__,
            ) from exc

    def _refresh(self) -> str:
        if self._credentials is None:
            self._credentials = (
                service_account.Credentials.from_service_account_file(
                    self._key_file, scopes=[SHEETS_SCOPE]
                )
            )
        if not self._credentials.valid:
            self._credentials.refresh(Request())
        return str(self._credentials.token)


class GoogleSheetsClient(SheetClientProtocol):
    """Row-level access to one sheet through the Sheets REST API."""

    def __init__(
        self,
        *,
        spreadsheet_id: str,
        sheet_name: str,
        token_provider: TokenProvider,
        read_range: str = DEFAULT_READ_RANGE,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 30.0,
        base_url: str = SHEETS_API_BASE,
    ) -> None:
        """Initialize the client.

        Args:
            spreadsheet_id: Spreadsheet identifier.
            sheet_name: Title of the sheet (tab).
            token_provider: Bearer token source.
            read_range: A1 range read by ``read_rows``.
            http_client: Optional pre-configured HTTP client. If None, a
                client is created per request.
            timeout_s: Timeout for clients created per request.
            base_url: Spreadsheets API base URL.
        """
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._token_provider = token_provider
        self._read_range = read_range
        self._http_client = http_client
        self._timeout_s = timeout_s
        self._base_url = f"{base_url.rstrip('/')}/{quote(spreadsheet_id, safe='')}"
        self._sheet_id: int | None = None

    def qualified_range(self, a1_range: str) -> str:
        """Prefix an A1 range with the quoted sheet title.

        Returns:
            str: Range such as ``'translations'!A1:Z10``.
        """
        title = self._sheet_name.replace("'", "''")
        return f"'{title}'!{a1_range}"

    async def read_rows(self) -> list[list[str]]:
        """Read the configured range as a grid of strings.

        Returns:
            list[list[str]]: Rows, header first, trailing blanks trimmed.
        """
        payload = await self._request(
            "GET",
            f"/values/{quote(self.qualified_range(self._read_range), safe='')}",
            operation="read_rows",
            params={"majorDimension": "ROWS"},
        )
        values = payload.get("values") or []
        if not isinstance(values, list):
            return []
        return [
            [_cell_text(cell) for cell in row] if isinstance(row, list) else []
            for row in values
        ]

    async def update_rows(self, updates: Sequence[RowUpdate]) -> None:
        """Write several row ranges with one ``values:batchUpdate`` call."""
        if not updates:
            return
        data: list[JsonValue] = []
        for update in updates:
            row_number = update.row_index + 1
            start = column_letter(update.start_column)
            end = column_letter(update.start_column + len(update.values) - 1)
            data.append({
                "range": self.qualified_range(
                    f"{start}{row_number}:{end}{row_number}"
                ),
                "majorDimension": "ROWS",
                "values": [list(update.values)],
            })
        await self._request(
            "POST",
            "/values:batchUpdate",
            operation="update_rows",
            json={"valueInputOption": "RAW", "data": data},
        )

    async def append_rows(self, rows: Sequence[Sequence[str]]) -> None:
        """Append rows after the table with ``INSERT_ROWS``."""
        if not rows:
            return
        await self._request(
            "POST",
            f"/values/{quote(self.qualified_range('A:A'), safe='')}:append",
            operation="append_rows",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"majorDimension": "ROWS", "values": [list(row) for row in rows]},
        )

    async def delete_rows(self, row_indices: Sequence[int]) -> None:
        """Delete rows in the given order with one ``batchUpdate`` call."""
        if not row_indices:
            return
        sheet_id = await self._resolve_sheet_id()
        requests: list[JsonValue] = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        "startIndex": index,
                        "endIndex": index + 1,
                    }
                }
            }
            for index in row_indices
        ]
        await self._request(
            "POST", ":batchUpdate", operation="delete_rows", json={"requests": requests}
        )

    async def _resolve_sheet_id(self) -> int:
        if self._sheet_id is not None:
            return self._sheet_id
        payload = await self._request(
            "GET",
            "",
            operation="get_sheet_id",
            params={"fields": "sheets.properties(sheetId,title)"},
        )
        sheets = payload.get("sheets") or []
        for sheet in sheets if isinstance(sheets, list) else []:
            properties = sheet.get("properties", {}) if isinstance(sheet, dict) else {}
            if properties.get("title") == self._sheet_name:
                self._sheet_id = int(properties.get("sheetId", 0))
                return self._sheet_id
        raise build_remote_error(
            RemoteSyncErrorCode.API_ERROR,
            f"Sheet {self._sheet_name!r} not found in spreadsheet",
            operation="get_sheet_id",
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: dict[str, str] | None = None,
        json: dict[str, JsonValue] | None = None,
    ) -> dict[str, JsonValue]:
        token = await self._token_provider.token()
        headers = {"Authorization": f"Bearer {token}"}
        url = f"{self._base_url}{path}"
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, params=params, json=json, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                    response = await client.request(
                        method, url, params=params, json=json, headers=headers
                    )
        except httpx.TransportError as exc:
            raise build_remote_error(
                RemoteSyncErrorCode.NETWORK_ERROR,
                f"Network error during {operation}: {exc}",
                operation=operation,
                reason=type(exc).__name__,
            ) from exc
        if response.status_code >= 400:
            raise _status_error(response, operation)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise build_remote_error(
                RemoteSyncErrorCode.API_ERROR,
                f"Sheets API {operation} returned a non-JSON body",
                operation=operation,
                status_code=response.status_code,
                reason=response.text[:200],
            ) from exc
        return payload if isinstance(payload, dict) else {}


def _status_error(response: httpx.Response, operation: str) -> RemoteSyncError:
    status = response.status_code
    detail = _google_error_message(response)
    if status in {401, 403}:
        code = RemoteSyncErrorCode.AUTHENTICATION_ERROR
    elif status == 429:
        code = RemoteSyncErrorCode.RATE_LIMITED
    else:
        code = RemoteSyncErrorCode.API_ERROR
    return build_remote_error(
        code,
        f"Sheets API {operation} failed with HTTP {status}: {detail}",
        operation=operation,
        status_code=status,
        reason=detail,
    )


def _google_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return response.reason_phrase


def _cell_text(cell: object) -> str:
    if cell is None:
        return ""
    if isinstance(cell, bool):
        return "TRUE" if cell else "FALSE"
    return str(cell)
