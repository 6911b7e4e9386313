from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from lesson_uploader.domain.errors import RemoteServiceError
from lesson_uploader.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)


class GoogleSheetsAdapter(SpreadsheetPort):
    _BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(self, access_token: str, spreadsheet_id: str, timeout_s: float = 20.0) -> None:
        self._access_token = access_token
        self._spreadsheet_id = spreadsheet_id
        self._timeout_s = timeout_s

    def get_values(self, cell_range: str) -> list[list[str]]:
        try:
            response = requests.get(
                f"{self._BASE_URL}/{self._spreadsheet_id}/values/{quote(cell_range, safe='!:')}",
                headers=self._auth_header(),
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise RemoteServiceError(
                f"Network error while attempting to read sheet: {exc}"
            ) from exc
        self._raise_for_status(response, context="read sheet values")
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "Invalid JSON while attempting to read sheet values."
            ) from exc
        return [[str(value) for value in row] for row in payload.get("values", [])]

    def batch_update(self, updates: list[tuple[str, str]]) -> None:
        if not updates:
            return
        body = {
            "valueInputOption": "RAW",
            "data": [{"range": cell, "values": [[value]]} for cell, value in updates],
        }
        try:
            response = requests.post(
                f"{self._BASE_URL}/{self._spreadsheet_id}/values:batchUpdate",
                headers={**self._auth_header(), "Content-Type": "application/json"},
                json=body,
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise RemoteServiceError(
                f"Network error while attempting to update sheet: {exc}"
            ) from exc
        self._raise_for_status(response, context="update sheet values")
        logger.debug("Wrote %s cells to spreadsheet %s", len(updates), self._spreadsheet_id)

    def _auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    @staticmethod
    def _raise_for_status(response: requests.Response, context: str) -> None:
        status = response.status_code
        if status in (401, 403):
            raise RemoteServiceError(f"Auth failed while attempting to {context}.", status)
        if status == 404:
            raise RemoteServiceError(
                f"Resource not found or no access while attempting to {context}.", status
            )
        if status >= 400:
            raise RemoteServiceError(
                f"Sheets API error {status} while attempting to {context}.", status
            )
