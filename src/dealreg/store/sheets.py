"""Google Sheets tabular store -- each table is a tab in one spreadsheet.

Key implementation details:
- Service account credentials, Sheets v4 service built once and cached
- All Google API calls are wrapped in asyncio.to_thread() to avoid
  blocking the event loop
- RAW value input so cell contents round-trip as plain strings
- No retries: a retried append is not idempotent and can duplicate rows,
  so every I/O failure surfaces as StoreUnavailable
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.dealreg.core.errors import StoreUnavailable
from src.dealreg.store.base import TabularStore

logger = structlog.get_logger(__name__)

SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]


class GoogleSheetsStore(TabularStore):
    """Spreadsheet-backed implementation of TabularStore.

    Args:
        spreadsheet_id: ID of the spreadsheet holding one tab per table.
        service_account_file: Path to the service account JSON key.
        service: Pre-built Sheets API resource (skips credential loading).
    """

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_file: str | None = None,
        service: Any = None,
    ) -> None:
        if not spreadsheet_id:
            raise ValueError("spreadsheet_id is required for GoogleSheetsStore")
        if service is None and not service_account_file:
            raise ValueError(
                "GoogleSheetsStore needs a service account file or a pre-built service"
            )
        self._spreadsheet_id = spreadsheet_id
        self._service_account_file = service_account_file
        self._service = service

    def _get_service(self) -> Any:
        """Build the Sheets API v4 service on first use and cache it."""
        if self._service is None:
            logger.info("building_sheets_service", spreadsheet_id=self._spreadsheet_id)
            credentials = service_account.Credentials.from_service_account_file(
                self._service_account_file,
                scopes=SHEETS_SCOPES,
            )
            self._service = build(
                "sheets", "v4", credentials=credentials, cache_discovery=False
            )
        return self._service

    async def _execute(
        self, operation: str, table: str, request: Callable[[], dict]
    ) -> dict:
        """Run a blocking API call off the event loop, mapping I/O errors."""
        try:
            return await asyncio.to_thread(request)
        except (HttpError, GoogleAuthError, OSError) as exc:
            logger.error(
                "sheets_store.request_failed",
                operation=operation,
                table=table,
                error=str(exc),
            )
            raise StoreUnavailable(
                f"Backing store {operation} failed for table {table}"
            ) from exc

    async def get_rows(self, table: str) -> list[list[str]]:
        values = self._get_service().spreadsheets().values()

        def _get() -> dict:
            return values.get(
                spreadsheetId=self._spreadsheet_id,
                range=table,
                majorDimension="ROWS",
            ).execute()

        result = await self._execute("read", table, _get)
        return [[str(cell) for cell in row] for row in result.get("values", [])]

    async def get_header(self, table: str) -> list[str]:
        values = self._get_service().spreadsheets().values()

        def _get() -> dict:
            return values.get(
                spreadsheetId=self._spreadsheet_id,
                range=f"{table}!1:1",
                majorDimension="ROWS",
            ).execute()

        result = await self._execute("read_header", table, _get)
        rows = result.get("values", [])
        return [str(cell) for cell in rows[0]] if rows else []

    async def append_row(self, table: str, row: list[str]) -> None:
        values = self._get_service().spreadsheets().values()

        def _append() -> dict:
            return values.append(
                spreadsheetId=self._spreadsheet_id,
                range=f"{table}!A1",
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [list(row)]},
            ).execute()

        result = await self._execute("append", table, _append)
        logger.info(
            "sheets_store.row_appended",
            table=table,
            updated_range=result.get("updates", {}).get("updatedRange"),
        )

    async def update_row(self, table: str, position: int, row: list[str]) -> None:
        if position < 1:
            raise ValueError(f"Row positions are 1-based, got {position}")
        values = self._get_service().spreadsheets().values()

        def _update() -> dict:
            return values.update(
                spreadsheetId=self._spreadsheet_id,
                range=f"{table}!A{position}",
                valueInputOption="RAW",
                body={"values": [list(row)]},
            ).execute()

        await self._execute("update", table, _update)
        logger.info("sheets_store.row_updated", table=table, position=position)
