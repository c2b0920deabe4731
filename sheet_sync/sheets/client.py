"""
Google Sheets v4 REST API client.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from ..config import settings
from ..pricing import parse_price
from ..ratelimit import RateLimitedQueue

logger = logging.getLogger(__name__)


SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)
SHEETS_API_URL = "https://sheets.googleapis.com/v4/"

# Column D holds the Shopify variant id written back after an update
ID_COLUMN = "D"
ID_HEADER = "ID"
DATA_COLUMNS = "A:D"


class SheetsClientError(Exception):
    """Base exception for Google Sheets client errors."""
    pass


class SheetsApiError(SheetsClientError):
    """Non-success HTTP response from the Sheets API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Google Sheets API error: {status_code} {body}")
        self.status_code = status_code
        self.body = body


@dataclass
class SheetRow:
    """One priced row read from the sheet."""

    sku: str
    variant_price: Decimal
    compare_at_price: Optional[Decimal]
    row: int  # 1-based row number in the sheet


def _cell(row: Sequence[Any], index: int) -> Optional[str]:
    if index >= len(row) or row[index] is None:
        return None
    return str(row[index])


def parse_sheet_rows(values: Sequence[Sequence[Any]]) -> List[SheetRow]:
    """
    Turn raw A:D values into priced rows.

    The first row is the header and is skipped. Rows without a SKU or
    without a positive price are dropped.

    Args:
        values: Rows as returned by the values endpoint

    Returns:
        Rows in sheet order
    """
    rows: List[SheetRow] = []

    for index, row in enumerate(values):
        if index == 0:
            continue

        sku = (_cell(row, 0) or "").strip()
        if not sku:
            continue

        price = parse_price(_cell(row, 1))
        if price is None or price <= 0:
            continue

        rows.append(SheetRow(
            sku=sku,
            variant_price=price,
            compare_at_price=parse_price(_cell(row, 2)),
            row=index + 1,
        ))

    return rows


def a1_range(sheet_name: str, cells: str) -> str:
    """Build an A1 range for a tab, quoting the tab name."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


def resolve_service_account_info(
    service_account_json: Optional[Union[str, Mapping[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Pick the service account payload for a client.

    A payload given for the sheet always wins; otherwise one is assembled
    from the GOOGLE_* settings.
    """
    if service_account_json:
        if isinstance(service_account_json, str):
            return json.loads(service_account_json)
        return dict(service_account_json)

    private_key = settings.google_private_key
    if private_key:
        private_key = private_key.replace("\\n", "\n")

    return {
        "type": "service_account",
        "project_id": settings.google_project_id,
        "private_key_id": settings.google_private_key_id,
        "private_key": private_key,
        "client_email": settings.google_client_email,
        "client_id": settings.google_client_id,
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
    }


class GoogleSheetsClient:
    """
    Async client for reading price rows and writing back variant ids.

    Every request goes through a per-instance rate-limited queue.
    """

    def __init__(
        self,
        service_account_json: Optional[Union[str, Mapping[str, Any]]] = None,
        request_delay: Optional[float] = None,
        credentials: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Google Sheets client.

        Args:
            service_account_json: Service account payload for this sheet;
                falls back to the GOOGLE_* settings when omitted
            request_delay: Seconds between requests (defaults to settings)
            credentials: Ready google-auth credentials, bypassing the payload
            transport: Optional httpx transport, used by tests
        """
        self._service_account_json = service_account_json
        self._credentials = credentials
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        if request_delay is None:
            request_delay = settings.sheets_request_delay
        self.queue = RateLimitedQueue(request_delay, name="sheets")

    def _get_credentials(self):
        if self._credentials is None:
            info = resolve_service_account_info(self._service_account_json)
            self._credentials = service_account.Credentials.from_service_account_info(
                info, scopes=list(SCOPES)
            )
        return self._credentials

    async def _get_token(self) -> str:
        credentials = self._get_credentials()
        if not credentials.valid:
            # google-auth refreshes synchronously
            await asyncio.to_thread(credentials.refresh, GoogleAuthRequest())
        return credentials.token

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=SHEETS_API_URL,
                timeout=httpx.Timeout(60.0, connect=10.0),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _execute(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        client = await self._get_client()
        token = await self._get_token()

        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            raise SheetsClientError(f"Request error: {e}") from e

        if not response.is_success:
            raise SheetsApiError(response.status_code, response.text)

        return response.json()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return await self.queue.enqueue(lambda: self._execute(method, path, **kwargs))

    async def get_values(self, sheet_id: str, cell_range: str) -> List[List[Any]]:
        """Read a range and return its rows (empty list when the range is blank)."""
        data = await self._request(
            "GET", f"spreadsheets/{quote(sheet_id, safe='')}/values/{quote(cell_range, safe='')}"
        )
        return data.get("values") or []

    async def update_values(
        self, sheet_id: str, cell_range: str, values: List[List[Any]]
    ) -> Dict[str, Any]:
        """Overwrite a range with raw values."""
        return await self._request(
            "PUT",
            f"spreadsheets/{quote(sheet_id, safe='')}/values/{quote(cell_range, safe='')}",
            params={"valueInputOption": "RAW"},
            body={"range": cell_range, "majorDimension": "ROWS", "values": values},
        )

    async def test_access(self, sheet_id: str) -> bool:
        """Check that the spreadsheet can be opened with these credentials."""
        try:
            await self._request(
                "GET",
                f"spreadsheets/{quote(sheet_id, safe='')}",
                params={"fields": "spreadsheetId"},
            )
            return True
        except Exception as e:
            logger.error(f"Google Sheets access test failed for {sheet_id}: {e}")
            return False

    async def get_sheet_data(self, sheet_id: str, sheet_name: str = "Sheet1") -> List[SheetRow]:
        """
        Read the priced rows of a tab.

        Args:
            sheet_id: Spreadsheet id
            sheet_name: Tab name

        Returns:
            Rows with a SKU and a positive price, in sheet order
        """
        values = await self.get_values(sheet_id, a1_range(sheet_name, DATA_COLUMNS))
        rows = parse_sheet_rows(values)
        logger.info(f"Read {len(rows)} priced rows from {sheet_id}/{sheet_name}")
        return rows

    async def update_sheet_header(self, sheet_id: str, sheet_name: str = "Sheet1") -> None:
        """Make sure the id column has its header, writing only when missing."""
        header_range = a1_range(sheet_name, f"{ID_COLUMN}1")

        try:
            values = await self.get_values(sheet_id, header_range)
            current = values[0][0] if values and values[0] else None

            if current != ID_HEADER:
                await self.update_values(sheet_id, header_range, [[ID_HEADER]])
                logger.info(f"Added {ID_HEADER} header to column {ID_COLUMN} of {sheet_id}/{sheet_name}")
        except Exception as e:
            logger.error(f"Error updating sheet header for {sheet_id}: {e}")
            raise SheetsClientError("Failed to update sheet header") from e

    async def update_variant_id(
        self, sheet_id: str, sheet_name: str, row_number: int, variant_id: str
    ) -> None:
        """Write a variant id next to its row. Failures are logged, not raised."""
        try:
            await self.update_values(
                sheet_id, a1_range(sheet_name, f"{ID_COLUMN}{row_number}"), [[variant_id]]
            )
        except Exception as e:
            logger.warning(f"Error updating variant ID for row {row_number}: {e}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
