"""Google Sheets row source — Sheets API v4 ``values.get`` with API key auth.

Reads one tab of the inventory spreadsheet as a cell grid and hands it to
the shared decoder. Auth/permission/not-found responses fail immediately;
transport errors and 5xx responses are retried with exponential backoff.

Called by: connectors/__init__.py (build_sources)
Depends on: http_client, row_source
"""

import asyncio
import logging
from urllib.parse import quote

import httpx

from ..errors import SourceUnavailable
from ..http_client import http
from .row_source import DEFAULT_CHUNK_SIZE, RowSource, SheetSchema

log = logging.getLogger("stockledger.sheets")

_FATAL_STATUS = {400, 401, 403, 404}


class GoogleSheetsSource(RowSource):
    """One tab of a spreadsheet, addressed by tab name."""

    API_URL = "https://sheets.googleapis.com/v4/spreadsheets/{spreadsheet_id}/values/{range}"

    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        api_key: str,
        schema: SheetSchema,
        columns: str = "A:Z",
        best_effort: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = 30.0,
        max_retries: int = 2,
    ):
        super().__init__(schema, best_effort=best_effort, chunk_size=chunk_size)
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.api_key = api_key
        self.columns = columns
        self.timeout = timeout
        self.max_retries = max_retries

    @property
    def source_id(self) -> str:
        return f"sheets:{self.sheet_name}"

    def _url(self) -> str:
        cell_range = f"{self.sheet_name}!{self.columns}"
        return self.API_URL.format(
            spreadsheet_id=self.spreadsheet_id, range=quote(cell_range, safe="!:")
        )

    async def _fetch_values(self) -> list[list]:
        if not self.api_key:
            raise SourceUnavailable(self.source_id, "GOOGLE_API_KEY is not configured")
        if not self.spreadsheet_id:
            raise SourceUnavailable(self.source_id, "spreadsheet id is not configured")

        last_err = None
        for attempt in range(self.max_retries + 1):
            try:
                r = await http.get(
                    self._url(),
                    params={"key": self.api_key, "majorDimension": "ROWS"},
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                last_err = f"{type(e).__name__}: {e}"
            else:
                if r.status_code in _FATAL_STATUS:
                    raise SourceUnavailable(
                        self.source_id, f"HTTP {r.status_code}: {r.text[:200]}"
                    )
                if r.status_code < 400:
                    return self._parse(r.json())
                last_err = f"HTTP {r.status_code}"

            if attempt < self.max_retries:
                await asyncio.sleep(2**attempt)

        log.warning("Sheets fetch failed for %s after %d attempts: %s",
                    self.sheet_name, self.max_retries + 1, last_err)
        raise SourceUnavailable(self.source_id, last_err or "unknown error")

    def _parse(self, data: dict) -> list[list]:
        values = data.get("values") or []
        log.info("Fetched %d rows from sheet %s", len(values), self.sheet_name)
        return values
