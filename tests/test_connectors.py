"""
test_connectors.py — Tests for the Google Sheets and CSV row sources

Sheets responses are mocked at the shared httpx client; CSV files are
written to pytest's tmp_path.

Called by: pytest
Depends on: stockledger.connectors
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from stockledger.config import Settings
from stockledger.connectors import CsvFileSource, GoogleSheetsSource, build_sources
from stockledger.connectors.row_source import PRIMARY_SCHEMA, SECONDARY_SCHEMA
from stockledger.errors import SourceUnavailable

SHEET_VALUES = {
    "range": "'PHYSICAL INVENTORY'!A1:Z3",
    "values": [
        ["IMEI", "MODEL", "GRADE"],
        ["K1", "iPhone 13", "A"],
        ["K2", "iPhone 14", "B"],
    ],
}


def _response(status: int, json_data=None, text: str = "") -> httpx.Response:
    request = httpx.Request("GET", "https://sheets.googleapis.com/v4/spreadsheets/x/values/y")
    if json_data is not None:
        return httpx.Response(status, json=json_data, request=request)
    return httpx.Response(status, text=text, request=request)


def _sheets(**kw) -> GoogleSheetsSource:
    defaults = dict(spreadsheet_id="sheet-1", sheet_name="PHYSICAL INVENTORY",
                    api_key="test-key", schema=PRIMARY_SCHEMA)
    defaults.update(kw)
    return GoogleSheetsSource(**defaults)


# ── Google Sheets ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sheets_fetch_decodes_values():
    with patch("stockledger.connectors.sheets.http") as mock_http:
        mock_http.get = AsyncMock(return_value=_response(200, SHEET_VALUES))
        records = await _sheets().fetch()

    assert [r.key for r in records] == ["K1", "K2"]
    url = mock_http.get.call_args.args[0]
    assert "sheet-1" in url
    assert "PHYSICAL%20INVENTORY!A:Z" in url
    assert mock_http.get.call_args.kwargs["params"]["key"] == "test-key"


@pytest.mark.asyncio
async def test_sheets_permission_error_is_not_retried():
    with patch("stockledger.connectors.sheets.http") as mock_http:
        mock_http.get = AsyncMock(return_value=_response(403, text="forbidden"))
        with pytest.raises(SourceUnavailable) as exc:
            await _sheets().fetch()

    assert "403" in exc.value.reason
    assert mock_http.get.await_count == 1


@pytest.mark.asyncio
async def test_sheets_retries_transport_errors_then_succeeds():
    with patch("stockledger.connectors.sheets.http") as mock_http, \
            patch("stockledger.connectors.sheets.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        mock_http.get = AsyncMock(side_effect=[
            httpx.ConnectError("boom"),
            _response(503, text="unavailable"),
            _response(200, SHEET_VALUES),
        ])
        records = await _sheets(max_retries=2).fetch()

    assert len(records) == 2
    assert mock_http.get.await_count == 3
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]


@pytest.mark.asyncio
async def test_sheets_gives_up_after_retries():
    with patch("stockledger.connectors.sheets.http") as mock_http, \
            patch("stockledger.connectors.sheets.asyncio.sleep", new=AsyncMock()):
        mock_http.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(SourceUnavailable) as exc:
            await _sheets(max_retries=1).fetch()

    assert "ReadTimeout" in exc.value.reason
    assert mock_http.get.await_count == 2


@pytest.mark.asyncio
async def test_sheets_without_api_key_is_unavailable():
    with pytest.raises(SourceUnavailable, match="GOOGLE_API_KEY"):
        await _sheets(api_key="").fetch()


@pytest.mark.asyncio
async def test_sheets_best_effort_swallows_failure():
    src = _sheets(api_key="", best_effort=True)
    assert await src.fetch() == []
    assert src.last_error is not None


@pytest.mark.asyncio
async def test_sheets_missing_values_key_is_empty():
    with patch("stockledger.connectors.sheets.http") as mock_http:
        mock_http.get = AsyncMock(return_value=_response(200, {"range": "x"}))
        assert await _sheets().fetch() == []


def test_sheets_source_id_names_the_tab():
    assert _sheets().source_id == "sheets:PHYSICAL INVENTORY"


# ── CSV file drop ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_csv_source_reads_file(tmp_path):
    path = tmp_path / "raw.csv"
    path.write_text(
        "Raw export\n\nIMEI/SERIAL,DEVICE,GRADED,SUPPLIER\nS1,Galaxy S22,B,Acme\n,,,\n",
        encoding="utf-8",
    )
    src = CsvFileSource(path, SECONDARY_SCHEMA)
    records = await src.fetch()

    assert [r.key for r in records] == ["S1"]
    assert records[0].supplier == "Acme"
    assert src.last_stats.rows_skipped == 1
    assert src.source_id == "csv:raw.csv"


@pytest.mark.asyncio
async def test_csv_source_strips_bom(tmp_path):
    path = tmp_path / "physical.csv"
    path.write_text("\ufeffIMEI,GRADE\nK1,A\n", encoding="utf-8")
    records = await CsvFileSource(path, PRIMARY_SCHEMA).fetch()
    assert records[0].key == "K1"


@pytest.mark.asyncio
async def test_csv_missing_file_is_unavailable(tmp_path):
    with pytest.raises(SourceUnavailable, match="file not found"):
        await CsvFileSource(tmp_path / "nope.csv", PRIMARY_SCHEMA).fetch()


# ── Factory ──────────────────────────────────────────────────────────


def test_build_sources_prefers_csv_when_configured(tmp_path):
    s = Settings(csv_primary_path=str(tmp_path / "p.csv"), google_api_key="k", spreadsheet_id="s")
    sources = build_sources(s)

    assert isinstance(sources["primary"], CsvFileSource)
    assert isinstance(sources["secondary"], GoogleSheetsSource)
    assert isinstance(sources["outbound"], GoogleSheetsSource)
    assert sources["secondary"].best_effort is True
    assert sources["primary"].best_effort is False
    assert sources["secondary"].schema.banner_rows == s.secondary_banner_rows
